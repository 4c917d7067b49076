"""
Scorecard figures aggregated from an innings' delivery log. Read-only consumers.
"""
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional

from scorebox.engine.formats import BALLS_PER_OVER
from scorebox.engine.state import (
    ExtraType, Innings, MatchState, batting_players, bowling_players, find_player,
)


@dataclass
class BowlerFigures:
    """A bowler's figures for one innings"""
    player_id: str
    balls: int = 0
    maidens: int = 0
    runs_conceded: int = 0
    wickets: int = 0
    wides: int = 0
    no_balls: int = 0

    @property
    def overs_display(self) -> str:
        return f"{self.balls // BALLS_PER_OVER}.{self.balls % BALLS_PER_OVER}"

    @property
    def economy(self) -> float:
        if self.balls == 0:
            return 0.0
        return (self.runs_conceded / self.balls) * BALLS_PER_OVER


@dataclass
class BattingCardRow:
    player_id: str
    name: str
    dismissal: str
    runs: int
    balls: int
    fours: int
    sixes: int
    strike_rate: float
    outs_count: int = 0


def get_bowler_stats(innings: Innings) -> Dict[str, BowlerFigures]:
    """Figures keyed by bowler id, in the order bowlers first appear."""
    figures: Dict[str, BowlerFigures] = {}
    # over index -> [legal balls, runs, bowler ids]
    overs = defaultdict(lambda: [0, 0, set()])
    ball_clock = 0

    for delivery in innings.deliveries:
        over_index = ball_clock // BALLS_PER_OVER
        if delivery.is_legal:
            ball_clock += 1

        if not delivery.bowler_id:
            continue

        stats = figures.setdefault(delivery.bowler_id, BowlerFigures(player_id=delivery.bowler_id))
        if delivery.is_legal:
            stats.balls += 1
        stats.runs_conceded += delivery.runs
        if delivery.is_wicket:
            stats.wickets += 1
        if delivery.extra_type == ExtraType.WIDE:
            stats.wides += 1
        elif delivery.extra_type == ExtraType.NO_BALL:
            stats.no_balls += 1

        over = overs[over_index]
        over[0] += 1 if delivery.is_legal else 0
        over[1] += delivery.runs
        over[2].add(delivery.bowler_id)

    for legal_balls, runs, bowlers in overs.values():
        if legal_balls == BALLS_PER_OVER and runs == 0 and len(bowlers) == 1:
            figures[next(iter(bowlers))].maidens += 1

    return figures


def get_bowler_figures(innings: Innings, player_id: str) -> Optional[BowlerFigures]:
    return get_bowler_stats(innings).get(player_id)


def get_batting_card(state: MatchState, innings: Optional[Innings] = None) -> List[BattingCardRow]:
    """
    Batting rows for the side batting in `innings`, roster order.

    Player totals are per innings, so this is only meaningful for the innings in progress
    or the last one the side batted in.
    """
    rows = []
    at_crease = {state.striker_id, state.non_striker_id}
    for player in batting_players(state, innings):
        if player.is_out:
            dismissal = player.dismissal or "out"
        elif player.id in at_crease or player.balls or player.runs:
            dismissal = "not out"
        else:
            dismissal = "did not bat"
        rows.append(BattingCardRow(
            player_id=player.id,
            name=player.name,
            dismissal=dismissal,
            runs=player.runs,
            balls=player.balls,
            fours=player.fours,
            sixes=player.sixes,
            strike_rate=round(player.strike_rate, 2),
            outs_count=player.outs_count,
        ))
    return rows


def bowler_name(state: MatchState, innings: Innings, player_id: str) -> str:
    player = find_player(bowling_players(state, innings), player_id)
    return player.name if player else player_id
