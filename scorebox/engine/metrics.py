"""
Read-only figures derived from an innings or the whole match. Nothing here mutates state.
"""
import math
from dataclasses import dataclass, field
from typing import Dict, Optional

from scorebox.engine.formats import BALLS_PER_OVER
from scorebox.engine.scoring import batter_runs, swaps_strike
from scorebox.engine.state import (
    Innings, MatchState, current_inning, team_name, team_players,
)


@dataclass
class Partnership:
    runs: int = 0
    balls: int = 0
    contributions: Dict[str, int] = field(default_factory=dict)  # batter id -> runs off the bat


def get_overs_display(total_balls: int) -> str:
    return f"{total_balls // BALLS_PER_OVER}.{total_balls % BALLS_PER_OVER}"


def get_balls_remaining(innings: Innings) -> Optional[int]:
    if innings.overs_limit is None:
        return None
    return max(0, innings.overs_limit * BALLS_PER_OVER - innings.total_balls)


def get_current_run_rate(innings: Innings) -> float:
    if innings.total_balls == 0:
        return 0.0
    return innings.total_runs / (innings.total_balls / BALLS_PER_OVER)


def get_required_run_rate(innings: Innings) -> Optional[float]:
    if innings.target is None or not innings.overs_limit:
        return None
    remaining_runs = innings.target - innings.total_runs
    remaining_balls = innings.overs_limit * BALLS_PER_OVER - innings.total_balls
    if remaining_runs <= 0 or remaining_balls <= 0:
        return None
    return remaining_runs / (remaining_balls / BALLS_PER_OVER)


def get_projected_score(innings: Innings) -> Optional[int]:
    if not innings.overs_limit or innings.total_balls == 0:
        return None
    # Halves round up, so 12.5 projects to 13
    return math.floor(get_current_run_rate(innings) * innings.overs_limit + 0.5)


def get_partnership(state: MatchState) -> Partnership:
    """
    Runs and legal balls added by the two batters now at the crease.

    Walks the active innings backwards, undoing over-boundary and odd-run swaps to know
    who faced each ball, and stops at the last wicket or at the first ball bowled to a
    different pair.
    """
    partnership = Partnership()
    striker, non_striker = state.striker_id, state.non_striker_id
    if not striker or not non_striker:
        return partnership

    pair = {striker, non_striker}
    innings = current_inning(state)
    # Who faces the next ball; rewound one delivery at a time
    on_strike, off_strike = striker, non_striker
    ball_clock = innings.total_balls

    for delivery in reversed(innings.deliveries):
        if delivery.is_wicket:
            break
        if delivery.batter_id is not None and {delivery.batter_id, delivery.non_striker_id} != pair:
            break

        if delivery.is_legal and ball_clock % BALLS_PER_OVER == 0:
            on_strike, off_strike = off_strike, on_strike
        if swaps_strike(delivery):
            on_strike, off_strike = off_strike, on_strike

        facing = on_strike
        partnership.runs += delivery.runs
        credited = batter_runs(delivery)
        if credited:
            partnership.contributions[facing] = partnership.contributions.get(facing, 0) + credited
        if delivery.is_legal:
            partnership.balls += 1
            ball_clock -= 1

    return partnership


def get_match_result(state: MatchState) -> Optional[str]:
    """Result line once the second innings is complete, else None."""
    if len(state.innings) != 2:
        return None
    first, second = state.innings
    if not second.completed:
        return None

    first_name = team_name(state, first.batting_team)
    second_name = team_name(state, second.batting_team)

    if second.total_runs > first.total_runs:
        squad = len(team_players(state, second.batting_team))
        wickets_in_hand = max(0, squad - 1 - second.wickets)
        balls_remaining = get_balls_remaining(second) or 0
        return f"{second_name} won by {wickets_in_hand} wickets ({balls_remaining} balls remaining)"
    if first.total_runs > second.total_runs:
        return f"{first_name} won by {first.total_runs - second.total_runs} runs"
    return "Match tied"


def get_winning_side(state: MatchState) -> Optional[str]:
    """Side ("A"/"B") that won a finished match; None while undecided or tied."""
    if get_match_result(state) is None:
        return None
    first, second = state.innings
    if second.total_runs > first.total_runs:
        return second.batting_team
    if first.total_runs > second.total_runs:
        return first.batting_team
    return None
