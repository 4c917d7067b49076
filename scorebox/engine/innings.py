"""
Innings lifecycle and match setup: new match, rosters, toss, crease changes and innings
boundaries. These functions update the match in place and return it.
"""
import logging
import uuid
from datetime import datetime
from typing import Optional

from scorebox.engine.formats import BALLS_PER_OVER, reset_batting_order
from scorebox.engine.state import (
    CommentaryEntry, Innings, MatchFormat, MatchState, MatchStatus, Player, TEAM_A, TEAM_B,
    Toss, TossDecision, batting_players, bowling_players, current_inning, find_player,
    other_side, team_players, utc_now,
)

logger = logging.getLogger(__name__)


def create_new_match() -> MatchState:
    """A draft Indoor match with one empty innings (A bats, B bowls) and empty rosters."""
    now = datetime.now()
    state = MatchState(
        format=MatchFormat.INDOOR,
        innings_count=1,
        current_innings=0,
        innings=[Innings(batting_team=TEAM_A, bowling_team=TEAM_B, overs_limit=18)],
        squad_size=10,
        overs_limit=18,
        status=MatchStatus.DRAFT,
        match_date=now.strftime("%Y-%m-%d"),
        match_time=now.strftime("%H:%M"),
    )
    return state


# Rosters

def add_player(state: MatchState, side: str, name: str, player_id: Optional[str] = None) -> Optional[Player]:
    """Add a player to a side's squad. Returns None when the squad is already full."""
    players = team_players(state, side)
    if len(players) >= state.squad_size:
        logger.debug("Team %s squad full (%d), not adding %s", side, state.squad_size, name)
        return None

    player = Player(id=player_id or uuid.uuid4().hex, name=name)
    players.append(player)

    # Indoor order follows the roster while the team is batting and nothing has been bowled
    if state.format == MatchFormat.INDOOR and side == current_inning(state).batting_team and not state.has_activity:
        reset_batting_order(state)

    state.updated_at = utc_now()
    return player


def add_substitute(state: MatchState, side: str, name: str, player_id: Optional[str] = None) -> Player:
    player = Player(id=player_id or uuid.uuid4().hex, name=name, is_substitute=True)
    subs = state.team_a_substitutes if side == TEAM_A else state.team_b_substitutes
    subs.append(player)
    state.updated_at = utc_now()
    return player


def _designate(state: MatchState, side: str, player_id: str, role: str) -> MatchState:
    players = team_players(state, side)
    if find_player(players, player_id) is None:
        return state
    for player in players:
        setattr(player, f"is_{role}", player.id == player_id)
    attr = "team_a" if side == TEAM_A else "team_b"
    setattr(state, f"{attr}_{role}_id", player_id)
    state.updated_at = utc_now()
    return state


def set_captain(state: MatchState, side: str, player_id: str) -> MatchState:
    return _designate(state, side, player_id, "captain")


def set_keeper(state: MatchState, side: str, player_id: str) -> MatchState:
    return _designate(state, side, player_id, "keeper")


# Toss and crease

def apply_toss(state: MatchState, winner: str, decision: TossDecision) -> MatchState:
    state.toss = Toss(winner_team=winner, decision=decision)

    batting_team = winner if decision == TossDecision.BAT else other_side(winner)
    if state.innings:
        state.innings[0].batting_team = batting_team
        state.innings[0].bowling_team = other_side(batting_team)

    if state.format == MatchFormat.INDOOR:
        reset_batting_order(state)

    if state.status == MatchStatus.DRAFT:
        state.status = MatchStatus.LIVE

    state.updated_at = utc_now()
    logger.debug("Toss: team %s won and chose to %s", winner, decision.value)
    return state


def set_next_batter(state: MatchState, player_id: str) -> MatchState:
    """
    Fill the empty striker slot, else the empty non-striker slot.

    Indoor sides may send back a player who is currently out; other formats may not.
    """
    player = find_player(batting_players(state), player_id)
    out_and_barred = player is not None and player.is_out and state.format != MatchFormat.INDOOR
    if player is None or out_and_barred or player_id in (state.striker_id, state.non_striker_id):
        logger.debug("Ignoring batter %s: not available", player_id)
        return state

    if not state.striker_id:
        state.striker_id = player_id
    elif not state.non_striker_id:
        state.non_striker_id = player_id
    else:
        return state

    state.updated_at = utc_now()
    return state


def set_next_bowler(state: MatchState, player_id: str) -> MatchState:
    if find_player(bowling_players(state), player_id) is None:
        logger.debug("Ignoring bowler %s: not in the fielding side", player_id)
        return state
    state.bowler_id = player_id
    state.updated_at = utc_now()
    return state


def next_batter_in_order(state: MatchState) -> Optional[str]:
    """
    The next Indoor batter: first in the order who is neither out nor at the crease,
    falling back to the first player in the order not at the crease.
    """
    batters = batting_players(state)
    at_crease = {state.striker_id, state.non_striker_id}
    waiting = [p for p in (find_player(batters, pid) for pid in state.batting_order) if p and p.id not in at_crease]
    for player in waiting:
        if not player.is_out:
            return player.id
    return waiting[0].id if waiting else None


# Innings boundaries

def end_innings(state: MatchState) -> MatchState:
    current_inning(state).completed = True
    state.updated_at = utc_now()
    return state


def start_next_innings(state: MatchState) -> MatchState:
    """
    Move to the chase. Reuses the innings opened automatically when the first innings
    ran out of overs, otherwise opens it here with target = first innings runs + 1.
    """
    if state.current_innings + 1 >= state.innings_count:
        return state

    previous = current_inning(state)
    previous.completed = True
    state.current_innings += 1

    if len(state.innings) <= state.current_innings:
        state.innings.append(Innings(
            batting_team=previous.bowling_team,
            bowling_team=previous.batting_team,
            overs_limit=previous.overs_limit,
            target=previous.total_runs + 1,
        ))

    state.striker_id = None
    state.non_striker_id = None
    state.bowler_id = None

    is_indoor = state.format == MatchFormat.INDOOR
    for player in batting_players(state):
        player.reset_innings_stats(reset_outs=is_indoor)

    if is_indoor:
        reset_batting_order(state)

    state.updated_at = utc_now()
    logger.debug("Started innings %d, target %s", state.current_innings + 1, current_inning(state).target)
    return state


def add_commentary(state: MatchState, text: str, auto: bool = False) -> MatchState:
    text = text.strip()
    if not text:
        return state
    balls = current_inning(state).total_balls
    state.commentary.append(CommentaryEntry(
        over=balls // BALLS_PER_OVER,
        ball=balls % BALLS_PER_OVER,
        text=text,
        auto=auto,
    ))
    state.updated_at = utc_now()
    return state


def complete_match(state: MatchState) -> MatchState:
    if state.status in (MatchStatus.COMPLETED, MatchStatus.DELETED):
        return state
    current_inning(state).completed = True
    state.status = MatchStatus.COMPLETED
    state.completed_at = utc_now()
    state.updated_at = state.completed_at
    return state


def abandon_match(state: MatchState) -> MatchState:
    if state.status in (MatchStatus.COMPLETED, MatchStatus.DELETED):
        return state
    state.status = MatchStatus.ABANDONED
    state.updated_at = utc_now()
    return state
