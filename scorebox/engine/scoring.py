"""
Delivery transition and its inverse.

apply_delivery() and undo_last_delivery() never mutate their input: each works on a
deep copy and returns the new snapshot, so a caller can keep the previous state around
for its own undo stack without aliasing.
"""
import copy
import logging
from dataclasses import replace
from typing import List, Optional

from scorebox.engine.formats import BALLS_PER_OVER, INDOOR_WICKET_PENALTY
from scorebox.engine.state import (
    Delivery, DismissalDetails, DismissalType, ExtraType, Extras, Innings, MatchFormat, MatchState, MatchStatus,
    Player, TEAM_A, batting_players, bowling_players, current_inning, find_player, utc_now,
)

logger = logging.getLogger(__name__)

PENALTY_EXTRAS = (ExtraType.WIDE, ExtraType.NO_BALL)
BYE_EXTRAS = (ExtraType.BYE, ExtraType.LEG_BYE)

_EXTRA_COUNTERS = {
    ExtraType.WIDE: "wides",
    ExtraType.NO_BALL: "no_balls",
    ExtraType.BYE: "byes",
    ExtraType.LEG_BYE: "leg_byes",
}


def batter_runs(delivery: Delivery) -> int:
    """Runs credited to the striker: no penalty run, nothing for byes."""
    if delivery.extra_type in PENALTY_EXTRAS:
        return max(0, delivery.runs - 1)
    if delivery.extra_type in BYE_EXTRAS:
        return 0
    return delivery.runs


def faces_ball(delivery: Delivery) -> bool:
    """The bat is live on legal balls and no-balls, not on wides."""
    return delivery.is_legal or delivery.extra_type == ExtraType.NO_BALL


def rotation_runs(delivery: Delivery) -> int:
    """Runs that count towards strike rotation (the runs the batters actually ran)."""
    if delivery.wall_bonus:
        # Wall bonus credits 2 but the batters only crossed once
        return 1
    if delivery.extra_type in PENALTY_EXTRAS:
        return max(0, delivery.runs - 1)
    if delivery.runs_for_rotation is not None:
        return delivery.runs_for_rotation
    return delivery.runs


def swaps_strike(delivery: Delivery) -> bool:
    if delivery.is_wicket or not faces_ball(delivery):
        return False
    return rotation_runs(delivery) in (1, 3, 5)


def ends_over(innings: Innings, delivery: Delivery) -> bool:
    """True when delivery is legal and the innings' ball clock now sits on an over boundary."""
    return delivery.is_legal and innings.total_balls % BALLS_PER_OVER == 0


def display_for(delivery: Delivery) -> str:
    """Scoreboard label for a ball, e.g. "4", "Wd+2", "Lb1", "W+1", "W"."""
    if delivery.is_wicket:
        return "W"
    runs = delivery.runs
    if delivery.extra_type == ExtraType.NO_BALL:
        return f"Nb+{runs - 1}" if runs > 1 else "Nb"
    if delivery.extra_type == ExtraType.WIDE:
        return f"Wd+{runs - 1}" if runs > 1 else "Wd"
    if delivery.extra_type == ExtraType.BYE:
        return f"B{runs}" if runs > 0 else "B"
    if delivery.extra_type == ExtraType.LEG_BYE:
        return f"Lb{runs}" if runs > 0 else "Lb"
    if delivery.wall_bonus:
        return "W+1"
    return str(runs)


def _swap_strike(state: MatchState):
    state.striker_id, state.non_striker_id = state.non_striker_id, state.striker_id


def _bump_extras(extras: Extras, extra_type: Optional[ExtraType], step: int):
    counter = _EXTRA_COUNTERS.get(extra_type)
    if counter:
        setattr(extras, counter, getattr(extras, counter) + step)


def _credit_batter(batter: Optional[Player], delivery: Delivery, step: int = 1):
    if batter is None or not faces_ball(delivery):
        return
    credited = batter_runs(delivery)
    batter.runs += step * credited
    if delivery.is_legal:
        batter.balls += step
    if credited == 4:
        batter.fours += step
    if credited == 6:
        batter.sixes += step


def dismissal_text(state: MatchState, innings: Innings, delivery: Delivery) -> str:
    """
    Scorecard line for a wicket, e.g. "c †Keeper b Bowler", "c & b Bowler", "run out (Fielder)".

    The bowling side's wicket-keeper is marked with a dagger. Without a dismissal type
    the batter is simply "out".
    """
    kind = delivery.dismissal_type
    if kind is None:
        return "out"

    fielders = bowling_players(state, innings)
    bowler = find_player(fielders, delivery.bowler_id)
    fielder = find_player(fielders, delivery.fielder_id)
    keeper_id = state.team_a_keeper_id if innings.bowling_team == TEAM_A else state.team_b_keeper_id
    keeper = find_player(fielders, keeper_id)
    bowled_by = f"b {bowler.name if bowler else 'bowler'}"

    if kind == DismissalType.BOWLED:
        return bowled_by
    if kind == DismissalType.CAUGHT:
        if fielder is None:
            return f"c & {bowled_by}"
        dagger = "†" if fielder.id == keeper_id else ""
        return f"c {dagger}{fielder.name} {bowled_by}"
    if kind == DismissalType.LBW:
        return f"lbw {bowled_by}"
    if kind == DismissalType.RUN_OUT:
        return f"run out ({fielder.name})" if fielder else "run out"
    if kind == DismissalType.STUMPED:
        stumper = keeper or fielder
        return f"st †{stumper.name} {bowled_by}" if stumper else f"st {bowled_by}"
    if kind == DismissalType.HIT_WICKET:
        return f"hit wicket {bowled_by}"
    return kind.value


def _dismissal_for(state: MatchState, innings: Innings, delivery: Delivery):
    """Dismissal text and details recorded against the batter for a wicket delivery."""
    details = None
    if delivery.dismissal_type:
        fielders = bowling_players(state, innings)
        bowler = find_player(fielders, delivery.bowler_id)
        fielder = find_player(fielders, delivery.fielder_id)
        details = DismissalDetails(
            type=delivery.dismissal_type,
            bowler_name=bowler.name if bowler else None,
            fielder_name=fielder.name if fielder else None,
        )
    return delivery.dismissal or dismissal_text(state, innings, delivery), details


def _record_wicket(state: MatchState, innings: Innings, delivery: Delivery, batters: List[Player]):
    innings.wickets += 1
    is_indoor = state.format == MatchFormat.INDOOR
    if is_indoor:
        innings.total_runs -= INDOOR_WICKET_PENALTY

    batter = find_player(batters, delivery.batter_id)
    if batter:
        batter.dismissal, batter.dismissal_details = _dismissal_for(state, innings, delivery)
        # Indoor outs are temporary: the player bats again once the whole side has been out
        batter.is_out = True
        if is_indoor:
            batter.outs_count += 1

    state.striker_id = None

    if is_indoor:
        state.batting_cycle_dismissals += 1
        if state.batting_cycle_dismissals >= len(batters):
            state.batting_cycle_dismissals = 0
            for player in batters:
                player.is_out = False
            logger.debug("Indoor batting cycle complete, %d players back in", len(batters))


def _open_following_innings(state: MatchState, innings: Innings):
    following = state.current_innings + 1
    if following >= state.innings_count or len(state.innings) > following:
        return
    state.innings.append(Innings(
        batting_team=innings.bowling_team,
        bowling_team=innings.batting_team,
        overs_limit=innings.overs_limit,
        target=innings.total_runs + 1,
    ))
    logger.debug("Opened innings %d chasing %d", following + 1, innings.total_runs + 1)


def _check_innings_complete(state: MatchState, innings: Innings):
    if innings.overs_limit is not None and innings.total_balls >= innings.overs_limit * BALLS_PER_OVER:
        innings.completed = True
        _open_following_innings(state, innings)

    # Indoor innings only end on overs
    if state.format == MatchFormat.INDOOR:
        return

    if innings.target and innings.total_runs >= innings.target:
        innings.completed = True

    batters = batting_players(state, innings)
    if batters and sum(1 for p in batters if p.is_out) >= len(batters) - 1:
        innings.completed = True


def apply_delivery(state: MatchState, delivery: Delivery) -> MatchState:
    """
    Score one ball and return the next match snapshot.

    Returns the input unchanged when the crease is not fully set (striker, non-striker and
    bowler) or the active innings is already completed.
    """
    if not state.striker_id or not state.non_striker_id or not state.bowler_id:
        logger.debug("Ignoring delivery: crease not set")
        return state
    if current_inning(state).completed:
        logger.debug("Ignoring delivery: innings %d already completed", state.current_innings + 1)
        return state

    new_state = copy.deepcopy(state)
    new_state.has_activity = True
    innings = current_inning(new_state)

    # The crease ids always come from the state, never from the caller
    delivery = replace(
        delivery,
        batter_id=new_state.striker_id,
        non_striker_id=new_state.non_striker_id,
        bowler_id=new_state.bowler_id,
    )
    innings.deliveries.append(delivery)

    innings.total_runs += delivery.runs
    _bump_extras(innings.extras, delivery.extra_type, 1)

    if delivery.is_legal:
        innings.total_balls += 1

    batters = batting_players(new_state, innings)
    if delivery.is_wicket:
        _record_wicket(new_state, innings, delivery, batters)
    else:
        _credit_batter(find_player(batters, new_state.striker_id), delivery)
        if swaps_strike(delivery):
            _swap_strike(new_state)

    if ends_over(innings, delivery):
        _swap_strike(new_state)
        new_state.bowler_id = None

    _check_innings_complete(new_state, innings)

    new_state.updated_at = utc_now()
    return new_state


def _previous_wicket(innings: Innings, batter_id: str) -> Optional[Delivery]:
    return next((d for d in reversed(innings.deliveries) if d.is_wicket and d.batter_id == batter_id), None)


def _replay_indoor_cycle(deliveries: List[Delivery], squad: int):
    """Out flags and cycle counter as they stand after `deliveries`, from the start of the innings."""
    out_ids = set()
    dismissals = 0
    for delivery in deliveries:
        if not delivery.is_wicket:
            continue
        out_ids.add(delivery.batter_id)
        dismissals += 1
        if dismissals >= squad:
            out_ids.clear()
            dismissals = 0
    return out_ids, dismissals


def _reverse_wicket(state: MatchState, innings: Innings, delivery: Delivery, batters: List[Player]):
    innings.wickets -= 1
    is_indoor = state.format == MatchFormat.INDOOR
    if is_indoor:
        innings.total_runs += INDOOR_WICKET_PENALTY

    batter = find_player(batters, delivery.batter_id)
    if batter:
        batter.is_out = False
        previous = _previous_wicket(innings, batter.id)
        if previous:
            batter.dismissal, batter.dismissal_details = _dismissal_for(state, innings, previous)
        else:
            batter.dismissal, batter.dismissal_details = None, None
        if is_indoor and batter.outs_count > 0:
            batter.outs_count -= 1

    if not is_indoor:
        return

    out_ids, state.batting_cycle_dismissals = _replay_indoor_cycle(innings.deliveries, len(batters))
    for player in batters:
        player.is_out = player.id in out_ids


def undo_last_delivery(state: MatchState) -> MatchState:
    """
    Remove the last delivery of the active innings and reverse its effects.

    Totals, extras, the ball clock, wickets and batter figures are reversed exactly. The
    crease is put back from the ids stamped on the delivery, an innings that had been
    completed is reopened, and a chase innings opened automatically by that ball is dropped.
    """
    if not current_inning(state).deliveries:
        return state

    new_state = copy.deepcopy(state)
    innings = current_inning(new_state)
    last = innings.deliveries.pop()

    following = new_state.current_innings + 1
    if len(new_state.innings) > following and not new_state.innings[following].deliveries:
        del new_state.innings[following:]
    innings.completed = False

    innings.total_runs -= last.runs
    _bump_extras(innings.extras, last.extra_type, -1)

    if last.is_legal:
        innings.total_balls -= 1

    batters = batting_players(new_state, innings)
    if last.is_wicket:
        _reverse_wicket(new_state, innings, last, batters)
    else:
        _credit_batter(find_player(batters, last.batter_id), last, step=-1)

    if last.batter_id is not None:
        new_state.striker_id = last.batter_id
        new_state.non_striker_id = last.non_striker_id
        new_state.bowler_id = last.bowler_id

    if new_state.status == MatchStatus.COMPLETED:
        new_state.status = MatchStatus.LIVE
        new_state.completed_at = None
    new_state.has_activity = any(inn.deliveries for inn in new_state.innings)
    new_state.updated_at = utc_now()
    return new_state
