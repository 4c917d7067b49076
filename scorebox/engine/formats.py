"""
Format policy: per-format overs and squad bounds, and applying a format to a match.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from scorebox.engine.state import (
    MatchFormat, MatchState, TEAM_A, TEAM_B, batting_players, current_inning, utc_now,
)

logger = logging.getLogger(__name__)

# Indoor wickets cost the batting side runs
INDOOR_WICKET_PENALTY = 3

BALLS_PER_OVER = 6


@dataclass(frozen=True)
class FormatPreset:
    overs_limit: Optional[int]
    innings_count: int


@dataclass(frozen=True)
class Constraints:
    min: int
    max: int


FORMAT_PRESETS = {
    MatchFormat.INDOOR: FormatPreset(overs_limit=18, innings_count=2),
    MatchFormat.T20: FormatPreset(overs_limit=20, innings_count=2),
    MatchFormat.ODI: FormatPreset(overs_limit=50, innings_count=2),
}

OVERS_CONSTRAINTS = {
    MatchFormat.INDOOR: Constraints(min=1, max=18),
    MatchFormat.T20: Constraints(min=1, max=20),
    MatchFormat.ODI: Constraints(min=1, max=50),
}

SQUAD_CONSTRAINTS = {
    MatchFormat.INDOOR: Constraints(min=1, max=12),
    MatchFormat.T20: Constraints(min=1, max=11),
    MatchFormat.ODI: Constraints(min=1, max=11),
}

DEFAULT_SQUAD_SIZE = {
    MatchFormat.INDOOR: 10,
    MatchFormat.T20: 11,
    MatchFormat.ODI: 11,
}


def get_overs_constraints(match_format: MatchFormat) -> Constraints:
    return OVERS_CONSTRAINTS[match_format]


def get_squad_constraints(match_format: MatchFormat) -> Constraints:
    return SQUAD_CONSTRAINTS[match_format]


def clamp_overs_to_format(overs: Optional[int], match_format: MatchFormat) -> Optional[int]:
    if overs is None:
        return None
    bounds = get_overs_constraints(match_format)
    return max(bounds.min, min(bounds.max, overs))


def clamp_squad_size_to_format(squad_size: Optional[int], match_format: MatchFormat) -> int:
    if squad_size is None:
        return DEFAULT_SQUAD_SIZE[match_format]
    bounds = get_squad_constraints(match_format)
    return max(bounds.min, min(bounds.max, squad_size))


def validate_overs_for_format(overs, match_format: MatchFormat) -> dict:
    """
    Check a requested overs limit against the format's bounds.

    Returns {"valid": bool, "errors": [str]} so callers can show every problem at once.
    """
    errors = []
    bounds = get_overs_constraints(match_format)

    if not isinstance(overs, int) or isinstance(overs, bool):
        errors.append("Overs must be a whole number")
    elif overs < bounds.min:
        errors.append(f"Minimum {bounds.min} over{'s' if bounds.min > 1 else ''}")
    elif overs > bounds.max:
        label = "Indoor Mode" if match_format == MatchFormat.INDOOR else match_format.value
        errors.append(f"{label} maximum is {bounds.max} overs")

    return {"valid": len(errors) == 0, "errors": errors}


def validate_squad_size_for_format(squad_size: int, match_format: MatchFormat) -> dict:
    errors = []
    bounds = get_squad_constraints(match_format)
    if squad_size < bounds.min or squad_size > bounds.max:
        errors.append(f"Allowed range is {bounds.min}-{bounds.max}")
    return {"valid": len(errors) == 0, "errors": errors}


def _truncate_roster(state: MatchState, side: str):
    attr = "team_a" if side == TEAM_A else "team_b"
    players = getattr(state, f"{attr}_players")
    if len(players) <= state.squad_size:
        return

    players = players[:state.squad_size]
    setattr(state, f"{attr}_players", players)
    kept_ids = {p.id for p in players}
    for role in ("captain", "keeper"):
        key = f"{attr}_{role}_id"
        if getattr(state, key) not in kept_ids:
            setattr(state, key, None)
    logger.debug("Truncated team %s roster to %d players", side, state.squad_size)


def reset_batting_order(state: MatchState):
    """Indoor re-batting order follows the batting team's roster; other formats keep none."""
    if state.format == MatchFormat.INDOOR and state.innings:
        state.batting_order = [p.id for p in batting_players(state)]
    else:
        state.batting_order = []
    state.batting_cycle_dismissals = 0


def apply_format(state: MatchState, match_format: MatchFormat) -> MatchState:
    """Apply a format preset to the match in place (used before play starts)."""
    preset = FORMAT_PRESETS[match_format]
    state.format = match_format
    state.innings_count = preset.innings_count
    state.overs_limit = clamp_overs_to_format(preset.overs_limit, match_format)

    if state.innings:
        current_inning(state).overs_limit = state.overs_limit

    state.squad_size = clamp_squad_size_to_format(state.squad_size, match_format)
    _truncate_roster(state, TEAM_A)
    _truncate_roster(state, TEAM_B)

    reset_batting_order(state)
    state.updated_at = utc_now()
    logger.debug("Applied format %s: %s overs, %d innings", match_format.value, state.overs_limit, state.innings_count)
    return state


def set_overs_limit(state: MatchState, overs: int) -> MatchState:
    """Custom overs limit, clamped to the format and pushed onto the open innings."""
    state.overs_limit = clamp_overs_to_format(overs, state.format)
    if state.innings:
        current_inning(state).overs_limit = state.overs_limit
    state.updated_at = utc_now()
    return state


def set_squad_size(state: MatchState, squad_size: Optional[int]) -> MatchState:
    """Clamp and apply a squad size; None picks the format default. Trims rosters that no longer fit."""
    state.squad_size = clamp_squad_size_to_format(squad_size, state.format)
    _truncate_roster(state, TEAM_A)
    _truncate_roster(state, TEAM_B)
    if state.format == MatchFormat.INDOOR:
        reset_batting_order(state)
    state.updated_at = utc_now()
    return state
