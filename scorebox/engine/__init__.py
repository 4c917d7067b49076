from scorebox.engine.formats import apply_format, set_overs_limit, set_squad_size
from scorebox.engine.innings import (
    create_new_match, apply_toss, start_next_innings, end_innings,
    set_next_batter, set_next_bowler, add_player, complete_match,
)
from scorebox.engine.metrics import (
    get_current_run_rate, get_required_run_rate, get_projected_score,
    get_partnership, get_match_result,
)
from scorebox.engine.scoring import apply_delivery, undo_last_delivery

__all__ = [
    "create_new_match",
    "apply_format",
    "set_overs_limit",
    "set_squad_size",
    "apply_delivery",
    "undo_last_delivery",
    "apply_toss",
    "start_next_innings",
    "end_innings",
    "set_next_batter",
    "set_next_bowler",
    "add_player",
    "complete_match",
    "get_current_run_rate",
    "get_required_run_rate",
    "get_projected_score",
    "get_partnership",
    "get_match_result",
]
