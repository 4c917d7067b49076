import logging
from dataclasses import replace
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import Optional

from scorebox.database import get_db
from scorebox.engine.formats import (
    apply_format, set_overs_limit, set_squad_size, validate_overs_for_format, validate_squad_size_for_format,
    BALLS_PER_OVER,
)
from scorebox.engine.innings import (
    create_new_match, add_player, add_substitute, set_captain, set_keeper, apply_toss,
    set_next_batter, set_next_bowler, next_batter_in_order, end_innings, start_next_innings,
    add_commentary, complete_match,
)
from scorebox.engine.metrics import (
    get_balls_remaining, get_current_run_rate, get_match_result, get_overs_display,
    get_partnership, get_projected_score, get_required_run_rate,
)
from scorebox.engine.scoring import PENALTY_EXTRAS, apply_delivery, display_for, undo_last_delivery
from scorebox.engine.serialization import match_to_dict
from scorebox.engine.state import (
    Delivery, Innings, MatchState, MatchStatus, Player, batting_players,
    bowling_players, current_inning, find_player, team_name,
)
from scorebox.engine.stats import bowler_name, get_bowler_stats
from scorebox.generators import RosterGenerator
from scorebox.store import MatchStore, new_match_id
from scorebox.api.schemas import (
    MatchCreate, FormatRequest, OversRequest, SquadSizeRequest, PlayerCreate, TossRequest, CreaseRequest,
    DeliveryRequest, CommentaryRequest, MatchSummaryResponse, MatchStateResponse,
    PlayerStateBrief, BowlerStateBrief, ScoreSummaryResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/matches", tags=["Scoring"])


def _load_match(store: MatchStore, match_id: str) -> MatchState:
    state = store.load(match_id)
    if state is None or state.status == MatchStatus.DELETED:
        raise HTTPException(status_code=404, detail="Match not found")
    return state


def _save_match(store: MatchStore, match_id: str, state: MatchState) -> MatchStateResponse:
    result = store.save(match_id, state)
    if not result.success:
        raise HTTPException(status_code=500, detail=f"Could not save match: {result.error}")
    return MatchStateResponse(id=match_id, state=match_to_dict(state))


def _this_over(innings: Innings) -> list[str]:
    balls = []
    clock = 0
    for delivery in innings.deliveries:
        balls.append(delivery.display)
        if delivery.is_legal:
            clock += 1
            if clock % BALLS_PER_OVER == 0:
                balls = []
    return balls


def _player_brief(player: Optional[Player]) -> Optional[PlayerStateBrief]:
    if player is None:
        return None
    return PlayerStateBrief(
        id=player.id,
        name=player.name,
        runs=player.runs,
        balls=player.balls,
        fours=player.fours,
        sixes=player.sixes,
        is_out=player.is_out,
        outs_count=player.outs_count,
        strike_rate=round(player.strike_rate, 2),
    )


def _score_summary(match_id: str, state: MatchState) -> ScoreSummaryResponse:
    innings = current_inning(state)
    batters = batting_players(state, innings)
    figures = get_bowler_stats(innings)
    partnership = get_partnership(state)

    bowling = [
        BowlerStateBrief(
            id=bowler_id,
            name=bowler_name(state, innings, bowler_id),
            overs=spell.overs_display,
            maidens=spell.maidens,
            runs=spell.runs_conceded,
            wickets=spell.wickets,
            wides=spell.wides,
            no_balls=spell.no_balls,
            economy=round(spell.economy, 2),
        )
        for bowler_id, spell in figures.items()
    ]
    current_bowler = next((b for b in bowling if b.id == state.bowler_id), None)
    if current_bowler is None and state.bowler_id:
        bowler = find_player(bowling_players(state, innings), state.bowler_id)
        current_bowler = BowlerStateBrief(id=bowler.id, name=bowler.name) if bowler else None

    required = get_required_run_rate(innings)

    return ScoreSummaryResponse(
        id=match_id,
        status=state.status,
        format=state.format,
        innings=state.current_innings + 1,
        batting_team_name=team_name(state, innings.batting_team),
        bowling_team_name=team_name(state, innings.bowling_team),
        runs=innings.total_runs,
        wickets=innings.wickets,
        overs=get_overs_display(innings.total_balls),
        extras=innings.extras.total,
        run_rate=round(get_current_run_rate(innings), 2),
        required_rate=round(required, 2) if required is not None else None,
        projected_score=get_projected_score(innings),
        target=innings.target,
        balls_remaining=get_balls_remaining(innings),
        innings_completed=innings.completed,
        striker=_player_brief(find_player(batters, state.striker_id)),
        non_striker=_player_brief(find_player(batters, state.non_striker_id)),
        bowler=current_bowler,
        next_batter_id=next_batter_in_order(state),
        partnership_runs=partnership.runs,
        partnership_balls=partnership.balls,
        this_over=_this_over(innings),
        batting=[_player_brief(p) for p in batters],
        bowling=bowling,
        result=get_match_result(state),
    )


@router.post("", response_model=MatchStateResponse)
def create_match(request: MatchCreate, db: Session = Depends(get_db)):
    """Create a draft match with the chosen format applied"""
    state = create_new_match()
    apply_format(state, request.format)
    set_squad_size(state, request.squad_size)
    if request.overs is not None:
        set_overs_limit(state, request.overs)

    state.match_location = request.match_location
    if request.demo_rosters:
        RosterGenerator.fill_rosters(state)
    if request.team_a_name:
        state.team_a_name = request.team_a_name
    if request.team_b_name:
        state.team_b_name = request.team_b_name

    match_id = new_match_id()
    logger.info(f"Created match {match_id} ({state.format.value})")
    return _save_match(MatchStore(db), match_id, state)


@router.get("", response_model=list[MatchSummaryResponse])
def list_matches(include_deleted: bool = False, db: Session = Depends(get_db)):
    return MatchStore(db).list_matches(include_deleted=include_deleted)


@router.get("/{match_id}", response_model=MatchStateResponse)
def get_match(match_id: str, db: Session = Depends(get_db)):
    state = _load_match(MatchStore(db), match_id)
    return MatchStateResponse(id=match_id, state=match_to_dict(state))


@router.get("/{match_id}/summary", response_model=ScoreSummaryResponse)
def get_summary(match_id: str, db: Session = Depends(get_db)):
    """Live scoreboard: totals, rates, partnership, figures and result"""
    state = _load_match(MatchStore(db), match_id)
    return _score_summary(match_id, state)


@router.delete("/{match_id}")
def delete_match(match_id: str, db: Session = Depends(get_db)):
    store = MatchStore(db)
    _load_match(store, match_id)
    result = store.delete(match_id)
    if not result.success:
        raise HTTPException(status_code=500, detail=f"Could not delete match: {result.error}")
    return {"id": match_id, "status": MatchStatus.DELETED.value}


@router.post("/{match_id}/format", response_model=MatchStateResponse)
def change_format(match_id: str, request: FormatRequest, db: Session = Depends(get_db)):
    store = MatchStore(db)
    state = _load_match(store, match_id)
    if state.has_activity:
        raise HTTPException(status_code=400, detail="Format cannot change after scoring has started")
    apply_format(state, request.format)
    return _save_match(store, match_id, state)


@router.post("/{match_id}/overs", response_model=MatchStateResponse)
def change_overs(match_id: str, request: OversRequest, db: Session = Depends(get_db)):
    store = MatchStore(db)
    state = _load_match(store, match_id)
    validation = validate_overs_for_format(request.overs, state.format)
    if not validation["valid"]:
        raise HTTPException(status_code=400, detail="; ".join(validation["errors"]))
    set_overs_limit(state, request.overs)
    return _save_match(store, match_id, state)


@router.post("/{match_id}/squad-size", response_model=MatchStateResponse)
def change_squad_size(match_id: str, request: SquadSizeRequest, db: Session = Depends(get_db)):
    store = MatchStore(db)
    state = _load_match(store, match_id)
    if state.has_activity:
        raise HTTPException(status_code=400, detail="Squad size cannot change after scoring has started")
    validation = validate_squad_size_for_format(request.squad_size, state.format)
    if not validation["valid"]:
        raise HTTPException(status_code=400, detail="; ".join(validation["errors"]))
    set_squad_size(state, request.squad_size)
    return _save_match(store, match_id, state)


@router.post("/{match_id}/players", response_model=MatchStateResponse)
def create_player(match_id: str, request: PlayerCreate, db: Session = Depends(get_db)):
    store = MatchStore(db)
    state = _load_match(store, match_id)
    side = request.side.value

    if request.substitute:
        add_substitute(state, side, request.name)
        return _save_match(store, match_id, state)

    player = add_player(state, side, request.name)
    if player is None:
        raise HTTPException(status_code=400, detail=f"Squad is full ({state.squad_size} players)")
    if request.is_captain:
        set_captain(state, side, player.id)
    if request.is_keeper:
        set_keeper(state, side, player.id)
    return _save_match(store, match_id, state)


@router.post("/{match_id}/toss", response_model=MatchStateResponse)
def do_toss(match_id: str, request: TossRequest, db: Session = Depends(get_db)):
    store = MatchStore(db)
    state = _load_match(store, match_id)
    if state.has_activity:
        raise HTTPException(status_code=400, detail="Toss already played out")
    apply_toss(state, request.winner.value, request.decision)
    return _save_match(store, match_id, state)


@router.post("/{match_id}/batter", response_model=MatchStateResponse)
def choose_batter(match_id: str, request: CreaseRequest, db: Session = Depends(get_db)):
    store = MatchStore(db)
    state = _load_match(store, match_id)
    set_next_batter(state, request.player_id)
    return _save_match(store, match_id, state)


@router.post("/{match_id}/bowler", response_model=MatchStateResponse)
def choose_bowler(match_id: str, request: CreaseRequest, db: Session = Depends(get_db)):
    store = MatchStore(db)
    state = _load_match(store, match_id)
    set_next_bowler(state, request.player_id)
    return _save_match(store, match_id, state)


@router.post("/{match_id}/deliveries", response_model=MatchStateResponse)
def record_delivery(match_id: str, request: DeliveryRequest, db: Session = Depends(get_db)):
    """Score one ball. Ignored by the engine when the crease is incomplete."""
    store = MatchStore(db)
    state = _load_match(store, match_id)

    delivery = Delivery(
        runs=request.runs,
        is_legal=request.is_legal and request.extra_type not in PENALTY_EXTRAS,
        is_wicket=request.is_wicket,
        extra_type=request.extra_type,
        dismissal=request.dismissal,
        dismissal_type=request.dismissal_type,
        fielder_id=request.fielder_id,
        wall_bonus=request.wall_bonus,
        runs_for_rotation=request.runs_for_rotation,
    )
    delivery = replace(delivery, display=request.display or display_for(delivery))
    new_state = apply_delivery(state, delivery)
    if new_state is not state and request.is_wicket:
        scored = current_inning(new_state).deliveries[-1]
        dismissed = find_player(batting_players(new_state), scored.batter_id)
        add_commentary(new_state, f"WICKET! {dismissed.dismissal if dismissed else 'out'}", auto=True)
    return _save_match(store, match_id, new_state)


@router.post("/{match_id}/undo", response_model=MatchStateResponse)
def undo_delivery(match_id: str, db: Session = Depends(get_db)):
    store = MatchStore(db)
    state = _load_match(store, match_id)
    return _save_match(store, match_id, undo_last_delivery(state))


@router.post("/{match_id}/commentary", response_model=MatchStateResponse)
def post_commentary(match_id: str, request: CommentaryRequest, db: Session = Depends(get_db)):
    store = MatchStore(db)
    state = _load_match(store, match_id)
    add_commentary(state, request.text)
    return _save_match(store, match_id, state)


@router.post("/{match_id}/innings/end", response_model=MatchStateResponse)
def finish_innings(match_id: str, db: Session = Depends(get_db)):
    store = MatchStore(db)
    state = _load_match(store, match_id)
    end_innings(state)
    return _save_match(store, match_id, state)


@router.post("/{match_id}/innings/next", response_model=MatchStateResponse)
def next_innings(match_id: str, db: Session = Depends(get_db)):
    store = MatchStore(db)
    state = _load_match(store, match_id)
    if state.current_innings + 1 >= state.innings_count:
        raise HTTPException(status_code=400, detail="No innings left to start")
    start_next_innings(state)
    return _save_match(store, match_id, state)


@router.post("/{match_id}/complete", response_model=MatchStateResponse)
def finish_match(match_id: str, db: Session = Depends(get_db)):
    store = MatchStore(db)
    state = _load_match(store, match_id)
    complete_match(state)
    return _save_match(store, match_id, state)
