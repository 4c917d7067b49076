"""
Shared fixtures: match builders for the engine tests and an in-memory database for the
store and API tests.
"""
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from scorebox.database import init_db, get_db
from scorebox.engine.formats import apply_format, set_overs_limit, set_squad_size
from scorebox.engine.innings import (
    add_player, apply_toss, create_new_match, next_batter_in_order, set_next_batter, set_next_bowler,
)
from scorebox.engine.scoring import apply_delivery
from scorebox.engine.serialization import match_to_dict
from scorebox.engine.state import (
    Delivery, MatchFormat, MatchState, TEAM_A, TEAM_B, TossDecision, batting_players,
    bowling_players, current_inning,
)


def build_match(
    match_format: MatchFormat = MatchFormat.T20,
    squad_size: Optional[int] = None,
    overs: Optional[int] = None,
) -> MatchState:
    """
    A live match with full squads (ids a1.., b1..), A batting first, a1/a2 at the crease
    and b1 bowling.
    """
    state = create_new_match()
    apply_format(state, match_format)
    set_squad_size(state, squad_size)
    if overs is not None:
        set_overs_limit(state, overs)

    for side in (TEAM_A, TEAM_B):
        for i in range(1, state.squad_size + 1):
            add_player(state, side, f"{side}{i}", player_id=f"{side.lower()}{i}")

    apply_toss(state, TEAM_A, TossDecision.BAT)
    set_next_batter(state, "a1")
    set_next_batter(state, "a2")
    set_next_bowler(state, "b1")
    return state


def refill_crease(state: MatchState) -> MatchState:
    """Send in the next available batter(s) and change the bowler after an over."""
    while not state.striker_id or not state.non_striker_id:
        at_crease = {state.striker_id, state.non_striker_id}
        if state.format == MatchFormat.INDOOR:
            next_id = next_batter_in_order(state)
        else:
            next_id = next((p.id for p in batting_players(state) if not p.is_out and p.id not in at_crease), None)
        if next_id is None:
            break
        set_next_batter(state, next_id)

    if not state.bowler_id:
        innings = current_inning(state)
        last = innings.deliveries[-1].bowler_id if innings.deliveries else None
        bowler = next(p for p in bowling_players(state) if p.id != last)
        set_next_bowler(state, bowler.id)
    return state


def play(state: MatchState, *deliveries: Delivery) -> MatchState:
    """Bowl each delivery in turn, refilling the crease before every ball."""
    for delivery in deliveries:
        state = apply_delivery(refill_crease(state), delivery)
    return state


def snapshot(state: MatchState) -> dict:
    """Comparable dump of a match, ignoring the last-modified stamp."""
    data = match_to_dict(state)
    data.pop("updated_at")
    return data


@pytest.fixture
def make_match():
    return build_match


@pytest.fixture
def t20_match():
    return build_match(MatchFormat.T20)


@pytest.fixture
def indoor_match():
    return build_match(MatchFormat.INDOOR)


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    session = sessionmaker(bind=db_engine)()
    yield session
    session.close()


@pytest.fixture
def client(db_engine):
    from main import app

    TestingSession = sessionmaker(bind=db_engine)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
