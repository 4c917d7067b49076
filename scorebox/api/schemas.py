"""
Pydantic schemas for API request/response models
"""
from pydantic import BaseModel, Field
from typing import Any, Optional
from datetime import datetime
from enum import Enum

from scorebox.engine.state import DismissalType, ExtraType, MatchFormat, MatchStatus, TossDecision


class SideEnum(str, Enum):
    A = "A"
    B = "B"


# Match setup
class MatchCreate(BaseModel):
    team_a_name: Optional[str] = None
    team_b_name: Optional[str] = None
    format: MatchFormat = MatchFormat.INDOOR
    overs: Optional[int] = None
    squad_size: Optional[int] = None
    match_location: str = ""
    demo_rosters: bool = False  # fill both squads with placeholder players


class FormatRequest(BaseModel):
    format: MatchFormat


class OversRequest(BaseModel):
    overs: int


class SquadSizeRequest(BaseModel):
    squad_size: int


class PlayerCreate(BaseModel):
    side: SideEnum
    name: str = Field(min_length=1, max_length=100)
    substitute: bool = False
    is_captain: bool = False
    is_keeper: bool = False


class TossRequest(BaseModel):
    winner: SideEnum
    decision: TossDecision


class CreaseRequest(BaseModel):
    player_id: str


class DeliveryRequest(BaseModel):
    runs: int = Field(default=0, ge=0)  # total off the ball, penalty run included for wides/no-balls
    is_legal: bool = True
    is_wicket: bool = False
    extra_type: Optional[ExtraType] = None
    dismissal: Optional[str] = None
    dismissal_type: Optional[DismissalType] = None
    fielder_id: Optional[str] = None
    display: Optional[str] = None
    wall_bonus: bool = False
    runs_for_rotation: Optional[int] = None


class CommentaryRequest(BaseModel):
    text: str = Field(min_length=1, max_length=500)


# Responses
class MatchSummaryResponse(BaseModel):
    id: str
    team_a_name: str
    team_b_name: str
    format: MatchFormat
    status: MatchStatus
    result_summary: Optional[str] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MatchStateResponse(BaseModel):
    id: str
    state: dict[str, Any]


class PlayerStateBrief(BaseModel):
    id: str
    name: str
    runs: int = 0
    balls: int = 0
    fours: int = 0
    sixes: int = 0
    is_out: bool = False
    outs_count: int = 0
    strike_rate: float = 0.0


class BowlerStateBrief(BaseModel):
    id: str
    name: str
    overs: str = "0.0"
    maidens: int = 0
    runs: int = 0
    wickets: int = 0
    wides: int = 0
    no_balls: int = 0
    economy: float = 0.0


class ScoreSummaryResponse(BaseModel):
    id: str
    status: MatchStatus
    format: MatchFormat
    innings: int
    batting_team_name: str
    bowling_team_name: str
    runs: int
    wickets: int
    overs: str
    extras: int
    run_rate: float
    required_rate: Optional[float] = None
    projected_score: Optional[int] = None
    target: Optional[int] = None
    balls_remaining: Optional[int] = None
    innings_completed: bool = False

    striker: Optional[PlayerStateBrief] = None
    non_striker: Optional[PlayerStateBrief] = None
    bowler: Optional[BowlerStateBrief] = None
    next_batter_id: Optional[str] = None

    partnership_runs: int = 0
    partnership_balls: int = 0

    this_over: list[str]
    batting: list[PlayerStateBrief]
    bowling: list[BowlerStateBrief]

    result: Optional[str] = None
