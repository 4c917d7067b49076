"""
Match state for ball-by-ball scoring.

Everything here is a plain dataclass with str-valued enums so a whole match can
be handed to the JSON codec in serialization.py without custom hooks.
"""
import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional


class MatchFormat(str, enum.Enum):
    INDOOR = "INDOOR"
    T20 = "T20"
    ODI = "ODI"


class ExtraType(str, enum.Enum):
    WIDE = "wide"
    NO_BALL = "noball"
    BYE = "bye"
    LEG_BYE = "legbye"


class DismissalType(str, enum.Enum):
    BOWLED = "Bowled"
    CAUGHT = "Caught"
    LBW = "LBW"
    RUN_OUT = "Run Out"
    STUMPED = "Stumped"
    HIT_WICKET = "Hit Wicket"
    OTHER = "Other"


class MatchStatus(str, enum.Enum):
    DRAFT = "draft"
    LIVE = "live"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    DELETED = "deleted"


class TossDecision(str, enum.Enum):
    BAT = "BAT"
    BOWL = "BOWL"


# Teams are referred to by side, not by name
TEAM_A = "A"
TEAM_B = "B"


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class DismissalDetails:
    type: DismissalType
    bowler_name: Optional[str] = None
    fielder_name: Optional[str] = None


@dataclass
class Player:
    """A roster entry plus the batting totals for the innings in progress"""
    id: str
    name: str
    runs: int = 0
    balls: int = 0
    fours: int = 0
    sixes: int = 0
    is_out: bool = False
    dismissal: Optional[str] = None
    dismissal_details: Optional[DismissalDetails] = None
    outs_count: int = 0  # Indoor only
    is_captain: bool = False
    is_keeper: bool = False
    is_substitute: bool = False

    @property
    def strike_rate(self) -> float:
        if self.balls == 0:
            return 0.0
        return (self.runs / self.balls) * 100

    def reset_innings_stats(self, reset_outs: bool = False):
        self.runs = 0
        self.balls = 0
        self.fours = 0
        self.sixes = 0
        self.is_out = False
        self.dismissal = None
        self.dismissal_details = None
        if reset_outs:
            self.outs_count = 0


@dataclass(frozen=True)
class Delivery:
    """One ball and its full outcome. Never mutated once appended to an innings."""
    runs: int = 0
    is_legal: bool = True
    is_wicket: bool = False
    extra_type: Optional[ExtraType] = None
    dismissal: Optional[str] = None
    dismissal_type: Optional[DismissalType] = None
    fielder_id: Optional[str] = None
    batter_id: Optional[str] = None
    non_striker_id: Optional[str] = None
    bowler_id: Optional[str] = None
    display: str = ""
    runs_for_rotation: Optional[int] = None
    wall_bonus: bool = False


@dataclass
class Extras:
    wides: int = 0
    no_balls: int = 0
    byes: int = 0
    leg_byes: int = 0

    @property
    def total(self) -> int:
        return self.wides + self.no_balls + self.byes + self.leg_byes


@dataclass
class Innings:
    batting_team: str = TEAM_A
    bowling_team: str = TEAM_B
    deliveries: List[Delivery] = field(default_factory=list)
    total_runs: int = 0
    wickets: int = 0
    total_balls: int = 0  # legal deliveries only, doubles as the over clock
    overs_limit: Optional[int] = None  # None = unlimited
    target: Optional[int] = None
    extras: Extras = field(default_factory=Extras)
    completed: bool = False

    def __repr__(self):
        return f"<Innings {self.batting_team}: {self.total_runs}/{self.wickets} ({self.total_balls // 6}.{self.total_balls % 6})>"


@dataclass
class Toss:
    winner_team: Optional[str] = None
    decision: Optional[TossDecision] = None


@dataclass
class CommentaryEntry:
    over: int
    ball: int
    text: str
    auto: bool = False


@dataclass
class MatchState:
    """Aggregate root: owns both rosters and every innings of one match"""
    team_a_name: str = "Team A"
    team_b_name: str = "Team B"

    format: MatchFormat = MatchFormat.INDOOR
    innings_count: int = 1
    current_innings: int = 0
    innings: List[Innings] = field(default_factory=list)

    team_a_players: List[Player] = field(default_factory=list)
    team_b_players: List[Player] = field(default_factory=list)
    team_a_substitutes: List[Player] = field(default_factory=list)
    team_b_substitutes: List[Player] = field(default_factory=list)
    squad_size: int = 10

    team_a_captain_id: Optional[str] = None
    team_b_captain_id: Optional[str] = None
    team_a_keeper_id: Optional[str] = None
    team_b_keeper_id: Optional[str] = None

    # Crease
    striker_id: Optional[str] = None
    non_striker_id: Optional[str] = None
    bowler_id: Optional[str] = None

    overs_limit: Optional[int] = 18

    # Indoor re-batting cycle
    batting_order: List[str] = field(default_factory=list)
    batting_cycle_dismissals: int = 0

    toss: Toss = field(default_factory=Toss)
    commentary: List[CommentaryEntry] = field(default_factory=list)
    status: MatchStatus = MatchStatus.DRAFT

    match_location: str = ""
    match_date: str = ""
    match_time: str = ""
    has_activity: bool = False

    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)
    completed_at: Optional[str] = None
    deleted_at: Optional[str] = None

    def __repr__(self):
        return f"<Match {self.team_a_name} vs {self.team_b_name} ({self.format.value}, {self.status.value})>"


def other_side(side: str) -> str:
    return TEAM_B if side == TEAM_A else TEAM_A


def current_inning(state: MatchState) -> Innings:
    return state.innings[state.current_innings]


def team_players(state: MatchState, side: str) -> List[Player]:
    return state.team_a_players if side == TEAM_A else state.team_b_players


def team_name(state: MatchState, side: str) -> str:
    return state.team_a_name if side == TEAM_A else state.team_b_name


def batting_players(state: MatchState, innings: Optional[Innings] = None) -> List[Player]:
    innings = innings or current_inning(state)
    return team_players(state, innings.batting_team)


def bowling_players(state: MatchState, innings: Optional[Innings] = None) -> List[Player]:
    innings = innings or current_inning(state)
    return team_players(state, innings.bowling_team)


def find_player(players: List[Player], player_id: Optional[str]) -> Optional[Player]:
    if player_id is None:
        return None
    return next((p for p in players if p.id == player_id), None)
