from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class MatchStatus(str, Enum):
    """Lifecycle of a match: toss pending, in play, finished."""

    TOSS = "TOSS"
    LIVE = "LIVE"
    COMPLETED = "COMPLETED"


class DismissalType(str, Enum):
    NONE = "NONE"
    BOWLED = "BOWLED"
    CAUGHT = "CAUGHT"
    LBW = "LBW"
    RUN_OUT = "RUN_OUT"
    STUMPED = "STUMPED"
    HIT_WICKET = "HIT_WICKET"


class ExtraType(str, Enum):
    NONE = "NONE"
    WIDE = "WIDE"
    NO_BALL = "NO_BALL"
    BYE = "BYE"
    LEG_BYE = "LEG_BYE"


class NotificationType(str, Enum):
    """Events the scoring surface animates after a delivery."""

    FOUR = "FOUR"
    SIX = "SIX"
    WICKET = "WICKET"
    WIN = "WIN"
    INNINGS_BREAK = "INNINGS_BREAK"
    NONE = "NONE"


# =========================================================================== #
#  Match data model
# =========================================================================== #


class Player(BaseModel):
    """A squad member with cumulative batting and bowling figures for one match."""

    id: str
    name: str
    avatar: Optional[str] = None
    team_id: str
    is_captain: bool = False

    # Batting
    runs: int = 0
    balls_faced: int = 0
    fours: int = 0
    sixes: int = 0
    is_out: bool = False
    dismissal_type: DismissalType = DismissalType.NONE

    # Bowling
    balls_bowled: int = Field(0, description="Legal deliveries bowled")
    runs_conceded: int = 0
    wickets: int = 0
    maidens: int = 0


class Team(BaseModel):
    id: str
    name: str
    players: list[Player] = Field(default_factory=list)
    is_batting: bool = False
    total_runs: int = 0
    wickets: int = 0
    legal_balls: int = Field(0, description="Legal deliveries faced while batting")
    extras: int = 0

    def get_player(self, player_id: Optional[str]) -> Optional[Player]:
        if player_id is None:
            return None
        return next((p for p in self.players if p.id == player_id), None)


class Ball(BaseModel):
    """One delivery, legal or not. Never modified once appended to the log."""

    id: str
    innings: int = Field(..., ge=1, le=2)
    over_number: int = Field(..., description="Over index (0-indexed)")
    ball_number: int = Field(..., description="Legal ball within the over (1-6)")
    bowler_id: str
    striker_id: str
    non_striker_id: Optional[str] = None
    runs_scored: int = Field(0, description="Runs credited to the batter")
    extra_type: ExtraType = ExtraType.NONE
    extra_runs: int = 0
    is_wicket: bool = False
    dismissal_type: DismissalType = DismissalType.NONE
    dismissed_player_id: Optional[str] = None
    timestamp: datetime

    @property
    def total_runs(self) -> int:
        return self.runs_scored + self.extra_runs

    @property
    def is_legal(self) -> bool:
        return self.extra_type not in (ExtraType.WIDE, ExtraType.NO_BALL)


class Match(BaseModel):
    """The full scoring snapshot of a two-innings limited-overs match."""

    id: str
    date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    status: MatchStatus = MatchStatus.TOSS
    total_overs: int = Field(..., ge=1)
    team_a: Team
    team_b: Team
    toss_winner_id: Optional[str] = None
    batting_first_id: Optional[str] = None
    current_innings: int = Field(1, ge=1, le=2)
    balls: list[Ball] = Field(default_factory=list)

    # Live slots; None means the caller still has to pick someone
    current_striker_id: Optional[str] = None
    current_non_striker_id: Optional[str] = None
    current_bowler_id: Optional[str] = None

    winning_team_id: Optional[str] = None
    man_of_the_match_id: Optional[str] = None

    @property
    def teams(self) -> tuple[Team, Team]:
        return self.team_a, self.team_b

    @property
    def batting_team(self) -> Team:
        return self.team_a if self.team_a.is_batting else self.team_b

    @property
    def bowling_team(self) -> Team:
        return self.team_b if self.team_a.is_batting else self.team_a

    def get_team(self, team_id: Optional[str]) -> Optional[Team]:
        return next((t for t in self.teams if t.id == team_id), None)

    def other_team(self, team_id: str) -> Team:
        return self.team_b if team_id == self.team_a.id else self.team_a

    def get_player(self, player_id: Optional[str]) -> Optional[Player]:
        """Look a player up in either roster."""
        return self.team_a.get_player(player_id) or self.team_b.get_player(player_id)

    def batting_team_for(self, innings: int) -> Optional[Team]:
        """The team that batted (or is batting) in the given innings."""
        if self.batting_first_id is None:
            return None
        first = self.get_team(self.batting_first_id)
        return first if innings == 1 else self.other_team(first.id)

    def innings_balls(self, innings: Optional[int] = None) -> list[Ball]:
        innings = innings or self.current_innings
        return [b for b in self.balls if b.innings == innings]

    @property
    def target(self) -> Optional[int]:
        """Runs the chasing side needs; only defined in the second innings."""
        if self.current_innings != 2:
            return None
        return self.bowling_team.total_runs + 1


# =========================================================================== #
#  Engine outputs
# =========================================================================== #


class Notification(BaseModel):
    type: NotificationType = NotificationType.NONE
    message: str = ""


class PendingResolutions(BaseModel):
    """Which live slots the caller must fill before the next delivery."""

    needs_striker: bool = False
    needs_non_striker: bool = False
    needs_bowler: bool = False

    @property
    def any_pending(self) -> bool:
        return self.needs_striker or self.needs_non_striker or self.needs_bowler


class DeliveryResult(BaseModel):
    """Output of one engine transition: the new snapshot plus its effects."""

    match: Match
    pending: PendingResolutions = Field(default_factory=PendingResolutions)
    notification: Notification = Field(default_factory=Notification)

    @property
    def match_completed(self) -> bool:
        return self.match.status == MatchStatus.COMPLETED


# =========================================================================== #
#  API request bodies
# =========================================================================== #


class PlayerEntry(BaseModel):
    name: str = ""
    avatar: Optional[str] = None


class TeamEntry(BaseModel):
    name: str
    players: list[PlayerEntry]
    captain_index: int = Field(0, ge=0)


class CreateMatchRequest(BaseModel):
    team_a: TeamEntry
    team_b: TeamEntry
    total_overs: Optional[int] = Field(None, ge=1)


class TossRequest(BaseModel):
    winner_id: str
    bat_first: bool


class DeliveryRequest(BaseModel):
    runs: int = Field(0, ge=0)
    extra_type: ExtraType = ExtraType.NONE
    dismissal_type: DismissalType = DismissalType.NONE


class AssignPlayerRequest(BaseModel):
    player_id: str
