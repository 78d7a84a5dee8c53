from __future__ import annotations

import datetime as dt
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

StageType = Literal["SWISS", "PLAYOFF", "FINAL"]
SchedulerType = Literal["swiss", "playoff", "frc"]
MatchStatus = Literal["PENDING", "IN_PROGRESS", "COMPLETED"]
AllianceColor = Literal["RED", "BLUE"]
QualityLevel = Literal["low", "medium", "high"]
PresetName = Literal["frcRegional", "frcSmall", "current2v2", "current1v1", "fast"]

COMPLETED: MatchStatus = "COMPLETED"


class _Wire(BaseModel):
    # Payloads from the API are camelCase; ids and team numbers may arrive as ints.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True)


class Team(_Wire):
    id: str
    team_number: str
    name: str
    organization: Optional[str] = None


class MatchTeam(_Wire):
    id: Optional[str] = None
    team_number: Optional[str] = None
    name: Optional[str] = None


class TeamAlliance(_Wire):
    team: Optional[MatchTeam] = None


class Alliance(_Wire):
    color: str
    team_alliances: List[TeamAlliance] = Field(default_factory=list)


class ScheduledMatch(_Wire):
    id: str
    match_number: int = 0
    round_number: Optional[int] = None
    status: Optional[str] = None
    alliances: List[Alliance] = Field(default_factory=list)

    @property
    def display_status(self) -> str:
        return self.status or "PENDING"

    def team_numbers(self, color: AllianceColor) -> List[str]:
        for alliance in self.alliances:
            if alliance.color == color:
                return [(ta.team.team_number if ta.team and ta.team.team_number else "TBD") for ta in alliance.team_alliances]
        return []


class StageReadiness(_Wire):
    ready: bool
    reason: Optional[str] = None
    incomplete_matches: Optional[int] = None
    total_teams: Optional[int] = None


class ApiEnvelope(_Wire):
    success: bool
    message: Optional[str] = ""
    data: Any = None
    error: Optional[str] = None


class SwissRoundProgress(BaseModel):
    latest_round_number: int = 0
    all_matches_completed: bool = False


# --- Stage advancement -------------------------------------------------------


class TeamRanking(_Wire):
    team_id: str
    team_number: str
    team_name: str
    wins: int = 0
    losses: int = 0
    ties: int = 0
    points_scored: float = 0
    points_conceded: float = 0
    point_differential: float = 0
    ranking_points: float = 0
    tiebreaker1: float = 0
    tiebreaker2: float = 0
    rank: Optional[int] = None


class NextStageConfig(_Wire):
    name: str
    type: StageType
    start_date: dt.datetime
    end_date: dt.datetime
    teams_per_alliance: Optional[int] = Field(default=None, ge=1, le=3)


class AdvancementOptions(_Wire):
    teams_to_advance: int = Field(ge=1)
    next_stage_id: Optional[str] = None
    create_next_stage: Optional[bool] = None
    next_stage_config: Optional[NextStageConfig] = None


class AdvancedTeam(_Wire):
    id: str
    team_number: str
    name: str
    current_stage_id: Optional[str] = None


class StageRef(_Wire):
    id: str
    name: str = ""
    status: Optional[str] = None
    type: Optional[str] = None


class AdvancementResult(_Wire):
    advanced_teams: List[AdvancedTeam] = Field(default_factory=list)
    completed_stage: Optional[StageRef] = None
    next_stage: Optional[StageRef] = None
    total_teams_advanced: int = 0


# --- Scheduler configuration -------------------------------------------------
# Config models are frozen; the collector swaps in validated copies.


class FrcPreset(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["preset"] = "preset"
    name: PresetName


class FrcManual(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["manual"] = "manual"
    rounds: int = Field(default=6, ge=1, le=20)
    quality_level: QualityLevel = "medium"
    min_match_separation: int = Field(default=1, ge=1, le=10)


FrcParams = Annotated[Union[FrcPreset, FrcManual], Field(discriminator="kind")]


class SwissConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    scheduler_type: Literal["swiss"] = "swiss"
    teams_per_alliance: int = Field(default=2, ge=1, le=3)
    current_round_number: int = Field(default=0, ge=0)  # 0 generates the first round


class PlayoffConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    scheduler_type: Literal["playoff"] = "playoff"
    teams_per_alliance: int = Field(default=2, ge=1, le=3)
    number_of_rounds: Literal[2, 3, 4, 5] = 3

    @property
    def bracket_size(self) -> int:
        return 2 ** self.number_of_rounds


class FrcConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    scheduler_type: Literal["frc"] = "frc"
    teams_per_alliance: int = Field(default=2, ge=1, le=3)
    params: FrcParams = Field(default_factory=FrcManual)
    advanced: bool = False


SchedulerConfig = Annotated[Union[SwissConfig, PlayoffConfig, FrcConfig], Field(discriminator="scheduler_type")]
