from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, Tuple, Union

from pydantic import ValidationError

from .models import (
    FrcConfig,
    FrcManual,
    FrcPreset,
    PlayoffConfig,
    SwissConfig,
)

logger = logging.getLogger(__name__)

AnyConfig = Union[SwissConfig, PlayoffConfig, FrcConfig]

SWISS_ENDPOINT = "/match-scheduler/generate-swiss-round"
PLAYOFF_ENDPOINT = "/match-scheduler/generate-playoff"
FRC_ENDPOINT = "/match-scheduler/generate-frc-schedule"

STAGE_SCHEDULERS: Dict[str, FrozenSet[str]] = {
    "SWISS": frozenset({"swiss", "frc"}),
    "PLAYOFF": frozenset({"playoff"}),
    "FINAL": frozenset(),
}

# teamsPerAlliance -> (partnerRepeat, opponentRepeat). A 1v1 match has no partners.
REPEAT_PENALTIES: Dict[int, Tuple[float, float]] = {
    1: (0.0, 3.0),
    2: (4.0, 2.0),
    3: (3.0, 2.0),
}
MATCH_SEPARATION_PENALTY = 15.0

FRC_PRESETS: Dict[str, str] = {
    "frcRegional": "FRC Regional (3v3, 6 rounds)",
    "frcSmall": "FRC Small Event (3v3, 8 rounds)",
    "current2v2": "Current Format (2v2)",
    "current1v1": "Single Robot (1v1)",
    "fast": "Fast/Testing (Quick generation)",
}


class ConfigError(ValueError):
    pass


def allowed_scheduler_types(stage_type: str) -> FrozenSet[str]:
    return STAGE_SCHEDULERS.get(stage_type, frozenset())


def default_scheduler_type(stage_type: str) -> str:
    return "swiss" if stage_type == "SWISS" else "playoff"


def default_config(scheduler_type: str, teams_per_alliance: int = 2) -> AnyConfig:
    if scheduler_type == "swiss":
        return SwissConfig(teams_per_alliance=teams_per_alliance)
    if scheduler_type == "playoff":
        return PlayoffConfig(teams_per_alliance=teams_per_alliance)
    if scheduler_type == "frc":
        return FrcConfig(teams_per_alliance=teams_per_alliance)
    raise ConfigError(f"Unknown scheduler type: {scheduler_type}")


def advanced_frc_config(teams_per_alliance: int) -> Dict[str, Any]:
    partner, opponent = REPEAT_PENALTIES[teams_per_alliance]
    return {
        "penalties": {
            "partnerRepeat": partner,
            "opponentRepeat": opponent,
            "matchSeparationViolation": MATCH_SEPARATION_PENALTY,
        },
        "stationBalancing": {
            "enabled": True,
            "strategy": "position",
            "perfectBalancing": True,
        },
    }


def build_request(stage_id: str, config: AnyConfig) -> Tuple[str, Dict[str, Any]]:
    """Return ``(endpoint, body)`` for one scheduling request.

    Bodies are assembled per variant so each endpoint gets only its own
    fields. FRC configurations send either ``preset`` or the manual fields,
    never both.
    """
    if isinstance(config, SwissConfig):
        return SWISS_ENDPOINT, {
            "stageId": stage_id,
            "currentRoundNumber": config.current_round_number,
            "teamsPerAlliance": config.teams_per_alliance,
        }

    if isinstance(config, PlayoffConfig):
        return PLAYOFF_ENDPOINT, {
            "stageId": stage_id,
            "numberOfRounds": config.number_of_rounds,
            "teamsPerAlliance": config.teams_per_alliance,
        }

    if isinstance(config, FrcConfig):
        body: Dict[str, Any] = {"stageId": stage_id, "teamsPerAlliance": config.teams_per_alliance}
        params = config.params
        if isinstance(params, FrcPreset):
            body["preset"] = params.name
        elif isinstance(params, FrcManual):
            body["rounds"] = params.rounds
            body["minMatchSeparation"] = params.min_match_separation
            body["qualityLevel"] = params.quality_level
        else:
            raise ConfigError(f"Unsupported FRC parameters: {params!r}")
        if config.advanced:
            body["config"] = advanced_frc_config(config.teams_per_alliance)
        return FRC_ENDPOINT, body

    raise ConfigError(f"Unsupported scheduler configuration: {config!r}")


class ConfigCollector:
    """Holds the scheduler configuration for one stage while the wizard is open."""

    def __init__(self, stage_type: str):
        self.stage_type = stage_type
        self.config: AnyConfig = default_config(default_scheduler_type(stage_type))
        # Last manual FRC fields, restored when leaving a preset.
        self._frc_manual = FrcManual()

    @property
    def scheduler_type(self) -> str:
        return self.config.scheduler_type

    def is_allowed(self, scheduler_type: str | None = None) -> bool:
        return (scheduler_type or self.scheduler_type) in allowed_scheduler_types(self.stage_type)

    def select_scheduler(self, scheduler_type: str) -> bool:
        if not self.is_allowed(scheduler_type):
            logger.debug("scheduler %s not available for %s stage", scheduler_type, self.stage_type)
            return False
        if scheduler_type != self.scheduler_type:
            self.config = default_config(scheduler_type, self.config.teams_per_alliance)
            if isinstance(self.config, FrcConfig):
                self.config = self.config.model_copy(update={"params": self._frc_manual})
        return True

    def _update(self, **changes: Any) -> None:
        data = self.config.model_dump()
        data.update(changes)
        try:
            self.config = type(self.config).model_validate(data)
        except ValidationError as e:
            raise ConfigError(str(e)) from e

    def _require(self, cls: type, what: str) -> None:
        if not isinstance(self.config, cls):
            raise ConfigError(f"{what} does not apply to the {self.scheduler_type} scheduler")

    def set_teams_per_alliance(self, value: int) -> None:
        self._update(teams_per_alliance=value)

    def set_round_number(self, value: int) -> None:
        self._require(SwissConfig, "currentRoundNumber")
        self._update(current_round_number=value)

    def set_number_of_rounds(self, value: int) -> None:
        self._require(PlayoffConfig, "numberOfRounds")
        self._update(number_of_rounds=value)

    def choose_preset(self, name: str) -> None:
        # "" is the "Custom Configuration" entry
        self._require(FrcConfig, "preset")
        if not name:
            self._update(params=self._frc_manual.model_dump())
            return
        self._update(params={"kind": "preset", "name": name})

    def set_frc_manual(self, **fields: Any) -> None:
        self._require(FrcConfig, "manual FRC fields")
        data = self._frc_manual.model_dump()
        data.update(fields)
        try:
            manual = FrcManual.model_validate(data)
        except ValidationError as e:
            raise ConfigError(str(e)) from e
        self._frc_manual = manual
        # Hidden while a preset is active; kept for "Custom Configuration".
        if isinstance(self.config.params, FrcManual):
            self._update(params=manual.model_dump())

    def set_advanced(self, enabled: bool) -> None:
        self._require(FrcConfig, "advanced MatchMaker settings")
        self._update(advanced=enabled)

    def request(self, stage_id: str) -> Tuple[str, Dict[str, Any]]:
        if not self.is_allowed():
            raise ConfigError(f"{self.scheduler_type} scheduler cannot run on a {self.stage_type} stage")
        return build_request(stage_id, self.config)
