from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from . import cache as keys
from .adapters.api import ApiClient, ApiError
from .adapters.stages import advance_teams, fetch_rankings, fetch_readiness, fetch_stage_matches, preview_advancement
from .cache import QueryCache
from .models import (
    COMPLETED,
    AdvancementOptions,
    AdvancementResult,
    ScheduledMatch,
    StageReadiness,
    SwissRoundProgress,
    TeamRanking,
)
from .submit import Notify, log_notify

logger = logging.getLogger(__name__)


class StageNotReadyError(Exception):
    def __init__(self, stage_id: str, reason: Optional[str] = None):
        self.stage_id = stage_id
        self.reason = reason
        super().__init__(reason or f"Stage {stage_id} is not ready to advance")


def swiss_round_progress(matches: Iterable[ScheduledMatch]) -> SwissRoundProgress:
    """Latest round number and whether every match in it is completed."""
    matches = list(matches)
    if not matches:
        return SwissRoundProgress()
    latest = max(m.round_number or 0 for m in matches)
    in_round = [m for m in matches if (m.round_number or 0) == latest]
    done = bool(in_round) and all(m.status == COMPLETED for m in in_round)
    return SwissRoundProgress(latest_round_number=latest, all_matches_completed=done)


@dataclass
class StageStatus:
    readiness: StageReadiness
    round_progress: Optional[SwissRoundProgress] = None

    @property
    def can_advance(self) -> bool:
        # Only the server's readiness flag gates ending/advancing a stage.
        return self.readiness.ready

    @property
    def can_generate_next_round(self) -> bool:
        # Display hint for Swiss stages, never an action gate for advancing.
        return self.round_progress is not None and self.round_progress.all_matches_completed


class StageReadinessEvaluator:
    """Readiness, rankings and the "End Stage / Advance" action for stages."""

    def __init__(self, client: ApiClient, cache: QueryCache, notify: Notify = log_notify):
        self.client = client
        self.cache = cache
        self.notify = notify
        self._ready: Dict[str, bool] = {}

    async def readiness(self, stage_id: str) -> StageReadiness:
        try:
            return await self.cache.get(keys.stage_readiness(stage_id), lambda: fetch_readiness(self.client, stage_id))
        except ApiError as e:
            logger.warning("Could not check readiness of stage %s: %s", stage_id, e.message)
            return StageReadiness(ready=False, reason=e.message)

    async def matches(self, stage_id: str) -> List[ScheduledMatch]:
        return await self.cache.get(keys.stage_matches(stage_id), lambda: fetch_stage_matches(self.client, stage_id))

    async def rankings(self, stage_id: str) -> List[TeamRanking]:
        return await self.cache.get(keys.stage_rankings(stage_id), lambda: fetch_rankings(self.client, stage_id))

    async def preview(self, stage_id: str, teams_to_advance: int) -> List[TeamRanking]:
        if teams_to_advance < 1:
            return []
        return await self.cache.get(
            keys.advancement_preview(stage_id, teams_to_advance),
            lambda: preview_advancement(self.client, stage_id, teams_to_advance),
        )

    async def evaluate(
        self,
        stage_id: str,
        stage_type: str,
        matches: Optional[Iterable[ScheduledMatch]] = None,
    ) -> StageStatus:
        readiness = await self.readiness(stage_id)
        progress = None
        if stage_type == "SWISS":
            if matches is None:
                try:
                    matches = await self.matches(stage_id)
                except ApiError as e:
                    logger.warning("Could not load matches of stage %s: %s", stage_id, e.message)
                    matches = []
            progress = swiss_round_progress(matches)

        was_ready = self._ready.get(stage_id)
        if was_ready is not None and was_ready != readiness.ready:
            logger.info("stage %s is %s", stage_id, "ready" if readiness.ready else "no longer ready")
        self._ready[stage_id] = readiness.ready
        return StageStatus(readiness=readiness, round_progress=progress)

    async def advance(self, stage_id: str, options: AdvancementOptions) -> AdvancementResult:
        """End the stage and move its top teams on.

        Refused without a network write unless the server reports the stage
        ready. Server failures are reported through ``notify`` and re-raised.
        """
        readiness = await self.readiness(stage_id)
        if not readiness.ready:
            logger.info("advance of stage %s refused: %s", stage_id, readiness.reason or "not ready")
            raise StageNotReadyError(stage_id, readiness.reason)

        try:
            result = await advance_teams(self.client, stage_id, options)
        except ApiError as e:
            self.notify("error", f"Failed to advance teams: {e.message}")
            raise

        for prefix in (keys.stages(), keys.all_rankings(), keys.all_readiness(), keys.teams(),
                       keys.advancement_preview(stage_id)):
            self.cache.invalidate(prefix)
        self.notify("success", f"Successfully advanced {result.total_teams_advanced} teams")
        return result

    def refresh(self, stage_id: str) -> None:
        self.cache.invalidate(keys.stage_readiness(stage_id))
        self.cache.invalidate(keys.stage_matches(stage_id))
