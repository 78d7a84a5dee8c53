from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Literal, Optional

from . import cache as keys
from .adapters.api import ApiClient, ApiError
from .adapters.scheduling import generate
from .cache import QueryCache
from .collect import ConfigCollector, ConfigError
from .models import ScheduledMatch
from .selection import TeamSelection, requires_team_selection

logger = logging.getLogger(__name__)

Notify = Callable[[str, str], None]

TEAM_REQUIRED = "Please select at least one team"
BUSY = "A schedule request is already in progress"
UNKNOWN_ERROR = "Unknown error"


def log_notify(level: str, message: str) -> None:
    logger.log(logging.ERROR if level == "error" else logging.INFO, message)


@dataclass
class SubmitOutcome:
    status: Literal["success", "invalid", "busy", "failed", "cancelled"]
    matches: List[ScheduledMatch] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"


class ScheduleSubmitter:
    """Turns a collected configuration into exactly one scheduling request."""

    def __init__(self, client: ApiClient, cache: QueryCache, notify: Notify = log_notify):
        self.client = client
        self.cache = cache
        self.notify = notify
        self._inflight: Optional[asyncio.Task] = None
        self._cancelled = False

    @property
    def in_flight(self) -> bool:
        return self._inflight is not None

    def cancel(self) -> bool:
        if self._inflight is None:
            return False
        self._cancelled = True
        self._inflight.cancel()
        return True

    async def submit(self, stage_id: str, collector: ConfigCollector, selection: TeamSelection) -> SubmitOutcome:
        if requires_team_selection(collector.scheduler_type) and len(selection) == 0:
            self.notify("error", TEAM_REQUIRED)
            return SubmitOutcome("invalid", error=TEAM_REQUIRED)

        # Checked and claimed before the first await.
        if self._inflight is not None:
            logger.debug("submit ignored, request already in flight")
            return SubmitOutcome("busy", error=BUSY)

        try:
            endpoint, body = collector.request(stage_id)
        except ConfigError as e:
            self.notify("error", str(e))
            return SubmitOutcome("invalid", error=str(e))
        if requires_team_selection(collector.scheduler_type):
            body["teamIds"] = selection.ids

        self._cancelled = False
        task = asyncio.ensure_future(generate(self.client, endpoint, body))
        self._inflight = task
        try:
            matches = await task
        except asyncio.CancelledError:
            if not self._cancelled:
                raise
            logger.info("schedule request to %s cancelled", endpoint)
            return SubmitOutcome("cancelled")
        except ApiError as e:
            msg = e.message or UNKNOWN_ERROR
            logger.error("Error scheduling matches: %s", msg)
            self.notify("error", f"Failed to schedule matches: {msg}")
            return SubmitOutcome("failed", error=msg)
        finally:
            self._inflight = None

        self.cache.invalidate(keys.all_matches())
        self.cache.invalidate(keys.stage_matches(stage_id))
        self.notify("success", f"Successfully created {len(matches)} matches")
        return SubmitOutcome("success", matches=matches)
