from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional

from pydantic import ValidationError
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from ..models import Team
from .api import ApiClient, ApiError, is_network_error

logger = logging.getLogger(__name__)

Notify = Callable[[str, str], None]


@retry(
    wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
    stop=stop_after_attempt(3),
    retry=retry_if_exception(is_network_error),
    reraise=True,
)
async def _get(client: ApiClient, url: str) -> Any:
    return await client.get(url)


def _map_tournament_team(x: dict[str, Any]) -> Optional[Team]:
    try:
        return Team(
            id=x["id"],
            team_number=x.get("teamNumber") or "",
            name=x.get("name") or "",
            organization=x.get("organization") or None,
        )
    except (KeyError, ValidationError):
        return None


def _map_stage_team(x: dict[str, Any]) -> Optional[Team]:
    try:
        return Team(
            id=x["teamId"],
            team_number=x.get("teamNumber") or "",
            name=x.get("teamName") or "",
            organization=x.get("organization") or None,
        )
    except (KeyError, ValidationError):
        return None


def normalise_roster(scheduler_type: str, data: Any) -> List[Team]:
    # Tournament rosters come back as a bare list; stage rosters are wrapped.
    if scheduler_type == "playoff" and isinstance(data, list):
        mapped = [_map_tournament_team(x) for x in data if isinstance(x, dict)]
    elif isinstance(data, dict) and data.get("success") and isinstance(data.get("data"), list):
        mapped = [_map_stage_team(x) for x in data["data"] if isinstance(x, dict)]
    else:
        return []
    return [t for t in mapped if t is not None]


async def fetch_roster(
    client: ApiClient,
    scheduler_type: str,
    stage_id: str,
    tournament_id: str,
    notify: Optional[Notify] = None,
) -> List[Team]:
    """Load the teams available for manual selection.

    Failures never propagate: they are reported through ``notify`` and the
    roster resolves to an empty list.
    """
    if scheduler_type == "playoff":
        url = f"/tournaments/{tournament_id}/teams"
    else:
        url = f"/stages/{stage_id}/teams"
    try:
        data = await _get(client, url)
    except ApiError as e:
        logger.error("Error fetching teams from %s: %s", url, e.message)
        if notify:
            notify("error", f"Failed to load teams: {e.message}")
        return []
    return normalise_roster(scheduler_type, data)
