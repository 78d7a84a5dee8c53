from __future__ import annotations

import logging
from typing import Any, List, Optional

from pydantic import ValidationError
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from ..models import AdvancementOptions, AdvancementResult, ApiEnvelope, ScheduledMatch, StageReadiness, TeamRanking
from .api import ApiClient, ApiError, is_network_error

logger = logging.getLogger(__name__)


@retry(
    wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
    stop=stop_after_attempt(3),
    retry=retry_if_exception(is_network_error),
    reraise=True,
)
async def _get(client: ApiClient, url: str, params: dict[str, Any] | None = None) -> Any:
    return await client.get(url, params=params)


def _unwrap(raw: Any, failure: str) -> Any:
    try:
        envelope = ApiEnvelope.model_validate(raw)
    except ValidationError as e:
        raise ApiError(f"Malformed response: {failure}", data=raw) from e
    if not envelope.success:
        raise ApiError(envelope.message or failure, data=raw)
    return envelope.data


def _rankings(rows: Any, raw: Any) -> List[TeamRanking]:
    if not isinstance(rows, list):
        raise ApiError("Malformed stage rankings response", data=raw)
    try:
        return [TeamRanking.model_validate(x) for x in rows]
    except ValidationError as e:
        raise ApiError(f"Malformed ranking in server response: {e.error_count()} error(s)", data=raw) from e


async def fetch_readiness(client: ApiClient, stage_id: str) -> StageReadiness:
    raw = await _get(client, f"/stages/{stage_id}/readiness")
    data = _unwrap(raw, "Failed to check stage readiness")
    try:
        return StageReadiness.model_validate(data)
    except ValidationError as e:
        raise ApiError("Malformed stage readiness response", data=raw) from e


async def fetch_stage_matches(client: ApiClient, stage_id: str) -> List[ScheduledMatch]:
    raw = await _get(client, "/matches", params={"stageId": stage_id})
    rows = raw.get("data") if isinstance(raw, dict) and "data" in raw else raw
    if not isinstance(rows, list):
        return []
    out: List[ScheduledMatch] = []
    for x in rows:
        try:
            out.append(ScheduledMatch.model_validate(x))
        except ValidationError:
            continue
    return out


async def fetch_rankings(client: ApiClient, stage_id: str) -> List[TeamRanking]:
    raw = await _get(client, f"/stages/{stage_id}/rankings")
    return _rankings(_unwrap(raw, "Failed to fetch stage rankings"), raw)


async def preview_advancement(client: ApiClient, stage_id: str, teams_to_advance: Optional[int] = None) -> List[TeamRanking]:
    """Teams that would advance, best first.

    The endpoint answers either with an envelope or with the bare payload, and
    the payload is either a ranking list or ``{teamsToAdvance, remainingTeams}``.
    """
    params = {"teamsToAdvance": teams_to_advance} if teams_to_advance else None
    raw = await _get(client, f"/stages/{stage_id}/advancement-preview", params=params)
    data = _unwrap(raw, "Failed to preview advancement") if isinstance(raw, dict) and "success" in raw else raw
    if isinstance(data, dict) and "teamsToAdvance" in data:
        data = data["teamsToAdvance"]
    if data is None:
        return []
    return _rankings(data, raw)


async def advance_teams(client: ApiClient, stage_id: str, options: AdvancementOptions) -> AdvancementResult:
    # Advancing moves teams between stages: one POST, no retry.
    body = options.model_dump(by_alias=True, exclude_none=True, mode="json")
    raw = await client.post(f"/stages/{stage_id}/advance", body)
    data = _unwrap(raw, "Failed to advance teams")
    try:
        result = AdvancementResult.model_validate(data)
    except ValidationError as e:
        raise ApiError("Malformed advancement response", data=raw) from e
    logger.info("stage %s advanced %d teams", stage_id, result.total_teams_advanced)
    return result
