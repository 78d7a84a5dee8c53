from __future__ import annotations

import logging
from typing import Any, Dict, List

from pydantic import ValidationError

from ..models import ScheduledMatch
from .api import ApiClient, ApiError

logger = logging.getLogger(__name__)

NO_MATCHES = "No matches were returned from the server"


def parse_matches(data: Any) -> List[ScheduledMatch]:
    rows = data.get("matches") if isinstance(data, dict) else None
    if not isinstance(rows, list):
        raise ApiError(NO_MATCHES, data=data)
    try:
        return [ScheduledMatch.model_validate(x) for x in rows]
    except ValidationError as e:
        raise ApiError(f"Malformed match in server response: {e.error_count()} error(s)", data=data) from e


async def generate(client: ApiClient, endpoint: str, body: Dict[str, Any]) -> List[ScheduledMatch]:
    # Generation is not idempotent: one POST, no retry.
    data = await client.post(endpoint, body)
    matches = parse_matches(data)
    logger.info("%s returned %d matches", endpoint, len(matches))
    return matches
