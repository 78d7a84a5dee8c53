from .api import ApiClient, ApiError
from .scheduling import generate
from .stages import advance_teams, fetch_rankings, fetch_readiness, fetch_stage_matches, preview_advancement
from .teams import fetch_roster

__all__ = [
    "ApiClient",
    "ApiError",
    "generate",
    "advance_teams",
    "fetch_rankings",
    "fetch_readiness",
    "fetch_stage_matches",
    "preview_advancement",
    "fetch_roster",
]
