from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:5000/api"


class ApiError(Exception):
    """Failed API call. ``status`` is None when the server was never reached."""

    def __init__(self, message: str, status: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.data = data


def is_network_error(e: BaseException) -> bool:
    return isinstance(e, ApiError) and e.status is None


def _error_message(resp: httpx.Response, data: Any) -> str:
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return f"HTTP {resp.status_code}: {resp.reason_phrase}"


class ApiClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token: Optional[str] = None,
        timeout: float = 20,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        # Trailing slash so relative paths join under the /api prefix.
        self.base_url = base_url.rstrip("/") + "/"
        self._client = httpx.AsyncClient(base_url=self.base_url, headers=headers, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", endpoint, params=params)

    async def post(self, endpoint: str, data: Any = None) -> Any:
        return await self.request("POST", endpoint, data=data)

    async def request(self, method: str, endpoint: str, data: Any = None, params: dict[str, Any] | None = None) -> Any:
        path = endpoint.lstrip("/")
        logger.debug("%s %s%s %s", method, self.base_url, path, data if data is not None else "")
        try:
            resp = await self._client.request(method, path, json=data, params=params)
        except httpx.HTTPError as e:
            raise ApiError(f"Network error: {e}") from e

        try:
            body = resp.json()
        except ValueError:
            body = {"message": resp.reason_phrase or "Request failed"}
        logger.debug("%s %s -> %s", method, path, resp.status_code)

        if resp.is_error:
            if resp.status_code == 401:
                logger.warning("Unauthorized access to %s", path)
            raise ApiError(_error_message(resp, body), status=resp.status_code, data=body)
        return body
