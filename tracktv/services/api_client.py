"""Async client for the tracker REST backend."""

import logging
from typing import Any, List, Optional

import niquests
from cachetools import TTLCache

from tracktv.core.auth import AuthContext
from tracktv.core.config import Settings, get_settings
from tracktv.services.responses import (
    ApiResponse,
    NotAuthenticatedError,
    TransportError,
    decode_response,
    ensure_success,
)

logger = logging.getLogger(__name__)


class TrackerClient:
    """Thin wrapper over the backend endpoints.

    Each method performs one request and returns the decoded payload.
    Errors are raised as :class:`~tracktv.services.responses.TrackerAPIError`
    subclasses; nothing is retried.
    """

    def __init__(self, auth: AuthContext, settings: Settings | None = None):
        settings = settings or get_settings()
        self.auth = auth
        self.base_url = settings.api_base_url.rstrip("/")
        self.timeout = settings.request_timeout
        self.catalog_cache: TTLCache = TTLCache(
            maxsize=100, ttl=settings.catalog_cache_ttl
        )
        self.session = niquests.AsyncSession()
        if settings.proxy:
            self.session.proxies = {"http": settings.proxy, "https": settings.proxy}

    async def aclose(self) -> None:
        """Properly close the internal HTTP session."""
        if hasattr(self, "session") and self.session:
            await self.session.close()

    async def _request(
        self, method: str, path: str, payload: Optional[dict] = None
    ) -> ApiResponse:
        url = f"{self.base_url}/{path.lstrip('/')}"
        if not self.auth.is_authenticated:
            raise NotAuthenticatedError(f"Cannot call {method} {url} without a token")
        headers = self.auth.headers()
        if payload is not None:
            headers["Content-Type"] = "application/json"
        try:
            response = await self.session.request(
                method, url, json=payload, headers=headers, timeout=self.timeout
            )
        except niquests.exceptions.RequestException as exc:
            logger.error("%s %s failed: %s", method, url, exc)
            raise TransportError(f"Could not reach the API: {exc}", exc) from exc
        return ApiResponse.from_response(response)

    async def _call(
        self, method: str, path: str, payload: Optional[dict] = None
    ) -> Any:
        return decode_response(await self._request(method, path, payload))

    async def list_shows(self) -> List[dict]:
        return await self._call("GET", "shows")

    async def list_episodes(self, catalog_id: str) -> Any:
        """Return the stored episodes of one show (expected to be a list)."""
        return await self._call("GET", f"shows/{catalog_id}/episodes")

    async def get_catalog_show(self, catalog_id: str) -> dict:
        """Fetch catalog metadata for a show, memoized for a while."""
        key = str(catalog_id)
        if key in self.catalog_cache:
            return self.catalog_cache[key]
        data = await self._call("GET", f"shows/{catalog_id}")
        self.catalog_cache[key] = data
        return data

    async def create_show(
        self,
        catalog_id: str,
        name: str,
        image: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Any:
        return await self._call(
            "POST",
            "shows",
            {
                "tvMazeId": catalog_id,
                "name": name,
                "image": image,
                "status": status or "Unknown",
            },
        )

    async def add_show(self, catalog_id: str) -> dict:
        """Add a show by catalog id; the backend resolves its metadata.

        The payload has a ``skipped`` flag and the created or existing show.
        """
        return await self._call("POST", f"shows/{catalog_id}")

    async def delete_show(self, show_id: str) -> None:
        ensure_success(await self._request("DELETE", f"shows/{show_id}"))

    async def toggle_show_ignored(self, show_id: str) -> dict:
        return await self._call("PUT", f"shows/{show_id}/ignore")

    async def update_episode(self, episode_id: str, **fields: Any) -> Any:
        return await self._call("PATCH", f"episodes/{episode_id}", fields)

    async def add_episode(self, catalog_id: str, payload: dict) -> Any:
        return await self._call("POST", f"shows/{catalog_id}/episodes", payload)

    async def clear_all(self) -> Any:
        return await self._call("DELETE", "admin/clear-all")

    async def refresh_shows(self) -> Any:
        return await self._call("PUT", "refresh/shows")
