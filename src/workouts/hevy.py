"""Hevy public API client (the upstream source of truth for workouts).

API base: https://api.hevyapp.com/v1
Auth:     ``api-key`` header (Hevy Pro personal key)

Endpoints used:
    /workouts?page=N&pageSize=M — workouts, newest first
        → {"page": N, "page_count": P, "workouts": [...]}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import httpx

from src.config import Settings, get_settings

logger = logging.getLogger("logbook.workouts.hevy")


class HevyNotConfiguredError(RuntimeError):
    """Raised before any request when no Hevy API key is configured."""


class HevyAPIError(RuntimeError):
    """Hevy returned a non-2xx response or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass
class WorkoutPage:
    """One page of ``GET /v1/workouts``.

    Attributes:
        items:      Raw workout dicts, newest first.
        page:       1-based page number Hevy says it returned.
        page_count: Total number of pages Hevy reports.
    """

    items: list[dict] = field(default_factory=list)
    page: int = 1
    page_count: int = 0

    @property
    def is_last(self) -> bool:
        return self.page >= self.page_count


class HevyClient:
    """Thin async client over the Hevy workouts endpoint.

    Args:
        api_key:     Hevy API key (defaults to HEVY_API_KEY via settings).
        base_url:    API base URL.
        timeout:     Per-request timeout in seconds.
        http_client: Optional pre-configured httpx client (useful for testing).
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        s = settings or get_settings()
        self._api_key = s.hevy_api_key if api_key is None else api_key
        self._base_url = (base_url or s.hevy_api_base).rstrip("/")
        self._timeout = timeout
        self._http_client = http_client

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def _get(self, path: str, params: dict) -> dict:
        """Issue a GET and return the decoded JSON body.

        Raises:
            HevyNotConfiguredError: If no API key is set.
            HevyAPIError:           On transport failure or non-2xx status.
        """
        if not self.is_configured:
            raise HevyNotConfiguredError("Missing HEVY_API_KEY")

        url = f"{self._base_url}{path}"
        headers = {"accept": "application/json", "api-key": self._api_key}
        try:
            if self._http_client is not None:
                resp = await self._http_client.get(url, params=params, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    resp = await client.get(url, params=params, headers=headers)
        except httpx.HTTPError as exc:
            raise HevyAPIError(f"Hevy request to {path} failed: {exc}") from exc

        if resp.status_code >= 400:
            raise HevyAPIError(
                f"Hevy API error: {resp.status_code} - {resp.text}",
                status_code=resp.status_code,
            )
        return resp.json()

    async def fetch_workouts_page(self, page: int, page_size: int) -> WorkoutPage:
        """Fetch one page of workouts, newest first."""
        data = await self._get("/workouts", {"page": page, "pageSize": page_size})
        workouts = data.get("workouts") or []
        logger.debug("Hevy page %d: %d workouts", page, len(workouts))
        return WorkoutPage(
            items=workouts,
            page=int(data.get("page", page)),
            page_count=int(data.get("page_count", 0)),
        )
