"""HTTP collaborators for the notification REST endpoints."""

from __future__ import annotations

import logging
from typing import Any, Callable

import httpx
from pydantic import ValidationError

from notification_client.config import Settings
from notification_client.domain.exceptions import ApiError
from notification_client.interfaces.api.schemas import (
    NotificationListResponse,
    NotificationUpdate,
    TokenRefreshResponse,
)
from notification_client.utils import parse_timestamp

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50

AccessTokenProvider = Callable[[], "str | None"]


def _extract_error_detail(response: httpx.Response) -> str:
    """Return a human readable description for an error response."""

    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return text or f"HTTP {response.status_code}"

    if isinstance(body, dict):
        detail = body.get("detail")
        if isinstance(detail, str) and detail:
            return detail
        if detail is not None:
            return str(detail)
    return f"HTTP {response.status_code}"


def _created_at_key(item: dict[str, Any]) -> float:
    parsed = parse_timestamp(item.get("created_at")) if isinstance(item, dict) else None
    return parsed.timestamp() if parsed is not None else float("-inf")


class _BaseApiClient:
    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        access_token: AccessTokenProvider | None = None,
    ) -> None:
        self._client = client
        self._access_token = access_token

    def _headers(self) -> dict[str, str]:
        token = self._access_token() if self._access_token else None
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise ApiError(None, f"Request to {url} failed: {exc}") from exc

        if response.is_error:
            detail = _extract_error_detail(response)
            logger.warning("%s %s responded with status %s", method, url, response.status_code)
            raise ApiError(response.status_code, detail)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(response.status_code, "Response body is not valid JSON") from exc


class NotificationsApiClient(_BaseApiClient):
    """Snapshot and acknowledgement calls for ``/notifications``."""

    async def list_notifications(
        self, *, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0
    ) -> NotificationListResponse:
        """Return one page of notifications sorted newest first."""

        data = await self._request(
            "GET", "/notifications", params={"limit": limit, "offset": offset}
        )
        try:
            page = NotificationListResponse.model_validate(data or {})
        except ValidationError as exc:
            raise ApiError(None, "Unexpected notifications list payload") from exc

        page.items = sorted(page.items, key=_created_at_key, reverse=True)
        return page

    async def update_notification(self, notification_id: str, *, is_read: bool) -> dict[str, Any] | None:
        """Change the read state on the server and return its notification."""

        body = NotificationUpdate(is_read=is_read).model_dump()
        data = await self._request("PATCH", f"/notifications/{notification_id}", json=body)
        return data if isinstance(data, dict) else None


class AuthApiClient(_BaseApiClient):
    """Access-token renewal through ``/auth/refresh``."""

    async def refresh(self, refresh_token: str) -> str | None:
        """Exchange ``refresh_token`` for a new access token."""

        if not refresh_token:
            return None
        data = await self._request(
            "POST", "/auth/refresh", json={"refresh_token": refresh_token}
        )
        try:
            return TokenRefreshResponse.model_validate(data or {}).access_token
        except ValidationError:
            logger.warning("Token refresh response did not include an access token")
            return None


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """Return an ``httpx.AsyncClient`` bound to the configured API base."""

    return httpx.AsyncClient(
        base_url=settings.api_base_url.rstrip("/"),
        timeout=settings.http_timeout_seconds,
    )


__all__ = [
    "AccessTokenProvider",
    "AuthApiClient",
    "NotificationsApiClient",
    "create_http_client",
]
