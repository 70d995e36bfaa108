"""Request/response access to the notification store over HTTP."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from app.config import ClientSettings

logger = logging.getLogger(__name__)


class StoreAccessError(RuntimeError):
    """The notification store could not complete a request."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotificationStoreClient:
    """Thin async wrapper around the ``/notifications`` REST endpoints."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> "NotificationStoreClient":
        headers = {"Accept": "application/json"}
        if settings.token:
            headers["Authorization"] = f"Bearer {settings.token}"
        client = httpx.AsyncClient(
            base_url=settings.base_url,
            headers=headers,
            timeout=settings.request_timeout_seconds,
        )
        return cls(client)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def count_unread(self) -> int:
        payload = await self._request("GET", "/notifications/count")
        return int(payload["count"])

    async def list_notifications(
        self, *, is_read: bool | None = None, limit: int | None = None
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {}
        if is_read is not None:
            params["is_read"] = "true" if is_read else "false"
        if limit is not None:
            params["limit"] = limit
        payload = await self._request("GET", "/notifications/", params=params)
        return list(payload)

    async def mark_read(self, notification_id: int) -> None:
        await self._request("PATCH", f"/notifications/{notification_id}/read")

    async def mark_all_read(self) -> None:
        await self._request("PATCH", "/notifications/read-all")

    async def delete(self, notification_id: int) -> None:
        await self._request("DELETE", f"/notifications/{notification_id}")

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            logger.warning("%s %s failed with status %s", method, url, status_code)
            raise StoreAccessError(
                f"{method} {url} failed with status {status_code}",
                status_code=status_code,
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise StoreAccessError(f"{method} {url} failed: {exc}") from exc
        try:
            return response.json()
        except ValueError as exc:
            raise StoreAccessError(f"{method} {url} returned invalid JSON") from exc


__all__ = ["NotificationStoreClient", "StoreAccessError"]
