"""
Backend access for expense splits.

`SplitBackend` is the interface the engine consumes; `HttpSplitBackend`
implements it against the REST API with httpx. Every transport or HTTP
failure is translated into the engine's error taxonomy.
"""

from typing import Any, Dict, List, Optional, Protocol

import httpx

from receipt_split.config import SplitSettings
from receipt_split.errors import NetworkUnavailable, NotFound, ServerRejected
from receipt_split.models import RecentFriend, SplitRecord, SplitRequest
from receipt_split.utils.logging_config import logger


class SplitBackend(Protocol):
    """What the engine needs from the split service."""

    async def fetch_existing(self, receipt_id: str) -> Optional[SplitRecord]:
        """The saved split for a receipt, or None when there is none."""
        ...

    async def save(self, request: SplitRequest) -> SplitRecord:
        ...

    async def fetch_recent_friends(self, limit: int = 10) -> List[RecentFriend]:
        ...


class HttpSplitBackend:
    """
    REST client for the `/expense-splits` endpoints.

    The underlying `httpx.AsyncClient` is created lazily and reused; pass
    `transport` to route requests elsewhere (tests use `httpx.MockTransport`).
    """

    def __init__(
        self,
        settings: Optional[SplitSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or SplitSettings.from_env()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Accept": "application/json"}
            if self.settings.api_token:
                headers["Authorization"] = f"Bearer {self.settings.api_token}"
            self._client = httpx.AsyncClient(
                base_url=self.settings.api_base_url,
                headers=headers,
                timeout=self.settings.api_timeout,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------
    async def fetch_existing(self, receipt_id: str) -> Optional[SplitRecord]:
        try:
            data = await self._request("GET", f"/expense-splits/receipt/{receipt_id}")
        except NotFound:
            return None
        if data is None:
            return None
        return self._decode(SplitRecord, data)

    async def fetch_split(self, split_id: str) -> SplitRecord:
        data = await self._request("GET", f"/expense-splits/{split_id}")
        return self._decode(SplitRecord, data)

    async def save(self, request: SplitRequest) -> SplitRecord:
        data = await self._request("POST", "/expense-splits", json=request.to_payload())
        return self._decode(SplitRecord, data)

    async def delete_split(self, split_id: str) -> None:
        await self._request("DELETE", f"/expense-splits/{split_id}")

    async def fetch_recent_friends(self, limit: int = 10) -> List[RecentFriend]:
        data = await self._request("GET", "/expense-splits/recent-friends", params={"limit": limit})
        return [self._decode(RecentFriend, entry) for entry in data or []]

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    async def _request(self, method: str, path: str, **kwargs) -> Any:
        client = self._get_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            logger.error(f"Split API unreachable ({method} {path}): {e}")
            raise NetworkUnavailable(str(e)) from e

        status = response.status_code
        if 200 <= status < 300:
            if not response.content or response.text.strip() == "null":
                return None
            try:
                return response.json()
            except ValueError as e:
                raise ServerRejected(f"Invalid JSON in response: {e}", status) from e

        if status == 401:
            raise ServerRejected("unauthorized", status)
        if status == 404:
            raise NotFound(f"{method} {path}")

        reason = self._error_message(response) or f"Server error: {status}"
        logger.error(f"Split API rejected {method} {path} with {status}: {reason}")
        raise ServerRejected(reason, status)

    @staticmethod
    def _error_message(response: httpx.Response) -> Optional[str]:
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict):
            for field in ("error", "message", "detail"):
                if isinstance(body.get(field), str):
                    return body[field]
        return None

    @staticmethod
    def _decode(model, data: Dict[str, Any]):
        try:
            return model.model_validate(data)
        except ValueError as e:
            raise ServerRejected(f"Failed to decode response: {e}") from e
