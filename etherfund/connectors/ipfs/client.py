"""EtherFund — Content Store (IPFS) Client.

Talks to the IPFS HTTP RPC API: ``add`` stores a JSON blob and returns its
content id, ``cat`` reads it back. No retry here; callers decide.
"""

import copy
import json
import time
from collections import OrderedDict
from typing import Any, Dict, Optional

import httpx

from etherfund.config import settings
from etherfund.core.errors import DecodeError, NotFound, StoreUnavailable, Timeout
from etherfund.core.logging import get_logger

logger = get_logger("ipfs.client")

NOT_FOUND_MARKERS = ("not found", "invalid path", "invalid cid", "failed to resolve")


def serialize(value: Any) -> bytes:
    """Deterministic JSON encoding: same value, same bytes, same content id."""
    return json.dumps(
        value, sort_keys=True, separators=(",", ":"), ensure_ascii=False
    ).encode("utf-8")


class ContentStoreGateway:
    """Async HTTP client for an IPFS node or pinning gateway."""

    def __init__(
        self,
        base_url: str | None = None,
        project_id: str | None = None,
        project_secret: str | None = None,
        auth_token: str | None = None,
        timeout: float | None = None,
        cache_size: int | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.ipfs_api_url).rstrip("/")
        self.project_id = project_id or settings.ipfs_project_id
        self.project_secret = project_secret or settings.ipfs_project_secret
        self.auth_token = auth_token or settings.ipfs_auth_token
        self.timeout = timeout or settings.ipfs_timeout_seconds
        self.cache_size = settings.content_cache_size if cache_size is None else cache_size
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._cache: "OrderedDict[str, Any]" = OrderedDict()

    def _auth_kwargs(self) -> Dict[str, Any]:
        if self.auth_token:
            return {"headers": {"Authorization": self.auth_token}}
        if self.project_id and self.project_secret:
            return {"auth": httpx.BasicAuth(self.project_id, self.project_secret)}
        return {}

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                **self._auth_kwargs(),
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    # ── Core Request Method ──

    async def _request(self, path: str, content_id: str = "", **kwargs: Any) -> httpx.Response:
        """POST to the RPC API, translating transport and HTTP failures."""
        client = await self._get_client()
        try:
            resp = await client.post(path, **kwargs)
            resp.raise_for_status()
            return resp
        except httpx.TimeoutException as e:
            raise Timeout(f"Content store {path} timed out after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            message = self._error_message(e.response)
            status = e.response.status_code
            if content_id and (
                status == 404 or any(m in message.lower() for m in NOT_FOUND_MARKERS)
            ):
                raise NotFound(f"Content {content_id} not found: {message}") from e
            raise StoreUnavailable(
                f"Content store {path} failed ({status}): {message}", status
            ) from e
        except httpx.RequestError as e:
            raise StoreUnavailable(f"Content store unreachable: {e}") from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text
        if isinstance(body, dict):
            return str(body.get("Message") or body.get("message") or body)
        return str(body)

    # ── Put / Get ──

    async def put(self, value: Any) -> str:
        """Store a JSON-serializable value and return its content id."""
        started = time.monotonic()
        resp = await self._request(
            "/add",
            params={"pin": "true"},
            files={"file": ("data.json", serialize(value), "application/json")},
        )
        try:
            content_id = resp.json()["Hash"]
        except (ValueError, KeyError, TypeError) as e:
            raise StoreUnavailable(f"Unexpected add response: {resp.text[:200]}") from e
        logger.info(
            f"Stored content {content_id}",
            extra={
                "content_id": content_id,
                "duration_ms": round((time.monotonic() - started) * 1000, 1),
            },
        )
        return content_id

    async def get(self, content_id: str) -> Any:
        """Fetch and decode the JSON value stored under a content id.

        Every call returns a fresh copy; cached values are never handed out.
        """
        if content_id in self._cache:
            self._cache.move_to_end(content_id)
            return copy.deepcopy(self._cache[content_id])

        resp = await self._request("/cat", content_id=content_id, params={"arg": content_id})
        try:
            value = json.loads(resp.content.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise DecodeError(f"Content {content_id} is not valid JSON: {e}") from e

        if self.cache_size > 0:
            self._cache[content_id] = value
            if len(self._cache) > self.cache_size:
                self._cache.popitem(last=False)
            return copy.deepcopy(value)
        return value
