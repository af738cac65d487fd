"""
Async client for the Nillion storage REST service.

Wraps httpx.AsyncClient for the two endpoints the bot needs:

  GET /apps/{app_id}/store_ids?page=<1-indexed>&page_size=<n>
      → {"store_ids": [{"store_id", "secret_name", "content_type"?}]}
  GET /secret/retrieve/{store_id}?retrieve_as_nillion_user_seed=<seed>&secret_name=<name>
      → {"secret": "<string>"}

Transport, HTTP status and JSON decoding failures are raised as
RemoteServiceError. No retries; the request timeout comes from config.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from nilbot.errors import RemoteServiceError

logger = logging.getLogger(__name__)


class StorageApiClient:
    """Async client for the storage service HTTP API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=transport
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _get_json(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        try:
            resp = await self._client.get(path, params=params)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            raise RemoteServiceError(
                f"GET {path} returned HTTP {e.response.status_code}: {e.response.text[:200]}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise RemoteServiceError(f"GET {path} failed: {e}") from e
        except ValueError as e:
            raise RemoteServiceError(f"GET {path} returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise RemoteServiceError(f"GET {path} returned {type(data).__name__}, expected object")
        return data

    async def list_store_ids(
        self, app_id: str, page: int, page_size: int
    ) -> list[dict[str, Any]]:
        """Return one page of store id records. ``page`` is 1-indexed."""
        data = await self._get_json(
            f"/apps/{app_id}/store_ids",
            {"page": page, "page_size": page_size},
        )
        items = data.get("store_ids") or []
        if not isinstance(items, list):
            raise RemoteServiceError("store_ids is not a list")
        return items

    async def retrieve_secret(
        self, store_id: str, secret_name: str, user_seed: str
    ) -> str | None:
        """Return the raw secret string, or None when the response carries none."""
        logger.info("Retrieving secret %s (%s)", store_id, secret_name)
        data = await self._get_json(
            f"/secret/retrieve/{store_id}",
            {"retrieve_as_nillion_user_seed": user_seed, "secret_name": secret_name},
        )
        secret = data.get("secret")
        if secret in (None, ""):
            return None
        return str(secret)
