"""Shared httpx plumbing for the OData-style membership APIs."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from typing import Any, Optional

import httpx

from ..config import ResolverConfig
from ..exceptions import TransportError
from ..logging import redact_secrets

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Awaitable[str]]

DEFAULT_TIMEOUT = 30.0


class ODataClient:
    """Authenticated JSON GETs with OData paging.

    Args:
        token_provider: Async callable returning a bearer token. Called
            once per request so the provider can refresh on its own.
        http_client: Optional pre-built ``httpx.AsyncClient``; when omitted
            the client creates and owns one.
        timeout: Per-request timeout in seconds.
    """

    accept = "application/json"

    def __init__(
        self,
        token_provider: TokenProvider,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._token_provider = token_provider
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_config(cls, config: ResolverConfig, token_provider: TokenProvider, **kwargs: Any):
        return cls(token_provider, timeout=config.http_timeout_seconds, **kwargs)

    async def _headers(self) -> dict[str, str]:
        token = await self._token_provider()
        return {"Authorization": f"Bearer {token}", "Accept": self.accept}

    async def get_json(self, url: str, params: Optional[Mapping[str, Any]] = None) -> dict[str, Any]:
        """GET ``url`` and decode the JSON body.

        Raises:
            TransportError: Non-2xx status, network failure or a body that
                is not JSON.
        """
        headers = await self._headers()
        try:
            response = await self._client.get(url, params=params, headers=headers)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.debug("GET %s -> %s: %s", url, status, redact_secrets(e.response.text[:240]))
            raise TransportError(
                f"GET {url} returned HTTP {status}",
                status_code=status,
                url=url,
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"GET {url} failed: {e}", url=url) from e
        except ValueError as e:
            raise TransportError(f"GET {url} returned invalid JSON", url=url) from e

    async def iter_pages(
        self,
        url: str,
        *,
        next_link_field: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """Yield every item of a paged ``value`` collection.

        The next-page link already carries the query, so ``params`` are only
        sent with the first request.
        """
        next_url: Optional[str] = url
        page_params = params
        while next_url:
            body = await self.get_json(next_url, params=page_params)
            for item in body.get("value", []):
                yield item
            next_url = body.get(next_link_field)
            page_params = None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()


__all__ = ["DEFAULT_TIMEOUT", "ODataClient", "TokenProvider"]
