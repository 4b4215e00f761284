"""Common helpers for external data providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging
from typing import Any, Dict, Optional, Tuple

import httpx


DEFAULT_TIMEOUT = 20.0
RATE_STATUS = {429, 503}
logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Wrap upstream errors so callers can handle them uniformly."""


def _strip_none(params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return {k: v for k, v in (params or {}).items() if v is not None}


class BaseProvider(ABC):
    """
    Minimal abstract interface for market-data style providers.

    Implementations return the raw provider payload, or None when the call
    produced no usable data for any reason.
    """

    name: str

    @abstractmethod
    async def fetch_daily(self, symbol: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def fetch_overview(self, symbol: str) -> Optional[Dict[str, Any]]:
        ...


class HTTPProvider(BaseProvider):
    """Lightweight HTTP client wrapper shared by all providers."""

    # Top-level JSON fields that signal an error even on HTTP 200; set per provider.
    error_fields: Tuple[str, ...] = ()

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    async def _get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        def _log_rate_event(*, status: int, detail: str = "", retry_after: Optional[str] = None) -> None:
            # Metadata only; query values carry the API key.
            logger.warning(
                "provider_rate_event",
                extra={
                    "provider": getattr(self, "name", self.__class__.__name__),
                    "status": status,
                    "path": path,
                    "retry_after": retry_after,
                    "param_keys": sorted(list((params or {}).keys())),
                    "detail": detail[:200],
                },
            )

        # One attempt only: a retry spends the same rate budget the caller is protecting.
        async with self._client() as client:
            try:
                response = await client.get(path, params=_strip_none(params), headers=headers)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                _log_rate_event(
                    status=status,
                    detail=exc.response.text,
                    retry_after=exc.response.headers.get("Retry-After"),
                )
                if status in RATE_STATUS:
                    raise ProviderError(f"Upstream rate limit for {path}: HTTP {status}") from exc
                raise ProviderError(f"HTTP {status} for {path}") from exc
            except httpx.HTTPError as exc:
                _log_rate_event(status=0, detail=str(exc))
                raise ProviderError(f"HTTP error for {path}: {exc}") from exc

        if not response.content:
            _log_rate_event(status=response.status_code, detail="empty body")
            raise ProviderError(f"Empty body for {path}")
        try:
            data: Any = response.json()
        except ValueError as exc:
            _log_rate_event(status=response.status_code, detail="malformed JSON body")
            raise ProviderError(f"Malformed JSON for {path}") from exc

        # Some providers wrap errors inside JSON without HTTP status.
        if isinstance(data, dict):
            for field in self.error_fields:
                msg = data.get(field)
                if msg:
                    _log_rate_event(
                        status=response.status_code,
                        detail=str(msg),
                        retry_after=response.headers.get("Retry-After"),
                    )
                    raise ProviderError(f"Upstream notice for {path} ({field}): {str(msg)[:200]}")
        else:
            raise ProviderError(f"Unexpected payload type for {path}: {type(data).__name__}")
        return data
