"""Alpha Vantage adapter for daily price series and company overviews."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from app.config import Settings
from app.services.providers.base import DEFAULT_TIMEOUT, HTTPProvider, ProviderError


logger = logging.getLogger(__name__)


class AlphaVantageProvider(HTTPProvider):
    """
    Every public call returns the parsed payload or None.

    None covers a missing API key (no request is made), rate-limit or
    informational notices in the body, HTTP errors, transport failures and
    malformed JSON. Callers only ever check for presence.
    """

    name = "AlphaVantage"
    error_fields = ("Note", "Information", "Error Message")

    def __init__(
        self,
        api_key: str = "",
        base_url: str = "https://www.alphavantage.co",
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(base_url, timeout=timeout, transport=transport)
        self.api_key = (api_key or "").strip()

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "AlphaVantageProvider":
        return cls(
            api_key=settings.alpha_vantage_api_key,
            base_url=settings.alpha_vantage_base_url,
            timeout=settings.request_timeout,
            transport=transport,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def query(self, function: str, symbol: str, **extra: Any) -> Optional[Dict[str, Any]]:
        if not self.configured:
            return None
        params: Dict[str, Any] = {"function": function, "symbol": symbol, **extra}
        params["apikey"] = self.api_key
        try:
            return await self._get("/query", params=params)
        except ProviderError as exc:
            logger.warning(
                "provider_request_failed",
                extra={"provider": self.name, "function": function, "symbol": symbol, "detail": str(exc)[:200]},
            )
            return None

    async def fetch_daily(self, symbol: str, outputsize: str = "full") -> Optional[Dict[str, Any]]:
        return await self.query("TIME_SERIES_DAILY", symbol, outputsize=outputsize)

    async def fetch_overview(self, symbol: str) -> Optional[Dict[str, Any]]:
        return await self.query("OVERVIEW", symbol)
