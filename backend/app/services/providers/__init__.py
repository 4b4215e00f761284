from .alpha_vantage import AlphaVantageProvider
from .base import BaseProvider, HTTPProvider, ProviderError

__all__ = ["AlphaVantageProvider", "BaseProvider", "HTTPProvider", "ProviderError"]
