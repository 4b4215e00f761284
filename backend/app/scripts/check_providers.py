"""Quick connectivity check for the Alpha Vantage endpoints the dashboard uses."""

from __future__ import annotations

import asyncio
from pathlib import Path
import sys

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(PROJECT_ROOT))
load_dotenv(PROJECT_ROOT / ".env", override=True)

from app.config import get_settings  # noqa: E402
from app.services.providers import AlphaVantageProvider  # noqa: E402
from app.services.series import parse_time_series  # noqa: E402


async def main() -> None:
    settings = get_settings()
    provider = AlphaVantageProvider.from_settings(settings)
    if not provider.configured:
        print("failed - ALPHA_VANTAGE_API_KEY is not set")
        return

    symbols = (settings.primary_symbol, settings.volatility_symbol, settings.breadth_symbol)
    for index, symbol in enumerate(symbols):
        if index:
            await asyncio.sleep(settings.request_delay_seconds)
        print(f"=== Alpha Vantage: {symbol} daily ===")
        points = parse_time_series(await provider.fetch_daily(symbol, outputsize="compact"))
        if points:
            print(f"ok - got {len(points)} points; last: {points[-1].date} {points[-1].value:.2f}")
        else:
            print("failed - no data (missing key, rate limit or upstream error; see warnings)")

    if settings.fetch_valuation:
        await asyncio.sleep(settings.request_delay_seconds)
        print(f"\n=== Alpha Vantage: {settings.valuation_symbol} overview ===")
        overview = await provider.fetch_overview(settings.valuation_symbol)
        if overview:
            print(f"ok - PERatio={overview.get('PERatio')} ForwardPE={overview.get('ForwardPE')}")
        else:
            print("failed - no data")


if __name__ == "__main__":
    asyncio.run(main())
