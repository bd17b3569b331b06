#!/usr/bin/env python3
"""Run one market analysis pass and print the signals.

Usage:
    python scripts/analyze.py
    python scripts/analyze.py --top 3
    python scripts/analyze.py --json
"""

import argparse
import asyncio
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import orjson

from coinpulse.clients import BrokerError, CoinGeckoClient, RequestBroker
from coinpulse.config import get_settings
from coinpulse.services import AnalysisReport, MarketAnalysisService
from coinpulse_core.formatting import format_change, format_price

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


def format_report(report: AnalysisReport) -> str:
    """Format a report as a text table."""
    lines = []
    lines.append("\n" + "=" * 78)
    lines.append(f"  MARKET ANALYSIS  {report.computed_at:%Y-%m-%d %H:%M:%S} UTC")
    lines.append("=" * 78)
    lines.append(
        f"  {'COIN':8s} {'PRICE':>16s} {'24H':>9s} {'RSI':>6s}  {'SIGNAL':6s} {'TREND':12s} REASON"
    )
    for r in report.results:
        lines.append(
            f"  {r.symbol:8s} {format_price(r.price):>16s} "
            f"{format_change(r.price_change_24h):>9s} {r.rsi:6.1f}  "
            f"{r.signal.value:6s} {r.trend.value:12s} {r.signal_reason}"
        )

    counts = report.signal_counts
    lines.append("-" * 78)
    lines.append(
        f"  long={counts['long']}  short={counts['short']}  hold={counts['hold']}"
    )
    if report.skipped:
        lines.append(f"  skipped (insufficient history): {', '.join(report.skipped)}")
    if report.failed:
        lines.append(f"  failed: {', '.join(report.failed)}")
    return "\n".join(lines)


async def run(top_n: int | None, as_json: bool) -> int:
    settings = get_settings()
    broker = RequestBroker(settings=settings)
    client = CoinGeckoClient(broker, settings=settings)
    service = MarketAnalysisService(client, settings=settings)

    try:
        report = await service.run_analysis(top_n=top_n)
    except BrokerError as e:
        print(f"Analysis failed: {e}", file=sys.stderr)
        return 1
    finally:
        await client.close()

    if as_json:
        payload = report.model_dump(mode="json")
        sys.stdout.write(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode() + "\n")
    else:
        print(format_report(report))
    return 0


def main():
    parser = argparse.ArgumentParser(description="Run a market analysis pass")
    parser.add_argument("--top", type=int, default=None, help="Number of top coins to analyze")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    args = parser.parse_args()

    sys.exit(asyncio.run(run(args.top, args.json)))


if __name__ == "__main__":
    main()
