#!/usr/bin/env python3
"""
Demo: Risk Monitor on a Paper Trading Account

Drives paper accounts through a healthy and a stressed scenario and prints
the risk report for each:
- every metric the score was built from
- every alert with its suggestion
- the recommendations and summary

Run: python scripts/demo_risk_monitor.py
"""

import asyncio
import logging
import sys
from pathlib import Path
from decimal import Decimal

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.portfolio import PaperTradingAccount, TradingStats
from src.risk import MonitorConfig, RiskConfigError, RiskMonitor, RiskReport

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(message)s",
)
logger = logging.getLogger(__name__)


CONFIG_PATH = Path(__file__).parent.parent / "config.yaml"


def load_config() -> MonitorConfig:
    try:
        return MonitorConfig.load_from_yaml(str(CONFIG_PATH))
    except RiskConfigError as e:
        logger.warning(f"{e} - using built-in defaults for the demo")
        return MonitorConfig()


def print_report(report: RiskReport, title: str):
    print()
    print("=" * 60)
    print(title)
    print("=" * 60)
    print()
    print(f"RISK LEVEL: {report.risk_level.value.upper()}  (score {report.risk_score:.3f})")
    print(f"SUMMARY:    {report.summary}")

    if report.is_degraded:
        print(f"ERROR:      {report.error}")
        return

    print()
    print("-" * 60)
    print("METRICS")
    print("-" * 60)
    for name, value in report.metrics.as_dict().items():
        print(f"  {name:15} {value:8.4f}")

    print()
    print("-" * 60)
    print(f"ALERTS ({len(report.alerts)} buffered)")
    print("-" * 60)
    if not report.alerts:
        print("  none")
    for alert in report.alerts:
        print(f"  [{alert.level.value:6}] {alert.message}")
        print(f"           -> {alert.suggestion}")

    print()
    print("-" * 60)
    print("RECOMMENDATIONS")
    print("-" * 60)
    for recommendation in report.recommendations:
        print(f"  - {recommendation}")


async def healthy_scenario(config: MonitorConfig) -> PaperTradingAccount:
    """Five small positions in a well-capitalised account."""
    account = PaperTradingAccount("demo-healthy", initial_capital=Decimal("100000"))
    account.start()

    for symbol, price in [("AAPL", "190"), ("MSFT", "410"), ("NVDA", "880"), ("JPM", "195"), ("XOM", "115")]:
        quantity = (Decimal("8000") / Decimal(price)).quantize(Decimal("1"))
        await account.execute_buy_order(symbol, quantity, Decimal(price))

    # Take profit on part of two positions
    await account.execute_sell_order("NVDA", Decimal("3"), Decimal("920"))
    await account.execute_sell_order("XOM", Decimal("20"), Decimal("111"))

    monitor = RiskMonitor(account, config)
    print_report(monitor.perform_risk_assessment(), "SCENARIO 1: Diversified, Cash-Rich Account")
    return account


async def stressed_scenario(config: MonitorConfig):
    """One oversized position that then sells off, watched by the poll loop."""
    account = PaperTradingAccount(
        "demo-stressed",
        initial_capital=Decimal("10000"),
        max_position_size=Decimal("1.0"),
    )
    account.start()
    await account.execute_buy_order("TSLA", Decimal("36"), Decimal("250"))

    monitor = RiskMonitor(account, config)

    await monitor.start_monitoring(interval_ms=200)
    await asyncio.sleep(0.3)

    account.mark_price("TSLA", Decimal("175"))
    await asyncio.sleep(0.3)

    await monitor.stop_monitoring()

    print_report(monitor.latest_report, "SCENARIO 2: Concentrated Account After a 30% Selloff")
    print()
    print(f"Monitoring status: {monitor.get_monitoring_status()}")


def print_stats(account: PaperTradingAccount):
    stats = TradingStats.from_transactions(account.account_id, account.transaction_history)

    print()
    print("=" * 60)
    print(f"TRADING STATS: {account.account_id}")
    print("=" * 60)
    for key, value in stats.get_performance_summary().items():
        print(f"  {key:22} {value}")
    print()
    for key, value in stats.get_risk_assessment().items():
        print(f"  {key:22} {value}")


async def main():
    print()
    print("=" * 60)
    print("DEMO: Marketbook Risk Monitor")
    print("=" * 60)

    config = load_config()

    print()
    print("Risk Thresholds:")
    for key, value in config.thresholds.to_dict().items():
        print(f"  {key}: {value}")

    healthy = await healthy_scenario(config)
    await stressed_scenario(config)
    print_stats(healthy)

    print()
    print("=" * 60)
    print("DEMO COMPLETE")
    print("=" * 60)
    print()


if __name__ == "__main__":
    asyncio.run(main())
