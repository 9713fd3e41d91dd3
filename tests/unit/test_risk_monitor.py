"""
Unit tests for RiskMonitor

Covers the assessment pipeline end to end against an in-memory engine:
- alert buffering (newest first, bounded, clearable)
- degraded reports on malformed engine data
- high-risk notification
- runtime threshold updates
- the asyncio poll loop
"""

import asyncio
import pytest
import sys
from pathlib import Path
from decimal import Decimal
from datetime import datetime, timezone
from unittest.mock import Mock

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from src.risk.config import MonitorConfig, RiskConfigError, RiskThresholds
from src.risk.monitor import MonitoringState, RiskMonitor
from src.risk.notifications import RiskNotification
from src.risk.schema import Position, RiskLevel, Transaction, TransactionType
from src.risk.source import PortfolioOverview


T0 = datetime(2026, 1, 5, 14, 30, tzinfo=timezone.utc)


class FakeEngine:
    """Minimal trading engine: fixed portfolio, no trading."""

    def __init__(self, total_value="0", cash="0", initial_capital="0", positions=None):
        self.account_id = "acct-test"
        self.initial_capital = Decimal(initial_capital)
        self.current_capital = Decimal(cash)
        self.positions = positions or {}
        self.transaction_history = []
        self.order_history = []
        self._total_value = Decimal(total_value)

    def get_portfolio_overview(self):
        return PortfolioOverview(total_value=self._total_value, positions=list(self.positions.values()))


@pytest.fixture
def empty_engine():
    return FakeEngine()


@pytest.fixture
def concentrated_engine():
    """One $9,000 position in a $10,000 account."""
    return FakeEngine(
        total_value="10000",
        cash="1000",
        initial_capital="10000",
        positions={
            "AAPL": Position(symbol="AAPL", quantity=60, average_cost=150, current_value=9000),
        },
    )


@pytest.fixture
def notifier():
    return Mock()


class TestConstruction:
    def test_requires_engine(self):
        with pytest.raises(TypeError):
            RiskMonitor(None)

    def test_defaults(self, empty_engine):
        monitor = RiskMonitor(empty_engine)

        assert monitor.thresholds == RiskThresholds()
        assert monitor.latest_report is None
        assert monitor.get_alert_count() == 0
        assert monitor.state == MonitoringState.STOPPED


class TestAssessment:
    def test_empty_portfolio_is_low_risk(self, empty_engine, notifier):
        monitor = RiskMonitor(empty_engine, notifier=notifier)

        report = monitor.perform_risk_assessment()

        assert report.risk_level == RiskLevel.LOW
        assert report.risk_score == 0.0
        assert report.alerts == []
        assert all(v == 0.0 for v in report.metrics.as_dict().values())
        assert monitor.latest_report is report
        notifier.notify.assert_not_called()

    def test_concentrated_position_raises_one_concentration_alert(self, concentrated_engine, notifier):
        monitor = RiskMonitor(concentrated_engine, notifier=notifier)

        report = monitor.perform_risk_assessment()

        assert report.metrics.concentration == pytest.approx(0.9)
        concentration_alerts = [a for a in report.alerts if a.type == "concentration"]
        assert len(concentration_alerts) == 1
        assert concentration_alerts[0].level == RiskLevel.MEDIUM

    def test_repeated_assessment_is_deterministic(self, concentrated_engine, notifier):
        monitor = RiskMonitor(concentrated_engine, notifier=notifier)

        first = monitor.perform_risk_assessment()
        second = monitor.perform_risk_assessment()

        assert first.risk_score == second.risk_score
        assert first.metrics == second.metrics

    def test_dict_positions_are_accepted(self, notifier):
        engine = FakeEngine(
            total_value="10000",
            cash="5000",
            initial_capital="10000",
            positions={
                "AAPL": {"symbol": "AAPL", "quantity": 10, "average_cost": 250, "current_value": 2500},
                "MSFT": {"symbol": "MSFT", "quantity": 5, "average_cost": 500, "current_value": 2500},
            },
        )
        monitor = RiskMonitor(engine, notifier=notifier)

        report = monitor.perform_risk_assessment()

        assert report.risk_level != RiskLevel.UNKNOWN
        assert report.metrics.concentration == pytest.approx(0.25)
        assert report.metrics.correlation == 0.7


class TestAlertBuffer:
    def test_alerts_accumulate_newest_first(self, concentrated_engine, notifier):
        monitor = RiskMonitor(concentrated_engine, notifier=notifier)

        first = monitor.perform_risk_assessment()
        new_count = len(first.alerts)
        second = monitor.perform_risk_assessment()

        assert monitor.get_alert_count() == 2 * new_count
        assert second.alerts[new_count:] == first.alerts
        old_ids = {id(a) for a in first.alerts}
        assert all(id(a) not in old_ids for a in second.alerts[:new_count])

    def test_buffer_is_bounded(self, concentrated_engine, notifier):
        monitor = RiskMonitor(concentrated_engine, MonitorConfig(alert_capacity=4), notifier=notifier)

        for _ in range(5):
            monitor.perform_risk_assessment()

        assert monitor.get_alert_count() == 4
        assert len(monitor.latest_report.alerts) == 4

    def test_clear_alerts(self, concentrated_engine, notifier):
        monitor = RiskMonitor(concentrated_engine, notifier=notifier)
        monitor.perform_risk_assessment()

        monitor.clear_alerts()

        assert monitor.get_alert_count() == 0
        assert monitor.alerts == []


class TestDegradedReport:
    def test_engine_failure_produces_unknown_report(self, notifier):
        engine = FakeEngine()
        engine.get_portfolio_overview = Mock(side_effect=RuntimeError("engine offline"))
        monitor = RiskMonitor(engine, notifier=notifier)

        report = monitor.perform_risk_assessment()

        assert report.risk_level == RiskLevel.UNKNOWN
        assert report.is_degraded
        assert report.risk_score == 0.0
        assert report.error == "engine offline"
        assert report.recommendations == ["System error, please contact support"]
        assert monitor.latest_report is report
        notifier.notify.assert_not_called()

    def test_malformed_position_produces_unknown_report(self, notifier):
        engine = FakeEngine(total_value="1000", positions={"BAD": "not a position"})
        monitor = RiskMonitor(engine, notifier=notifier)

        report = monitor.perform_risk_assessment()

        assert report.risk_level == RiskLevel.UNKNOWN

    def test_negative_position_value_produces_unknown_report(self, notifier):
        engine = FakeEngine(
            total_value="1000",
            positions={"AAPL": {"symbol": "AAPL", "quantity": -1, "average_cost": 10, "current_value": 10}},
        )
        monitor = RiskMonitor(engine, notifier=notifier)

        assert monitor.perform_risk_assessment().risk_level == RiskLevel.UNKNOWN

    def test_failure_keeps_buffered_alerts(self, concentrated_engine, notifier):
        monitor = RiskMonitor(concentrated_engine, notifier=notifier)
        monitor.perform_risk_assessment()
        count = monitor.get_alert_count()

        concentrated_engine.get_portfolio_overview = Mock(side_effect=ValueError("bad data"))
        monitor.perform_risk_assessment()

        assert monitor.get_alert_count() == count


class TestEngineHistory:
    def test_float_transaction_history(self, notifier):
        engine = FakeEngine(total_value="15000", cash="15000", initial_capital="10000")
        engine.transaction_history = [
            Transaction("AAPL", TransactionType.BUY, 1, 20000.0, T0),
            Transaction("AAPL", TransactionType.SELL, 1, 15000.0, T0),
            Transaction("AAPL", TransactionType.BUY, 1, 18000.0, T0),
        ]
        monitor = RiskMonitor(engine, notifier=notifier)

        report = monitor.perform_risk_assessment()

        assert report.risk_level != RiskLevel.UNKNOWN
        assert report.metrics.drawdown == pytest.approx(0.25)

    def test_mixed_decimal_and_float_history(self, notifier):
        engine = FakeEngine(total_value="10000", cash="10000", initial_capital="10000")
        engine.transaction_history = [
            Transaction("AAPL", TransactionType.BUY, Decimal("1"), Decimal("100"), T0),
            Transaction("AAPL", TransactionType.SELL, 1, 110.0, T0, net_amount=109.89),
            Transaction("AAPL", TransactionType.BUY, 1.0, 99.5, T0),
        ]
        monitor = RiskMonitor(engine, notifier=notifier)

        report = monitor.perform_risk_assessment()

        assert report.risk_level != RiskLevel.UNKNOWN
        assert report.metrics.volatility > 0

    def test_dict_history_records(self, notifier):
        engine = FakeEngine(total_value="15000", cash="15000", initial_capital="10000")
        engine.transaction_history = [
            {"symbol": "AAPL", "type": "buy", "quantity": 1, "price": 20000.0,
             "amount": 20020.0, "timestamp": T0},
            {"symbol": "AAPL", "type": "sell", "quantity": 1, "price": 15000.0,
             "amount": 14985.0, "profit_loss": -5035.0, "timestamp": T0.isoformat()},
        ]
        engine.order_history = [
            {"id": f"ORDER_{i}", "symbol": "AAPL", "type": "buy", "quantity": 1,
             "price": 100.0, "status": "executed", "timestamp": T0}
            for i in range(6)
        ]
        monitor = RiskMonitor(engine, notifier=notifier)

        report = monitor.perform_risk_assessment()

        assert report.risk_level != RiskLevel.UNKNOWN
        assert report.metrics.drawdown == pytest.approx(1 - 15000 / 20020)
        assert report.metrics.momentum == pytest.approx(0.3)

    def test_unsupported_history_record_degrades(self, notifier):
        engine = FakeEngine()
        engine.transaction_history = ["not a transaction"]
        monitor = RiskMonitor(engine, notifier=notifier)

        assert monitor.perform_risk_assessment().risk_level == RiskLevel.UNKNOWN


class TestNotification:
    def test_high_risk_notifies_once(self, concentrated_engine, notifier):
        monitor = RiskMonitor(concentrated_engine, notifier=notifier)

        report = monitor.perform_risk_assessment()

        assert report.risk_level == RiskLevel.HIGH
        notifier.notify.assert_called_once()
        notification = notifier.notify.call_args[0][0]
        assert isinstance(notification, RiskNotification)
        assert notification.account_id == "acct-test"
        assert notification.risk_level == RiskLevel.HIGH

    def test_each_high_assessment_notifies(self, concentrated_engine, notifier):
        monitor = RiskMonitor(concentrated_engine, notifier=notifier)

        monitor.perform_risk_assessment()
        monitor.perform_risk_assessment()

        assert notifier.notify.call_count == 2

    def test_notifier_failure_does_not_break_assessment(self, concentrated_engine):
        notifier = Mock()
        notifier.notify.side_effect = RuntimeError("webhook down")
        monitor = RiskMonitor(concentrated_engine, notifier=notifier)

        report = monitor.perform_risk_assessment()

        assert report.risk_level == RiskLevel.HIGH
        assert monitor.latest_report is report


class TestThresholdUpdates:
    def test_partial_update(self, empty_engine):
        monitor = RiskMonitor(empty_engine)

        monitor.update_risk_thresholds({"concentration_limit": 0.5})

        assert monitor.thresholds.concentration_limit == 0.5
        assert monitor.thresholds.max_drawdown == 0.15

    def test_update_changes_alerting(self, concentrated_engine, notifier):
        monitor = RiskMonitor(concentrated_engine, notifier=notifier)
        monitor.update_risk_thresholds({"concentration_limit": 0.95})

        report = monitor.perform_risk_assessment()

        assert not any(a.type == "concentration" for a in report.alerts)

    @pytest.mark.parametrize("updates", [
        {"max_drawdown": -0.1},
        {"max_drawdown": 0},
        {"concentration_limit": 1.5},
        {"volatility_limit": "high"},
        {"no_such_threshold": 0.1},
        None,
    ])
    def test_invalid_update_keeps_previous(self, empty_engine, updates):
        monitor = RiskMonitor(empty_engine)
        before = monitor.thresholds

        with pytest.raises(RiskConfigError):
            monitor.update_risk_thresholds(updates)

        assert monitor.thresholds == before


class TestPollLoop:
    @pytest.mark.asyncio
    async def test_loop_assesses_and_stops(self, concentrated_engine, notifier):
        monitor = RiskMonitor(concentrated_engine, notifier=notifier)

        await monitor.start_monitoring(interval_ms=10)
        assert monitor.is_monitoring

        await asyncio.sleep(0.1)
        await monitor.stop_monitoring()

        assert monitor.state == MonitoringState.STOPPED
        assert monitor.latest_report is not None
        assert monitor.latest_report.risk_level == RiskLevel.HIGH

    @pytest.mark.asyncio
    async def test_start_twice_keeps_one_task(self, empty_engine):
        monitor = RiskMonitor(empty_engine)

        await monitor.start_monitoring(interval_ms=1000)
        task = monitor._task
        await monitor.start_monitoring(interval_ms=1000)

        assert monitor.is_monitoring
        assert monitor._task is task

        await monitor.stop_monitoring()
        assert not monitor.is_monitoring

    @pytest.mark.asyncio
    async def test_stop_when_not_running_is_noop(self, empty_engine):
        monitor = RiskMonitor(empty_engine)
        await monitor.stop_monitoring()
        assert monitor.state == MonitoringState.STOPPED

    @pytest.mark.asyncio
    async def test_invalid_interval(self, empty_engine):
        monitor = RiskMonitor(empty_engine)

        with pytest.raises(ValueError):
            await monitor.start_monitoring(interval_ms=0)

        assert not monitor.is_monitoring

    @pytest.mark.asyncio
    async def test_monitoring_status(self, empty_engine):
        monitor = RiskMonitor(empty_engine)

        status = monitor.get_monitoring_status()
        assert status["is_monitoring"] is False
        assert status["last_assessment"] is None

        await monitor.start_monitoring(interval_ms=5000)
        monitor.perform_risk_assessment()
        status = monitor.get_monitoring_status()

        assert status["is_monitoring"] is True
        assert status["state"] == "running"
        assert status["interval_ms"] == 5000
        assert status["last_risk_level"] == "low"

        await monitor.stop_monitoring()
