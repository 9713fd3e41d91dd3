"""
Risk Monitor - periodic portfolio risk assessment.

One monitor per trading account. Each assessment runs the full pipeline:

    engine -> snapshot -> metrics -> score -> alerts/report -> notification

and overwrites the single latest-report slot. Alerts accumulate in a
bounded buffer (newest first, no deduplication); nothing else survives
between assessments.

Concurrency model:
- The poll loop is ONE asyncio task; it is the only writer of the report
  slot and the alert buffer, so no locking is needed.
- Assessments are synchronous and short. Stopping cancels the wait between
  ticks, never an assessment in flight.

Usage:
    monitor = RiskMonitor(engine, MonitorConfig.load_from_yaml("config.yaml"))

    await monitor.start_monitoring(interval_ms=30000)
    ...
    report = monitor.latest_report
    await monitor.stop_monitoring()

    # Or one-off, no loop
    report = monitor.perform_risk_assessment()
"""

import asyncio
import logging
from collections import deque
from enum import Enum
from typing import Any, Deque, Dict, List, Optional

from .config import MonitorConfig, RiskThresholds, ScoreWeights
from .metrics import calculate_metrics
from .notifications import RiskNotification, RiskNotifier
from .report import check_thresholds, generate_recommendations, generate_summary
from .schema import Alert, RiskLevel, RiskMetrics, RiskReport
from .scorer import calculate_risk_score, classify_risk
from .source import TradingEngine, read_history, read_snapshot

logger = logging.getLogger(__name__)


class MonitoringState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class RiskMonitor:
    """
    Consolidated risk monitor for one trading account.

    Thresholds and weights come from MonitorConfig; thresholds can be
    changed at runtime with update_risk_thresholds(), which validates
    before applying.
    """

    def __init__(
        self,
        engine: TradingEngine,
        config: Optional[MonitorConfig] = None,
        notifier: Optional[RiskNotifier] = None,
    ):
        if engine is None:
            raise TypeError("RiskMonitor requires a trading engine to read portfolio state from")

        self.engine = engine
        self.config = config or MonitorConfig()
        self.notifier = notifier or RiskNotifier.from_config(self.config.notifications)

        self._thresholds: RiskThresholds = self.config.thresholds
        self._weights: ScoreWeights = self.config.weights
        self._alerts: Deque[Alert] = deque(maxlen=self.config.alert_capacity)
        self._latest_metrics = RiskMetrics()
        self._latest_report: Optional[RiskReport] = None

        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._interval_ms: Optional[int] = None

    # =========================================================================
    # State
    # =========================================================================

    @property
    def thresholds(self) -> RiskThresholds:
        return self._thresholds

    @property
    def weights(self) -> ScoreWeights:
        return self._weights

    @property
    def latest_report(self) -> Optional[RiskReport]:
        return self._latest_report

    @property
    def latest_metrics(self) -> RiskMetrics:
        return self._latest_metrics

    @property
    def alerts(self) -> List[Alert]:
        """Buffered alerts, newest first."""
        return list(self._alerts)

    @property
    def state(self) -> MonitoringState:
        if self._task is not None and not self._task.done():
            return MonitoringState.RUNNING
        return MonitoringState.STOPPED

    @property
    def is_monitoring(self) -> bool:
        return self.state == MonitoringState.RUNNING

    # =========================================================================
    # Poll loop
    # =========================================================================

    async def start_monitoring(self, interval_ms: Optional[int] = None):
        """
        Start assessing every interval_ms (default from config).

        Starting an already running monitor only logs a warning.
        """
        interval = self.config.interval_ms if interval_ms is None else interval_ms
        if interval <= 0:
            raise ValueError(f"interval_ms must be > 0, got {interval}")

        if self.is_monitoring:
            logger.warning(f"Risk monitoring already running (interval {self._interval_ms}ms)")
            return

        self._stop_event = asyncio.Event()
        self._interval_ms = interval
        self._task = asyncio.create_task(self._run_loop(interval / 1000))
        logger.info(f"Risk monitoring started, interval: {interval}ms")

    async def stop_monitoring(self):
        """Stop the loop. A no-op when already stopped."""
        if self._task is None:
            return

        self._stop_event.set()
        try:
            await self._task
        finally:
            self._task = None
            self._stop_event = None
            self._interval_ms = None
        logger.info("Risk monitoring stopped")

    async def _run_loop(self, interval_seconds: float):
        stop_event = self._stop_event
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                self.perform_risk_assessment()

    # =========================================================================
    # Assessment
    # =========================================================================

    def perform_risk_assessment(self) -> RiskReport:
        """
        Run the full pipeline once and store the result as latest_report.

        Never raises: any failure while reading or scoring the portfolio
        produces a degraded report with risk_level UNKNOWN.
        """
        try:
            snapshot = read_snapshot(self.engine)
            transactions, orders = read_history(self.engine)
            metrics = calculate_metrics(
                snapshot,
                initial_capital=self.engine.initial_capital,
                current_capital=self.engine.current_capital,
                transactions=transactions,
                orders=orders,
            )
            score = calculate_risk_score(metrics, self._thresholds, self._weights)
            risk_level = classify_risk(score)
            new_alerts = check_thresholds(metrics, self._thresholds)
            recommendations = generate_recommendations(metrics, self._thresholds)
        except Exception as e:
            logger.exception(f"Risk assessment failed: {e}")
            report = RiskReport.error_report(e)
            self._latest_report = report
            return report

        for alert in reversed(new_alerts):
            self._alerts.appendleft(alert)

        report = RiskReport(
            risk_score=score,
            risk_level=risk_level,
            metrics=metrics,
            alerts=list(self._alerts),
            recommendations=recommendations,
            summary=generate_summary(risk_level),
        )
        self._latest_metrics = metrics
        self._latest_report = report

        logger.debug(
            f"Risk assessment: score={score:.3f} level={risk_level.value} "
            f"new_alerts={len(new_alerts)}"
        )

        if report.risk_level == RiskLevel.HIGH and report.alerts:
            self._send_notification(report)

        return report

    def _send_notification(self, report: RiskReport):
        logger.warning(
            "High risk alert triggered: "
            + "; ".join(a.message for a in (report.high_alerts or report.alerts))
        )
        notification = RiskNotification.from_report(
            report, account_id=getattr(self.engine, "account_id", None)
        )
        try:
            self.notifier.notify(notification)
        except Exception as e:
            logger.error(f"Risk notification failed: {e}")

    # =========================================================================
    # Management
    # =========================================================================

    def update_risk_thresholds(self, updates: Dict[str, Any]) -> RiskThresholds:
        """
        Apply a partial threshold update.

        Raises RiskConfigError on unknown names or invalid values; the
        previous thresholds stay in effect in that case.
        """
        self._thresholds = self._thresholds.merged(updates)
        logger.info(f"Risk thresholds updated: {updates}")
        return self._thresholds

    def get_alert_count(self) -> int:
        return len(self._alerts)

    def clear_alerts(self):
        self._alerts.clear()
        logger.info("Risk alert history cleared")

    def get_monitoring_status(self) -> Dict[str, Any]:
        last = self._latest_report
        return {
            "is_monitoring": self.is_monitoring,
            "state": self.state.value,
            "interval_ms": self._interval_ms,
            "alert_count": len(self._alerts),
            "last_assessment": last.timestamp.isoformat() if last else None,
            "last_risk_level": last.risk_level.value if last else None,
        }
