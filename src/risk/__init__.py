"""
Marketbook Risk Module - Observable Portfolio Risk Monitoring

Every assessment is explainable: the report shows the metrics it was
scored from, the alerts they raised and what to do about them.

Usage:
    from src.risk import RiskMonitor, MonitorConfig

    monitor = RiskMonitor(engine, MonitorConfig.load_from_yaml("config.yaml"))

    report = monitor.perform_risk_assessment()
    print(f"{report.risk_level.value}: {report.summary}")
    for alert in report.alerts:
        print(f"  [{alert.level.value}] {alert.message} -> {alert.suggestion}")

    # Periodic monitoring inside an event loop
    await monitor.start_monitoring(interval_ms=30000)
"""

from .config import (
    MonitorConfig,
    NotificationConfig,
    RiskConfigError,
    RiskThresholds,
    ScoreWeights,
)
from .monitor import MonitoringState, RiskMonitor
from .notifications import RiskNotification, RiskNotifier
from .schema import (
    Alert,
    ExecutedOrder,
    PortfolioSnapshot,
    Position,
    RiskLevel,
    RiskMetrics,
    RiskReport,
    Transaction,
    TransactionType,
)
from .source import PortfolioOverview, TradingEngine, read_history, read_snapshot

__all__ = [
    "RiskMonitor",
    "MonitoringState",
    "MonitorConfig",
    "NotificationConfig",
    "RiskConfigError",
    "RiskThresholds",
    "ScoreWeights",
    "RiskNotification",
    "RiskNotifier",
    "Alert",
    "ExecutedOrder",
    "PortfolioSnapshot",
    "Position",
    "RiskLevel",
    "RiskMetrics",
    "RiskReport",
    "Transaction",
    "TransactionType",
    "PortfolioOverview",
    "TradingEngine",
    "read_history",
    "read_snapshot",
]
