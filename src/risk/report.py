"""
Alert and Report Generation

Turns a metric snapshot into the observable parts of a RiskReport:
- one Alert per metric above its threshold
- recommendations for metrics within 20% of their threshold
- a one-line summary picked from the risk level

Nothing here has side effects. Buffering alerts and notifying is the
monitor's job.
"""

from dataclasses import dataclass
from typing import Dict, List

from .config import RiskThresholds
from .schema import Alert, RiskLevel, RiskMetrics
from .scorer import METRIC_THRESHOLDS


RECOMMENDATION_MARGIN = 0.8


@dataclass(frozen=True)
class AlertRule:
    """How a breach of one metric is reported."""
    level: RiskLevel
    label: str
    suggestion: str
    recommendation: str
    as_percent: bool = True


ALERT_RULES: Dict[str, AlertRule] = {
    "drawdown": AlertRule(
        level=RiskLevel.HIGH,
        label="Drawdown above limit",
        suggestion="Reduce positions or set stop losses",
        recommendation="Consider tighter stop losses",
    ),
    "volatility": AlertRule(
        level=RiskLevel.MEDIUM,
        label="Volatility too high",
        suggestion="Lower trading frequency or position size",
        recommendation="Trade less often to avoid overtrading",
    ),
    "concentration": AlertRule(
        level=RiskLevel.MEDIUM,
        label="Position concentration too high",
        suggestion="Diversify holdings across more symbols",
        recommendation="Diversify and reduce the weight of the largest position",
    ),
    "correlation": AlertRule(
        level=RiskLevel.LOW,
        label="Portfolio is poorly diversified",
        suggestion="Add exposure to different asset classes",
        recommendation="Add exposure to different asset classes",
        as_percent=False,
    ),
    "momentum": AlertRule(
        level=RiskLevel.LOW,
        label="Trading activity is elevated",
        suggestion="Slow down and avoid overtrading",
        recommendation="Space out new orders",
    ),
    "liquidity": AlertRule(
        level=RiskLevel.MEDIUM,
        label="Cash buffer is thin",
        suggestion="Keep a larger cash buffer",
        recommendation="Raise cash to cover margin for error",
    ),
}

ALL_CLEAR_RECOMMENDATION = "Risk is under control, keep the current approach"

SUMMARIES: Dict[RiskLevel, str] = {
    RiskLevel.HIGH: "High risk: take risk-reduction action now",
    RiskLevel.MEDIUM: "Medium risk: watch closely and adjust the strategy",
    RiskLevel.LOW: "Low risk: portfolio risk is under control",
}


def _format_value(value: float, as_percent: bool) -> str:
    if as_percent:
        return f"{value * 100:.1f}%"
    return f"{value:.2f}"


def check_thresholds(metrics: RiskMetrics, thresholds: RiskThresholds) -> List[Alert]:
    """One alert per metric strictly above its threshold, in rule order."""
    values = metrics.as_dict()
    alerts = []

    for name, rule in ALERT_RULES.items():
        value = values[name]
        limit = getattr(thresholds, METRIC_THRESHOLDS[name])
        if value > limit:
            alerts.append(Alert(
                level=rule.level,
                type=name,
                message=(
                    f"{rule.label}: {_format_value(value, rule.as_percent)} "
                    f"> {_format_value(limit, rule.as_percent)}"
                ),
                suggestion=rule.suggestion,
            ))

    return alerts


def generate_recommendations(metrics: RiskMetrics, thresholds: RiskThresholds) -> List[str]:
    values = metrics.as_dict()
    recommendations = [
        rule.recommendation
        for name, rule in ALERT_RULES.items()
        if values[name] > getattr(thresholds, METRIC_THRESHOLDS[name]) * RECOMMENDATION_MARGIN
    ]

    if not recommendations:
        recommendations.append(ALL_CLEAR_RECOMMENDATION)

    return recommendations


def generate_summary(risk_level: RiskLevel) -> str:
    return SUMMARIES.get(risk_level, "Risk assessment temporarily unavailable")
