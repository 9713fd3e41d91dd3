"""
Risk Scorer - weighted sum of normalized metrics.

Each metric is divided by its configured threshold (1.0 == "at the limit"),
weighted, summed and clamped to [0, 1]. The weights and cut-offs are
configuration, not a calibrated model.
"""

from typing import Dict

from .config import RiskThresholds, ScoreWeights
from .schema import RiskLevel, RiskMetrics


HIGH_RISK_SCORE = 0.8
MEDIUM_RISK_SCORE = 0.5


# metric name -> threshold attribute it is normalized by
METRIC_THRESHOLDS: Dict[str, str] = {
    "drawdown": "max_drawdown",
    "volatility": "volatility_limit",
    "concentration": "concentration_limit",
    "correlation": "correlation_threshold",
    "momentum": "momentum_risk",
    "liquidity": "liquidity_risk",
}


def normalize_metrics(metrics: RiskMetrics, thresholds: RiskThresholds) -> Dict[str, float]:
    """metric / threshold for every metric."""
    values = metrics.as_dict()
    return {
        name: values[name] / getattr(thresholds, limit)
        for name, limit in METRIC_THRESHOLDS.items()
    }


def calculate_risk_score(
    metrics: RiskMetrics,
    thresholds: RiskThresholds,
    weights: ScoreWeights,
) -> float:
    normalized = normalize_metrics(metrics, thresholds)
    weight_map = weights.to_dict()

    score = sum(normalized[name] * weight_map[name] for name in METRIC_THRESHOLDS)
    return min(max(score, 0.0), 1.0)


def classify_risk(score: float) -> RiskLevel:
    """score >= 0.8 -> HIGH, >= 0.5 -> MEDIUM, else LOW."""
    if score >= HIGH_RISK_SCORE:
        return RiskLevel.HIGH
    if score >= MEDIUM_RISK_SCORE:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW
