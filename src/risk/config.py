"""
Risk Monitor Configuration - all thresholds and weights in one place.

FAIL CLOSED PRINCIPLE:
- Missing config file -> RiskConfigError (not defaults)
- Invalid values -> RiskConfigError (not silent correction)
- Parse errors -> RiskConfigError (not empty config)

Defaults exist for unit tests and demos with explicit construction.
Long-running monitors should use MonitorConfig.load_from_yaml().

Example config.yaml:

    risk_monitor:
      interval_ms: 30000
      alert_capacity: 20
      thresholds:
        max_drawdown: 0.15
        concentration_limit: 0.3
      weights:
        drawdown: 0.25
      notifications:
        alert_log_path: runtime/risk_alerts.jsonl
        enable_discord: false
"""

import logging
import math
from dataclasses import dataclass, field, fields, replace
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

logger = logging.getLogger(__name__)


DEFAULT_INTERVAL_MS = 30000
DEFAULT_ALERT_CAPACITY = 20


class RiskConfigError(Exception):
    """Raised when risk configuration is invalid or missing."""
    pass


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _decimals_to_float(instance):
    """Frozen-dataclass helper: store Decimal fields as float."""
    for f in fields(instance):
        value = getattr(instance, f.name)
        if isinstance(value, Decimal):
            object.__setattr__(instance, f.name, float(value))


@dataclass(frozen=True)
class RiskThresholds:
    """
    Named limits each metric is normalized against.

    Ratio limits (everything except volatility_limit) must lie in (0, 1].
    volatility_limit only has to be positive.
    """
    max_drawdown: float = 0.15
    volatility_limit: float = 0.12
    concentration_limit: float = 0.3
    correlation_threshold: float = 0.8
    momentum_risk: float = 0.2
    liquidity_risk: float = 0.1

    _RATIO_LIMITS = (
        "max_drawdown",
        "concentration_limit",
        "correlation_threshold",
        "momentum_risk",
        "liquidity_risk",
    )

    def __post_init__(self):
        _decimals_to_float(self)
        self._validate()

    def _validate(self):
        errors = []

        for f in fields(self):
            value = getattr(self, f.name)
            if not _is_number(value):
                errors.append(f"{f.name} must be a finite number, got {value!r}")
            elif value <= 0:
                errors.append(f"{f.name} must be > 0, got {value}")
            elif f.name in self._RATIO_LIMITS and value > 1:
                errors.append(f"{f.name} must be <= 1, got {value}")

        if errors:
            raise RiskConfigError(f"Invalid risk thresholds: {'; '.join(errors)}")

    def merged(self, updates: Mapping[str, Any]) -> "RiskThresholds":
        """Return a copy with `updates` applied. Unknown names are rejected."""
        if not isinstance(updates, Mapping):
            raise RiskConfigError(
                f"Threshold updates must be a mapping, got {type(updates).__name__}"
            )
        known = {f.name for f in fields(self)}
        unknown = sorted(set(updates) - known)
        if unknown:
            raise RiskConfigError(f"Unknown risk threshold(s): {', '.join(unknown)}")
        return replace(self, **updates)

    def to_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class ScoreWeights:
    """Weight of each normalized metric in the overall risk score."""
    drawdown: float = 0.25
    volatility: float = 0.20
    concentration: float = 0.20
    correlation: float = 0.15
    momentum: float = 0.10
    liquidity: float = 0.10

    def __post_init__(self):
        _decimals_to_float(self)
        errors = []
        for f in fields(self):
            value = getattr(self, f.name)
            if not _is_number(value):
                errors.append(f"{f.name} weight must be a finite number, got {value!r}")
            elif value < 0:
                errors.append(f"{f.name} weight must be >= 0, got {value}")

        if not errors and sum(self.to_dict().values()) <= 0:
            errors.append("at least one weight must be > 0")

        if errors:
            raise RiskConfigError(f"Invalid score weights: {'; '.join(errors)}")

    def to_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class NotificationConfig:
    """Which notification backends the monitor fans out to."""
    alert_log_path: Optional[str] = None
    enable_discord: bool = False
    enable_slack: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "alert_log_path": self.alert_log_path,
            "enable_discord": self.enable_discord,
            "enable_slack": self.enable_slack,
        }


@dataclass(frozen=True)
class MonitorConfig:
    """Everything a RiskMonitor needs besides its trading engine."""
    thresholds: RiskThresholds = field(default_factory=RiskThresholds)
    weights: ScoreWeights = field(default_factory=ScoreWeights)
    interval_ms: int = DEFAULT_INTERVAL_MS
    alert_capacity: int = DEFAULT_ALERT_CAPACITY
    notifications: NotificationConfig = field(default_factory=NotificationConfig)

    def __post_init__(self):
        errors = []
        if not isinstance(self.interval_ms, int) or isinstance(self.interval_ms, bool) or self.interval_ms <= 0:
            errors.append(f"interval_ms must be a positive integer, got {self.interval_ms!r}")
        if not isinstance(self.alert_capacity, int) or isinstance(self.alert_capacity, bool) or self.alert_capacity <= 0:
            errors.append(f"alert_capacity must be a positive integer, got {self.alert_capacity!r}")
        if errors:
            raise RiskConfigError(f"Invalid monitor configuration: {'; '.join(errors)}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MonitorConfig":
        """Create from a config dictionary (the `risk_monitor` section)."""
        if not isinstance(data, dict):
            raise RiskConfigError(f"risk_monitor section must be a mapping, got {type(data).__name__}")

        try:
            return cls(
                thresholds=RiskThresholds(**(data.get("thresholds") or {})),
                weights=ScoreWeights(**(data.get("weights") or {})),
                interval_ms=data.get("interval_ms", DEFAULT_INTERVAL_MS),
                alert_capacity=data.get("alert_capacity", DEFAULT_ALERT_CAPACITY),
                notifications=NotificationConfig(**(data.get("notifications") or {})),
            )
        except TypeError as e:
            raise RiskConfigError(f"Invalid risk monitor config structure: {e}")

    @classmethod
    def load_from_yaml(cls, path: str = "config.yaml", section: str = "risk_monitor") -> "MonitorConfig":
        """
        Load monitor settings from a YAML file.

        FAIL CLOSED: Raises RiskConfigError if:
        - File doesn't exist
        - File can't be parsed or is empty
        - The section is missing
        - Any value is invalid
        """
        config_path = Path(path)

        if not config_path.exists():
            raise RiskConfigError(
                f"Risk monitor config file not found: {path}. "
                f"Cannot run without explicit risk configuration."
            )

        try:
            with open(config_path, "r") as f:
                full_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise RiskConfigError(f"Failed to parse risk monitor config {path}: {e}")

        if full_config is None:
            raise RiskConfigError(f"Risk monitor config file is empty: {path}")

        if not isinstance(full_config, dict) or full_config.get(section) is None:
            raise RiskConfigError(
                f"No '{section}' section in config file: {path}. "
                f"Risk monitor configuration is required."
            )

        config = cls.from_dict(full_config[section])
        logger.info(f"Loaded risk monitor config from {path}")
        return config

    def to_dict(self) -> Dict[str, Any]:
        return {
            "thresholds": self.thresholds.to_dict(),
            "weights": self.weights.to_dict(),
            "interval_ms": self.interval_ms,
            "alert_capacity": self.alert_capacity,
            "notifications": self.notifications.to_dict(),
        }
