"""
Risk Monitor Schema - Portfolio Inputs and Observable Risk Reports

Every assessment must be explainable: the report carries the metric values
it was scored from, the alerts they raised and the advice derived from them.

Inputs (what the trading engine hands us):
    Position, PortfolioSnapshot, Transaction, ExecutedOrder

Outputs (what the monitor produces):
    RiskMetrics, Alert, RiskReport
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional


ORDER_STATUS_EXECUTED = "executed"


def to_decimal(value: Any) -> Decimal:
    """Convert str/float/int/Decimal to Decimal, None -> 0."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}")


class RiskLevel(Enum):
    """Risk classification. UNKNOWN only appears on degraded reports."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    UNKNOWN = "unknown"


class TransactionType(Enum):
    BUY = "buy"
    SELL = "sell"


@dataclass
class Position:
    """
    An open holding in one symbol.

    Created on the first buy, mutated on later buys/sells and dropped by
    the engine once quantity reaches zero.
    """
    symbol: str
    quantity: Decimal
    average_cost: Decimal
    current_value: Decimal
    total_cost: Decimal = Decimal("0")
    unrealized_pnl: Decimal = Decimal("0")
    realized_pnl: Decimal = Decimal("0")

    def __post_init__(self):
        if not isinstance(self.symbol, str) or not self.symbol:
            raise ValueError(f"Position symbol must be a non-empty string, got {self.symbol!r}")

        self.quantity = to_decimal(self.quantity)
        self.average_cost = to_decimal(self.average_cost)
        self.current_value = to_decimal(self.current_value)
        self.total_cost = to_decimal(self.total_cost)
        self.unrealized_pnl = to_decimal(self.unrealized_pnl)
        self.realized_pnl = to_decimal(self.realized_pnl)

        for name in ("quantity", "average_cost", "current_value"):
            if getattr(self, name) < 0:
                raise ValueError(
                    f"Position {self.symbol} {name} must be >= 0, got {getattr(self, name)}"
                )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Position":
        """Build from an engine dict (snake_case keys)."""
        return cls(
            symbol=data.get("symbol"),
            quantity=data.get("quantity", 0),
            average_cost=data.get("average_cost", 0),
            current_value=data.get("current_value", 0),
            total_cost=data.get("total_cost", 0),
            unrealized_pnl=data.get("unrealized_pnl", 0),
            realized_pnl=data.get("realized_pnl", 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "quantity": str(self.quantity),
            "average_cost": str(self.average_cost),
            "current_value": str(self.current_value),
            "total_cost": str(self.total_cost),
            "unrealized_pnl": str(self.unrealized_pnl),
            "realized_pnl": str(self.realized_pnl),
        }


@dataclass
class PortfolioSnapshot:
    """
    Point-in-time view of an account, as read from the trading engine.

    total_value is taken as reported. It is NOT reconciled against
    cash_balance + sum(position values); see reconciliation_gap.
    """
    total_value: Decimal
    cash_balance: Decimal
    positions: List[Position] = field(default_factory=list)

    @property
    def position_count(self) -> int:
        return len(self.positions)

    @property
    def positions_value(self) -> Decimal:
        """Total $ value of open positions."""
        return sum((p.current_value for p in self.positions), Decimal("0"))

    @property
    def reconciliation_gap(self) -> Decimal:
        """total_value - (cash + positions). Informational only."""
        return self.total_value - (self.cash_balance + self.positions_value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_value": str(self.total_value),
            "cash_balance": str(self.cash_balance),
            "position_count": self.position_count,
            "positions": [p.to_dict() for p in self.positions],
        }


@dataclass(frozen=True)
class Transaction:
    """A recorded fill. Never mutated or deleted once appended to history."""
    symbol: str
    type: TransactionType
    quantity: Decimal
    price: Decimal
    timestamp: datetime
    profit_loss: Decimal = Decimal("0")
    commission: Decimal = Decimal("0")
    net_amount: Optional[Decimal] = None

    def __post_init__(self):
        # Engines may record plain floats; keep the arithmetic in Decimal
        for name in ("quantity", "price", "profit_loss", "commission"):
            object.__setattr__(self, name, to_decimal(getattr(self, name)))
        if self.net_amount is not None:
            object.__setattr__(self, "net_amount", to_decimal(self.net_amount))
        if not isinstance(self.type, TransactionType):
            object.__setattr__(self, "type", TransactionType(self.type))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        """Build from an engine dict; `amount` is taken as the net amount."""
        timestamp = data.get("timestamp")
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
        return cls(
            symbol=data.get("symbol"),
            type=data.get("type"),
            quantity=data.get("quantity", 0),
            price=data.get("price", 0),
            timestamp=timestamp,
            profit_loss=data.get("profit_loss", 0),
            commission=data.get("commission", 0),
            net_amount=data.get("net_amount", data.get("amount")),
        )

    @property
    def amount(self) -> Decimal:
        """Cash amount of the fill (net of commission when recorded)."""
        if self.net_amount is not None:
            return self.net_amount
        return self.quantity * self.price

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "type": self.type.value,
            "quantity": str(self.quantity),
            "price": str(self.price),
            "amount": str(self.amount),
            "commission": str(self.commission),
            "profit_loss": str(self.profit_loss),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class ExecutedOrder:
    """Order history entry. Only status == "executed" counts toward momentum."""
    order_id: str
    symbol: str
    side: TransactionType
    quantity: Decimal
    price: Decimal
    timestamp: datetime
    status: str = ORDER_STATUS_EXECUTED

    def __post_init__(self):
        object.__setattr__(self, "quantity", to_decimal(self.quantity))
        object.__setattr__(self, "price", to_decimal(self.price))
        if not isinstance(self.side, TransactionType):
            object.__setattr__(self, "side", TransactionType(self.side))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExecutedOrder":
        timestamp = data.get("timestamp")
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
        return cls(
            order_id=data.get("order_id", data.get("id")),
            symbol=data.get("symbol"),
            side=data.get("side", data.get("type")),
            quantity=data.get("quantity", 0),
            price=data.get("price", 0),
            timestamp=timestamp,
            status=data.get("status", ORDER_STATUS_EXECUTED),
        )

    @property
    def is_executed(self) -> bool:
        return self.status == ORDER_STATUS_EXECUTED


@dataclass
class RiskMetrics:
    """The six dimensionless metrics behind one risk score."""
    drawdown: float = 0.0
    volatility: float = 0.0
    concentration: float = 0.0
    correlation: float = 0.0
    momentum: float = 0.0
    liquidity: float = 0.0

    def as_dict(self) -> Dict[str, float]:
        return {
            "drawdown": self.drawdown,
            "volatility": self.volatility,
            "concentration": self.concentration,
            "correlation": self.correlation,
            "momentum": self.momentum,
            "liquidity": self.liquidity,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {name: round(value, 6) for name, value in self.as_dict().items()}


@dataclass
class Alert:
    """
    A single threshold breach.

    Example:
        Alert(
            level=RiskLevel.MEDIUM,
            type="concentration",
            message="Position concentration too high: 90.0% > 30.0%",
            suggestion="Diversify holdings across more symbols",
        )
    """
    level: RiskLevel
    type: str
    message: str
    suggestion: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level.value,
            "type": self.type,
            "message": self.message,
            "suggestion": self.suggestion,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class RiskReport:
    """
    The complete result of one risk assessment.

    Rebuilt from scratch on every assessment and never persisted.
    A degraded report (risk_level UNKNOWN) carries the error message
    instead of metrics.
    """
    risk_score: float
    risk_level: RiskLevel
    metrics: Optional[RiskMetrics]
    alerts: List[Alert]
    recommendations: List[str]
    summary: str
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_degraded(self) -> bool:
        return self.risk_level == RiskLevel.UNKNOWN

    @property
    def high_alerts(self) -> List[Alert]:
        return [a for a in self.alerts if a.level == RiskLevel.HIGH]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "risk_score": round(self.risk_score, 4),
            "risk_level": self.risk_level.value,
            "metrics": self.metrics.to_dict() if self.metrics else {},
            "alerts": [a.to_dict() for a in self.alerts],
            "recommendations": list(self.recommendations),
            "summary": self.summary,
            "error": self.error,
        }

    @classmethod
    def error_report(cls, error: Exception) -> "RiskReport":
        """Factory for a failed assessment - never raises."""
        return cls(
            risk_score=0.0,
            risk_level=RiskLevel.UNKNOWN,
            metrics=None,
            alerts=[],
            recommendations=["System error, please contact support"],
            summary="Risk assessment temporarily unavailable",
            error=str(error) or type(error).__name__,
        )
