"""
Trading Engine Protocol and Portfolio Accessor

The monitor never owns account state. It reads it from an injected
collaborator shaped like the platform's trading engine and turns that into
a PortfolioSnapshot once per assessment.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, List, Mapping, Protocol, Sequence, Tuple, Union

from .schema import ExecutedOrder, PortfolioSnapshot, Position, Transaction, to_decimal

logger = logging.getLogger(__name__)


@dataclass
class PortfolioOverview:
    """What get_portfolio_overview() reports. total_value is the engine's account value."""
    total_value: Decimal
    positions: List[Position] = field(default_factory=list)
    total_cost: Decimal = Decimal("0")
    total_unrealized_pnl: Decimal = Decimal("0")
    total_realized_pnl: Decimal = Decimal("0")

    @property
    def total_pnl(self) -> Decimal:
        return self.total_unrealized_pnl + self.total_realized_pnl


class TradingEngine(Protocol):
    """The account collaborator a RiskMonitor is built around."""
    initial_capital: Decimal
    current_capital: Decimal
    transaction_history: Sequence[Transaction]
    order_history: Sequence[ExecutedOrder]
    positions: Mapping[str, Position]

    def get_portfolio_overview(self) -> PortfolioOverview:
        ...


def _read(source: Any, name: str, default: Any = None) -> Any:
    if isinstance(source, Mapping):
        return source.get(name, default)
    return getattr(source, name, default)


def _as_position(item: Union[Position, Mapping[str, Any]]) -> Position:
    if isinstance(item, Position):
        return item
    if isinstance(item, Mapping):
        return Position.from_dict(item)
    raise TypeError(f"Unsupported position record: {type(item).__name__}")


def _as_transaction(item: Union[Transaction, Mapping[str, Any]]) -> Transaction:
    if isinstance(item, Transaction):
        return item
    if isinstance(item, Mapping):
        return Transaction.from_dict(item)
    raise TypeError(f"Unsupported transaction record: {type(item).__name__}")


def _as_order(item: Union[ExecutedOrder, Mapping[str, Any]]) -> ExecutedOrder:
    if isinstance(item, ExecutedOrder):
        return item
    if isinstance(item, Mapping):
        return ExecutedOrder.from_dict(item)
    raise TypeError(f"Unsupported order record: {type(item).__name__}")


def read_history(engine: TradingEngine) -> Tuple[List[Transaction], List[ExecutedOrder]]:
    """Transaction and order history, with plain dict records converted."""
    transactions = [_as_transaction(tx) for tx in engine.transaction_history]
    orders = [_as_order(o) for o in engine.order_history]
    return transactions, orders


def read_snapshot(engine: TradingEngine) -> PortfolioSnapshot:
    """
    Build a PortfolioSnapshot from the engine.

    Positions come from the engine's symbol -> position mapping, cash from
    current_capital and total value from the portfolio overview. Plain dict
    positions are accepted; read_history() does the same for history records.

    Raises ValueError/TypeError on malformed data; the monitor converts
    those into a degraded report.
    """
    overview = engine.get_portfolio_overview()
    positions = [_as_position(p) for p in engine.positions.values()]

    snapshot = PortfolioSnapshot(
        total_value=to_decimal(_read(overview, "total_value", 0)),
        cash_balance=to_decimal(engine.current_capital),
        positions=positions,
    )

    gap = snapshot.reconciliation_gap
    if gap != 0:
        logger.debug(f"Snapshot total differs from cash + positions by {gap}")

    return snapshot
