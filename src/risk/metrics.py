"""
Risk Metric Calculators

Pure functions over a portfolio snapshot and its bounded history.
None of them mutate their inputs, and all of them return 0.0 for empty
inputs instead of raising.

Several of these are heuristics, not textbook measures:
- correlation_proxy counts positions; it is NOT a correlation coefficient.
- momentum_proxy measures how often the account trades, not price momentum.
- liquidity_proxy is a cash ratio, not market depth.
"""

from decimal import Decimal
from typing import Iterable, List, Sequence

import numpy as np

from .schema import ExecutedOrder, PortfolioSnapshot, Position, RiskMetrics, Transaction, to_decimal


MOMENTUM_WINDOW = 10
MOMENTUM_SCALE = 0.5


def calculate_drawdown(
    initial_capital: Decimal,
    transactions: Sequence[Transaction],
    current_value: Decimal,
) -> float:
    """
    (peak - current) / peak, where peak is the larger of the initial capital
    and every transaction amount seen so far.

    Returns 0.0 when the peak is not positive or the current value is at or
    above the peak.
    """
    peak = max([to_decimal(initial_capital)] + [tx.amount for tx in transactions])
    if peak <= 0:
        return 0.0

    drawdown = float((peak - to_decimal(current_value)) / peak)
    return max(drawdown, 0.0)


def percentage_changes(amounts: Iterable[Decimal]) -> List[float]:
    """Period-over-period changes, skipping steps from a non-positive base."""
    changes = []
    previous = None
    for amount in amounts:
        if previous is not None and previous > 0:
            changes.append(float((amount - previous) / previous))
        previous = amount
    return changes


def calculate_volatility(transactions: Sequence[Transaction]) -> float:
    """Sample standard deviation of transaction-amount percentage changes."""
    changes = percentage_changes(tx.amount for tx in transactions)
    if len(changes) < 2:
        return 0.0
    return float(np.std(changes, ddof=1))


def calculate_concentration(positions: Sequence[Position], total_value: Decimal) -> float:
    """Largest position value / total value, in [0, 1]."""
    if not positions or total_value <= 0:
        return 0.0

    largest = max(p.current_value for p in positions)
    return min(float(largest / to_decimal(total_value)), 1.0)


def calculate_correlation_proxy(position_count: int) -> float:
    """
    Diversification heuristic from the number of open positions.

    1 position -> 1.0, 2-3 -> 0.7, 4-5 -> 0.4, more -> 0.2.
    An empty portfolio carries no correlation risk.
    """
    if position_count <= 0:
        return 0.0
    if position_count == 1:
        return 1.0
    if position_count <= 3:
        return 0.7
    if position_count <= 5:
        return 0.4
    return 0.2


def calculate_momentum_proxy(orders: Sequence[ExecutedOrder]) -> float:
    """Trading-frequency heuristic over the last 10 executed orders."""
    recent = [o for o in orders if o.is_executed][-MOMENTUM_WINDOW:]
    return min(len(recent) / MOMENTUM_WINDOW * MOMENTUM_SCALE, 1.0)


def calculate_liquidity_proxy(cash_balance: Decimal, total_value: Decimal) -> float:
    """max(0, 1 - 2 * cash / total). Less cash means more liquidity risk."""
    if total_value <= 0:
        return 0.0

    cash_ratio = float(to_decimal(cash_balance) / to_decimal(total_value))
    return max(0.0, 1 - cash_ratio * 2)


def calculate_metrics(
    snapshot: PortfolioSnapshot,
    initial_capital: Decimal,
    current_capital: Decimal,
    transactions: Sequence[Transaction],
    orders: Sequence[ExecutedOrder],
) -> RiskMetrics:
    """Run every calculator against one snapshot."""
    # Only drawdown falls back to the capital figure on a zero total
    current_value = snapshot.total_value or to_decimal(current_capital)

    return RiskMetrics(
        drawdown=calculate_drawdown(initial_capital, transactions, current_value),
        volatility=calculate_volatility(transactions),
        concentration=calculate_concentration(snapshot.positions, snapshot.total_value),
        correlation=calculate_correlation_proxy(snapshot.position_count),
        momentum=calculate_momentum_proxy(orders),
        liquidity=calculate_liquidity_proxy(snapshot.cash_balance, snapshot.total_value),
    )
