"""
Paper Trading Account - in-memory simulated account.

Implements the TradingEngine protocol the RiskMonitor reads from:
initial_capital, current_capital, positions, transaction_history,
order_history and get_portfolio_overview().

Fills are immediate at the requested price, with a flat commission.
Order checks:
- account must be started
- symbol non-empty, quantity and price > 0
- BUY: notional <= max_position_size * initial_capital
- BUY: today's realized loss has not breached max_daily_loss
- BUY: enough cash for notional + commission
- SELL: enough quantity held

Any failed check raises OrderRejectedError and leaves the account untouched.

Usage:
    account = PaperTradingAccount("acct-1", initial_capital=Decimal("100000"))
    account.start()

    await account.execute_buy_order("AAPL", Decimal("10"), Decimal("150"))
    account.mark_price("AAPL", Decimal("140"))
    await account.execute_sell_order("AAPL", Decimal("10"), Decimal("160"))
"""

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from src.risk.schema import (
    ExecutedOrder,
    Position,
    Transaction,
    TransactionType,
    to_decimal,
)
from src.risk.source import PortfolioOverview

logger = logging.getLogger(__name__)


DEFAULT_COMMISSION_RATE = Decimal("0.001")   # 0.1%
DEFAULT_MAX_POSITION_SIZE = Decimal("0.1")   # 10% of initial capital per order
DEFAULT_MAX_DAILY_LOSS = Decimal("0.05")     # 5% of initial capital


class OrderRejectedError(Exception):
    """An order failed validation. errors lists every failed check."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("Order rejected: " + "; ".join(self.errors))


class PaperTradingAccount:
    """Simulated account with cash, positions and full trade history."""

    def __init__(
        self,
        account_id: str,
        initial_capital: Decimal = Decimal("100000"),
        commission_rate: Decimal = DEFAULT_COMMISSION_RATE,
        max_position_size: Decimal = DEFAULT_MAX_POSITION_SIZE,
        max_daily_loss: Decimal = DEFAULT_MAX_DAILY_LOSS,
    ):
        initial_capital = to_decimal(initial_capital)
        if initial_capital < 0:
            raise ValueError(f"initial_capital must be >= 0, got {initial_capital}")

        self.account_id = account_id
        self.initial_capital = initial_capital
        self.current_capital = initial_capital
        self.commission_rate = to_decimal(commission_rate)
        self.max_position_size = to_decimal(max_position_size)
        self.max_daily_loss = to_decimal(max_daily_loss)

        self.positions: Dict[str, Position] = {}
        self.transaction_history: List[Transaction] = []
        self.order_history: List[ExecutedOrder] = []
        self._market_prices: Dict[str, Decimal] = {}

        self.is_running = False

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self):
        self.is_running = True
        logger.info(f"Paper account {self.account_id} started, capital: ${self.current_capital}")

    def stop(self):
        self.is_running = False
        logger.info(f"Paper account {self.account_id} stopped")

    # =========================================================================
    # Orders
    # =========================================================================

    async def execute_buy_order(self, symbol: str, quantity: Any, price: Any) -> ExecutedOrder:
        quantity, price = self._validate_order(symbol, quantity, price, TransactionType.BUY)

        notional = quantity * price
        commission = self.calculate_commission(notional)
        total_amount = notional + commission

        if total_amount > self.current_capital:
            raise OrderRejectedError([
                f"Insufficient cash: need ${total_amount}, have ${self.current_capital}"
            ])

        self.current_capital -= total_amount
        self._apply_buy(symbol, quantity, price)

        order = self._record(symbol, TransactionType.BUY, quantity, price, commission, total_amount)
        logger.info(
            f"{self.account_id}: BUY {quantity} {symbol} @ {price} "
            f"(commission {commission}, cash left ${self.current_capital})"
        )
        return order

    async def execute_sell_order(self, symbol: str, quantity: Any, price: Any) -> ExecutedOrder:
        quantity, price = self._validate_order(symbol, quantity, price, TransactionType.SELL)

        position = self.positions.get(symbol)
        if position is None or position.quantity < quantity:
            held = position.quantity if position else Decimal("0")
            raise OrderRejectedError([f"Insufficient position in {symbol}: hold {held}, selling {quantity}"])

        notional = quantity * price
        commission = self.calculate_commission(notional)
        net_amount = notional - commission
        profit_loss = quantity * (price - position.average_cost) - commission

        self.current_capital += net_amount
        self._apply_sell(symbol, quantity, price)

        order = self._record(
            symbol, TransactionType.SELL, quantity, price, commission, net_amount, profit_loss
        )
        logger.info(
            f"{self.account_id}: SELL {quantity} {symbol} @ {price} "
            f"(P&L {profit_loss:+.2f}, cash ${self.current_capital})"
        )
        return order

    def calculate_commission(self, amount: Decimal) -> Decimal:
        return amount * self.commission_rate

    def _validate_order(self, symbol: str, quantity: Any, price: Any, side: TransactionType):
        errors = []

        if not self.is_running:
            raise OrderRejectedError([f"Paper account {self.account_id} is not started"])

        if not isinstance(symbol, str) or not symbol:
            errors.append("Symbol must be a non-empty string")

        try:
            quantity = to_decimal(quantity)
            price = to_decimal(price)
        except ValueError as e:
            raise OrderRejectedError([str(e)])

        if quantity <= 0:
            errors.append(f"Quantity must be > 0, got {quantity}")
        if price <= 0:
            errors.append(f"Price must be > 0, got {price}")

        if side == TransactionType.BUY and not errors:
            max_order_value = self.initial_capital * self.max_position_size
            if quantity * price > max_order_value:
                errors.append(
                    f"Order value ${quantity * price} exceeds max position size ${max_order_value}"
                )

            max_loss = self.initial_capital * self.max_daily_loss
            if self.daily_profit_loss() < -max_loss:
                errors.append("Daily loss limit reached, no new buys today")

        if errors:
            raise OrderRejectedError(errors)

        return quantity, price

    def _record(
        self,
        symbol: str,
        side: TransactionType,
        quantity: Decimal,
        price: Decimal,
        commission: Decimal,
        net_amount: Decimal,
        profit_loss: Decimal = Decimal("0"),
    ) -> ExecutedOrder:
        now = datetime.now(timezone.utc)
        order = ExecutedOrder(
            order_id=f"ORDER_{self.account_id}_{uuid.uuid4().hex[:12]}",
            symbol=symbol,
            side=side,
            quantity=quantity,
            price=price,
            timestamp=now,
        )
        self.order_history.append(order)
        self.transaction_history.append(Transaction(
            symbol=symbol,
            type=side,
            quantity=quantity,
            price=price,
            timestamp=now,
            profit_loss=profit_loss,
            commission=commission,
            net_amount=net_amount,
        ))
        return order

    # =========================================================================
    # Positions
    # =========================================================================

    def _apply_buy(self, symbol: str, quantity: Decimal, price: Decimal):
        position = self.positions.get(symbol)
        if position is None:
            position = Position(symbol=symbol, quantity=0, average_cost=0, current_value=0)
            self.positions[symbol] = position

        position.total_cost += quantity * price
        position.quantity += quantity
        position.average_cost = position.total_cost / position.quantity
        self._revalue(position, price)

    def _apply_sell(self, symbol: str, quantity: Decimal, price: Decimal):
        position = self.positions[symbol]
        position.realized_pnl += quantity * (price - position.average_cost)
        position.quantity -= quantity
        position.total_cost = position.quantity * position.average_cost

        if position.quantity == 0:
            del self.positions[symbol]
            logger.debug(f"{self.account_id}: {symbol} position closed")
            return

        self._revalue(position, price)

    def _revalue(self, position: Position, last_price: Decimal):
        # Marked price wins over the last fill price
        price = self._market_prices.get(position.symbol, last_price)
        position.current_value = position.quantity * price
        position.unrealized_pnl = position.current_value - position.total_cost

    def mark_price(self, symbol: str, price: Any):
        """Record a market price and revalue the open position, if any."""
        price = to_decimal(price)
        if price <= 0:
            raise ValueError(f"Price must be > 0, got {price}")

        self._market_prices[symbol] = price
        position = self.positions.get(symbol)
        if position is not None:
            self._revalue(position, price)

    def get_position(self, symbol: str) -> Optional[Position]:
        return self.positions.get(symbol)

    # =========================================================================
    # Reporting
    # =========================================================================

    def get_portfolio_overview(self) -> PortfolioOverview:
        """Position totals. total_value is cash plus marked positions."""
        positions = list(self.positions.values())
        return PortfolioOverview(
            total_value=self.current_capital + self.positions_value,
            positions=positions,
            total_cost=sum((p.total_cost for p in positions), Decimal("0")),
            total_unrealized_pnl=sum((p.unrealized_pnl for p in positions), Decimal("0")),
            total_realized_pnl=sum(
                (tx.profit_loss for tx in self.transaction_history), Decimal("0")
            ),
        )

    def daily_profit_loss(self, day: Optional[datetime] = None) -> Decimal:
        """Realized P&L of trades on the given UTC day (default today)."""
        target = (day or datetime.now(timezone.utc)).date()
        return sum(
            (tx.profit_loss for tx in self.transaction_history if tx.timestamp.date() == target),
            Decimal("0"),
        )

    @property
    def positions_value(self) -> Decimal:
        return sum((p.current_value for p in self.positions.values()), Decimal("0"))

    @property
    def equity(self) -> Decimal:
        return self.current_capital + self.positions_value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account_id": self.account_id,
            "is_running": self.is_running,
            "initial_capital": str(self.initial_capital),
            "current_capital": str(self.current_capital),
            "equity": str(self.equity),
            "positions": [p.to_dict() for p in self.positions.values()],
            "order_count": len(self.order_history),
        }
