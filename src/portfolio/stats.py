"""
Trading Statistics - per-account performance and behaviour summary.

Counts and rates are updated incrementally from closed trades. The derived
summaries are cached in a TTLCache and invalidated on every update, so a
read after update_with_trade() always reflects the new trade.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from src.risk.schema import Transaction, TransactionType
from src.utils.cache import TTLCache

logger = logging.getLogger(__name__)


SUMMARY_CACHE_TTL_SECONDS = 300


@dataclass(frozen=True)
class TradeRecord:
    """One closed trade as far as statistics are concerned."""
    volume: float
    profit: float
    date: date
    symbol: Optional[str] = None

    @classmethod
    def from_transaction(cls, tx: Transaction) -> "TradeRecord":
        return cls(
            volume=float(tx.amount),
            profit=float(tx.profit_loss),
            date=tx.timestamp.date(),
            symbol=tx.symbol,
        )


class TradingStats:
    """
    Win rate, trade size, frequency and risk profile of one account.

    max_drawdown and volatility are fractions (0.12 == 12%) supplied by the
    caller, typically from the latest RiskMetrics.
    """

    def __init__(
        self,
        account_id: str,
        max_drawdown: float = 0.0,
        volatility: float = 0.0,
        sharpe_ratio: float = 0.0,
        cache_ttl_seconds: float = SUMMARY_CACHE_TTL_SECONDS,
    ):
        self.account_id = account_id

        self.total_trades = 0
        self.winning_trades = 0
        self.losing_trades = 0
        self.total_volume = 0.0
        self.total_profit = 0.0
        self.average_return = 0.0

        self.first_trade_date: Optional[date] = None
        self.last_trade_date: Optional[date] = None
        self.trading_days = 0
        self.instruments: List[str] = []

        self.max_drawdown = max_drawdown
        self.volatility = volatility
        self.sharpe_ratio = sharpe_ratio

        self._cache = TTLCache(cache_ttl_seconds)

    @classmethod
    def from_transactions(cls, account_id: str, transactions: Iterable[Transaction], **kwargs) -> "TradingStats":
        """Build stats from a transaction history; sells are the closed trades."""
        stats = cls(account_id, **kwargs)
        stats.update_with_trades(
            TradeRecord.from_transaction(tx)
            for tx in transactions
            if tx.type == TransactionType.SELL
        )
        return stats

    # =========================================================================
    # Basic rates
    # =========================================================================

    def win_rate(self) -> int:
        """Winning trades as a whole percentage."""
        if self.total_trades == 0:
            return 0
        return round(self.winning_trades / self.total_trades * 100)

    def average_trade_size(self) -> float:
        if self.total_trades == 0:
            return 0.0
        return self.total_volume / self.total_trades

    def trading_frequency(self) -> str:
        if self.trading_days == 0:
            return "none"

        trades_per_day = self.total_trades / self.trading_days
        if trades_per_day >= 5:
            return "very_high"
        if trades_per_day >= 2:
            return "high"
        if trades_per_day >= 0.5:
            return "medium"
        return "low"

    def risk_appetite(self) -> str:
        if self.total_volume == 0:
            return "unknown"

        appetite = self.volatility * self.max_drawdown
        if appetite > 0.1:
            return "aggressive"
        if appetite > 0.05:
            return "moderate"
        return "conservative"

    # =========================================================================
    # Performance
    # =========================================================================

    def performance_score(self) -> int:
        """0-100, starting from 50."""
        score = 50

        win_rate = self.win_rate()
        if win_rate > 60:
            score += 20
        elif win_rate > 40:
            score += 10

        if self.sharpe_ratio > 1.5:
            score += 15
        elif self.sharpe_ratio > 0.5:
            score += 5

        if self.total_trades > 100:
            score += 10
        elif self.total_trades > 50:
            score += 5

        return max(0, min(100, score))

    def risk_adjusted_return(self) -> float:
        if self.volatility == 0:
            return self.average_return
        return self.average_return / self.volatility

    def consistency_score(self) -> int:
        if self.total_trades < 10:
            return 0

        win_rate_stability = min(self.win_rate() / 100, 1.0)
        frequency_score = min(self.total_trades / 50, 1.0)
        return round((win_rate_stability * 0.6 + frequency_score * 0.4) * 100)

    # =========================================================================
    # Risk
    # =========================================================================

    def risk_score(self) -> float:
        """0-100 from volatility (max 30), drawdown (max 40) and frequency."""
        score = min(self.volatility * 100, 30) + min(self.max_drawdown * 100, 40)

        frequency_points = {"very_high": 20, "high": 15, "medium": 10}
        score += frequency_points.get(self.trading_frequency(), 0)

        return min(100.0, score)

    def risk_level(self) -> str:
        score = self.risk_score()
        if score >= 80:
            return "very_high"
        if score >= 60:
            return "high"
        if score >= 40:
            return "medium"
        if score >= 20:
            return "low"
        return "very_low"

    def drawdown_recovery(self) -> str:
        if self.max_drawdown == 0:
            return "excellent"

        recovery_ratio = self.total_profit / self.max_drawdown
        if recovery_ratio > 3:
            return "excellent"
        if recovery_ratio > 1.5:
            return "good"
        if recovery_ratio > 0.5:
            return "fair"
        return "poor"

    # =========================================================================
    # Cached summaries
    # =========================================================================

    def get_performance_summary(self) -> Dict[str, Any]:
        return self._cache.get_or_compute("performance_summary", lambda: {
            "total_trades": self.total_trades,
            "win_rate": self.win_rate(),
            "total_profit": self.total_profit,
            "average_return": self.average_return,
            "sharpe_ratio": self.sharpe_ratio,
            "max_drawdown": self.max_drawdown,
            "trading_days": self.trading_days,
            "trading_frequency": self.trading_frequency(),
            "performance_score": self.performance_score(),
            "risk_adjusted_return": self.risk_adjusted_return(),
            "consistency_score": self.consistency_score(),
        })

    def get_risk_assessment(self) -> Dict[str, Any]:
        return self._cache.get_or_compute("risk_assessment", lambda: {
            "risk_level": self.risk_level(),
            "risk_score": self.risk_score(),
            "max_drawdown": self.max_drawdown,
            "volatility": self.volatility,
            "risk_appetite": self.risk_appetite(),
            "drawdown_recovery": self.drawdown_recovery(),
        })

    # =========================================================================
    # Updates
    # =========================================================================

    def update_with_trade(self, trade: TradeRecord):
        if not math.isfinite(trade.volume) or trade.volume < 0:
            raise ValueError(f"Trade volume must be a non-negative number, got {trade.volume}")

        self.total_trades += 1
        self.total_volume += trade.volume

        if trade.profit > 0:
            self.winning_trades += 1
        else:
            self.losing_trades += 1

        self.total_profit += trade.profit
        self.average_return = self.total_profit / self.total_trades

        if self.first_trade_date is None or trade.date < self.first_trade_date:
            self.first_trade_date = trade.date
        if self.last_trade_date is None or trade.date > self.last_trade_date:
            self.last_trade_date = trade.date

        span_days = (self.last_trade_date - self.first_trade_date).days + 1
        self.trading_days = max(self.trading_days, span_days)

        if trade.symbol and trade.symbol not in self.instruments:
            self.instruments.append(trade.symbol)

        self._cache.invalidate()

    def update_with_trades(self, trades: Iterable[TradeRecord]):
        for trade in trades:
            self.update_with_trade(trade)

    def update_risk_inputs(self, max_drawdown: float, volatility: float):
        """Refresh the risk inputs, e.g. from the latest RiskMetrics."""
        logger.debug(
            f"{self.account_id}: risk inputs drawdown={max_drawdown:.4f} volatility={volatility:.4f}"
        )
        self.max_drawdown = max_drawdown
        self.volatility = volatility
        self._cache.invalidate()
