# Portfolio Module
# Paper trading account and per-account trading statistics

from .paper_account import OrderRejectedError, PaperTradingAccount
from .stats import TradeRecord, TradingStats

__all__ = [
    "PaperTradingAccount",
    "OrderRejectedError",
    "TradeRecord",
    "TradingStats",
]
