"""
Services layer.

- PrivateTradingService: Phase-by-phase orchestration (derive, prepare,
  unshield, exit) plus status checks and confirmation waits
- TradeSessionService: Whole sessions run in background worker threads

Thread Model:
    Main Thread (Flask)
    └── TradeSessionService threads (one per session step)
        └── StatusRead threads (short-lived, one per balance read)

Both services share one provider pair created by ProviderManager.
"""

from .private_trading_service import PrivateTradingService
from .session_service import TradeSessionService, TradeSessionStore

__all__ = [
    "PrivateTradingService",
    "TradeSessionService",
    "TradeSessionStore",
]
