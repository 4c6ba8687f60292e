"""
Data models for private trading.

This module contains dataclasses for:
- PrivateTradeConfig: Entry/exit directive (frozen)
- IncognitoWallet: Derived identity pair (frozen)
- PrivacyOperation: Shield/unshield handle, advanced by the confirmation tracker
- PrivateFundsStatus: Point-in-time balance snapshot (frozen)
- PrivateTradeSession: One trade intent from entry to exit

Frozen models are safe to pass between threads. PrivacyOperation and
PrivateTradeSession are owned by a single session thread.
"""

from .trading import (
    SupportedToken,
    OperationState,
    PrivacyPoolStatus,
    TradeType,
    PrivateTradeMode,
    OperationKind,
    PrivateTradeConfig,
)
from .wallet import IncognitoWallet
from .operation import PrivacyOperation
from .funds_status import PrivateFundsStatus
from .session import PrivateTradeSession

__all__ = [
    # Enums
    "SupportedToken",
    "OperationState",
    "PrivacyPoolStatus",
    "TradeType",
    "PrivateTradeMode",
    "OperationKind",
    # Configuration
    "PrivateTradeConfig",
    # Wallet and operation models
    "IncognitoWallet",
    "PrivacyOperation",
    # Status and session models
    "PrivateFundsStatus",
    "PrivateTradeSession",
]
