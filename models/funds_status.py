"""
Funds status snapshot model.

PrivateFundsStatus is a point-in-time read of where a session's funds sit.
It is never cached or persisted - every status check builds a new one from
live balance queries.

Thread Safety:
    - PrivateFundsStatus is a frozen dataclass (immutable)
    - Safe to hand to any thread
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from core.validation import is_positive_balance
from .trading import OperationState, PrivacyPoolStatus


@dataclass(frozen=True)
class PrivateFundsStatus:
    """
    Combined view of shielded, incognito and main wallet balances.

    Invariant: is_ready is True only when the shielded or the incognito
    balance is a strictly positive number.
    """

    shielded_balance: str
    """Balance in the privacy pool (decimal string)."""

    incognito_balance: str
    """Balance in the incognito wallet (decimal string)."""

    main_wallet_balance: str
    """Balance in the main wallet, "0" when not queried."""

    privacy_pool_status: PrivacyPoolStatus
    """READY, NOT_INITIALIZED or ERROR."""

    is_ready: bool
    """Whether private trading can proceed."""

    transaction_state: OperationState
    """Last known operation state."""

    last_updated: datetime
    """When the balances were read."""

    error: Optional[str] = None
    """Captured read failure (ERROR status only)."""

    @classmethod
    def from_balances(
        cls,
        shielded_balance: str,
        incognito_balance: str,
        main_wallet_balance: str = "0",
        transaction_state: OperationState = OperationState.IDLE,
    ) -> "PrivateFundsStatus":
        """
        Build a snapshot from successful balance reads.

        Returns:
            READY snapshot if either private balance is positive,
            NOT_INITIALIZED otherwise
        """
        is_ready = is_positive_balance(shielded_balance) or is_positive_balance(incognito_balance)
        return cls(
            shielded_balance=shielded_balance,
            incognito_balance=incognito_balance,
            main_wallet_balance=main_wallet_balance,
            privacy_pool_status=PrivacyPoolStatus.READY if is_ready else PrivacyPoolStatus.NOT_INITIALIZED,
            is_ready=is_ready,
            transaction_state=transaction_state,
            last_updated=datetime.now(timezone.utc),
        )

    @classmethod
    def create_error(cls, error_message: str) -> "PrivateFundsStatus":
        """
        Build the degraded snapshot returned when a balance read fails.

        Args:
            error_message: Description of the failure

        Returns:
            ERROR snapshot with zero balances and FAILED transaction state
        """
        return cls(
            shielded_balance="0",
            incognito_balance="0",
            main_wallet_balance="0",
            privacy_pool_status=PrivacyPoolStatus.ERROR,
            is_ready=False,
            transaction_state=OperationState.FAILED,
            last_updated=datetime.now(timezone.utc),
            error=error_message,
        )

    @property
    def age_seconds(self) -> float:
        return (datetime.now(timezone.utc) - self.last_updated).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "shielded_balance": self.shielded_balance,
            "incognito_balance": self.incognito_balance,
            "main_wallet_balance": self.main_wallet_balance,
            "privacy_pool_status": self.privacy_pool_status.value,
            "is_ready": self.is_ready,
            "transaction_state": self.transaction_state.value,
            "last_updated": self.last_updated.isoformat(),
            "error": self.error,
        }
