"""
Privacy operation model.

A PrivacyOperation is the handle for one shield or unshield call. It is
created in the SUBMITTED state when the provider accepts the request and
is then advanced only by the ConfirmationTracker as polling observes new
states. Once COMPLETED or FAILED it never changes again.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from core.exceptions import InvalidStateTransitionError
from .trading import OperationKind, OperationState, SupportedToken


@dataclass
class PrivacyOperation:
    """
    Handle for a submitted shield or unshield.

    Thread Safety:
        - Owned by exactly one session; only that session's thread mutates it
    """

    kind: OperationKind
    """Shield or unshield."""

    operation_ref: str
    """Provider operation reference (0x + 64 hex)."""

    token: SupportedToken
    """Token being moved."""

    amount: str
    """Amount being moved, as a decimal string."""

    state: OperationState
    """Last observed state."""

    started_at: datetime
    """When the operation was submitted."""

    source_address: Optional[str] = None
    """Address the value leaves (shield only)."""

    destination_address: Optional[str] = None
    """Address the value arrives at (unshield only)."""

    confirmed_at: Optional[datetime] = None
    """When COMPLETED was observed."""

    error: Optional[str] = None
    """Failure reason when FAILED was observed."""

    @classmethod
    def create_submitted(
        cls,
        kind: OperationKind,
        operation_ref: str,
        token: SupportedToken,
        amount: str,
        state: OperationState = OperationState.SUBMITTED,
        source_address: Optional[str] = None,
        destination_address: Optional[str] = None,
    ) -> "PrivacyOperation":
        """
        Create the handle for a freshly accepted submission.

        Args:
            kind: Shield or unshield
            operation_ref: Reference returned by the provider
            token: Token being moved
            amount: Amount being moved
            state: Initial state reported by the provider
            source_address: Shield source
            destination_address: Unshield destination

        Returns:
            PrivacyOperation stamped with the current time
        """
        return cls(
            kind=kind,
            operation_ref=operation_ref,
            token=token,
            amount=amount,
            state=state,
            started_at=datetime.now(timezone.utc),
            source_address=source_address,
            destination_address=destination_address,
        )

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    def advance(self, new_state: OperationState, reason: Optional[str] = None) -> bool:
        """
        Record a polled state.

        Non-terminal states behind the current one are ignored so that
        progress never regresses.

        Args:
            new_state: State reported by the provider
            reason: Failure reason (FAILED only)

        Returns:
            True if the state changed

        Raises:
            InvalidStateTransitionError: If the operation is already terminal
                and a different state is requested
        """
        if self.state.is_terminal:
            if new_state == self.state:
                return False
            raise InvalidStateTransitionError(self.operation_ref, self.state.value, new_state.value)

        if not new_state.is_terminal and new_state.progress <= self.state.progress:
            return False

        self.state = new_state
        if new_state == OperationState.COMPLETED:
            self.confirmed_at = datetime.now(timezone.utc)
        elif new_state == OperationState.FAILED:
            self.error = reason or "provider reported the failed state"
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "operation_ref": self.operation_ref,
            "token": self.token.value,
            "amount": self.amount,
            "state": self.state.value,
            "started_at": self.started_at.isoformat(),
            "source_address": self.source_address,
            "destination_address": self.destination_address,
            "confirmed_at": self.confirmed_at.isoformat() if self.confirmed_at else None,
            "error": self.error,
        }
