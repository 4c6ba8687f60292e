"""
Trade session model.

A PrivateTradeSession follows one trade intent through
derive -> prepare -> unshield -> trade -> exit. It is written by the
session's worker thread and read by callers through TradeSessionStore.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .funds_status import PrivateFundsStatus
from .operation import PrivacyOperation
from .trading import PrivateTradeConfig, PrivateTradeMode
from .wallet import IncognitoWallet


@dataclass
class PrivateTradeSession:
    """State of one private trading session."""

    session_id: str
    """Unique session identifier (UUID)."""

    main_wallet_address: str
    """Public wallet funding the session."""

    config: PrivateTradeConfig
    """Entry configuration."""

    started_at: datetime
    """When the session was created."""

    mode: PrivateTradeMode = PrivateTradeMode.PREPARE
    """Current phase."""

    label: Optional[str] = None
    """Label passed on to the incognito wallet."""

    incognito_wallet: Optional[IncognitoWallet] = None
    """Derived wallet (None until derivation succeeds)."""

    shield_operation: Optional[PrivacyOperation] = None
    unshield_operation: Optional[PrivacyOperation] = None
    exit_operation: Optional[PrivacyOperation] = None

    exit_config: Optional[PrivateTradeConfig] = None
    """Configuration of the exit step, once requested."""

    status: Optional[PrivateFundsStatus] = None
    """Last funds status snapshot."""

    error: Optional[str] = None
    """Phase-prefixed message of the last failure."""

    error_phase: Optional[str] = None
    """Phase that failed (derive, prepare, unshield, exit)."""

    ended_at: Optional[datetime] = None
    """When the exit confirmed."""

    @classmethod
    def create(
        cls,
        main_wallet_address: str,
        config: PrivateTradeConfig,
        label: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> "PrivateTradeSession":
        return cls(
            session_id=session_id or str(uuid.uuid4()),
            main_wallet_address=main_wallet_address,
            config=config,
            started_at=datetime.now(timezone.utc),
            label=label,
        )

    @property
    def has_failed(self) -> bool:
        return self.error is not None

    @property
    def is_ended(self) -> bool:
        return self.ended_at is not None

    def record_failure(self, phase: str, message: str) -> None:
        self.error = message
        self.error_phase = phase

    def clear_failure(self) -> None:
        self.error = None
        self.error_phase = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for the JSON API."""
        def _opt(value):
            return value.to_dict() if value is not None else None

        return {
            "session_id": self.session_id,
            "main_wallet_address": self.main_wallet_address,
            "mode": self.mode.value,
            "label": self.label,
            "config": self.config.to_dict(),
            "exit_config": _opt(self.exit_config),
            "incognito_wallet": _opt(self.incognito_wallet),
            "shield_operation": _opt(self.shield_operation),
            "unshield_operation": _opt(self.unshield_operation),
            "exit_operation": _opt(self.exit_operation),
            "status": _opt(self.status),
            "error": self.error,
            "error_phase": self.error_phase,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
        }
