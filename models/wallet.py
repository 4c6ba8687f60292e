"""
Incognito wallet model.

An IncognitoWallet is the identity pair (main wallet address, derived
incognito address) for one session. It is frozen: a session that needs a
different incognito address derives a new wallet rather than editing this one.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from core.exceptions import InvalidInputError
from core.validation import require_address, require_chain_id, same_address


@dataclass(frozen=True)
class IncognitoWallet:
    """Derived, unlinkable trading wallet."""

    address: str
    """Derived incognito address."""

    main_wallet_address: str
    """Public wallet the address was derived from."""

    chain_id: int
    """Network the derivation is bound to."""

    created_at: datetime
    """When the wallet was derived."""

    is_active: bool = True
    """Whether this wallet is currently used for trading."""

    label: Optional[str] = None
    """Optional display label."""

    def __post_init__(self):
        if same_address(self.address, self.main_wallet_address):
            raise InvalidInputError(
                "incognito address", self.address, "must differ from the main wallet address"
            )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "address": self.address,
            "main_wallet_address": self.main_wallet_address,
            "chain_id": self.chain_id,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat(),
        }
        if self.label:
            data["label"] = self.label
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IncognitoWallet":
        """
        Create from a JSON request body.

        Raises:
            InvalidInputError: If an address or the chain id is malformed
        """
        if not isinstance(data, dict):
            raise InvalidInputError("incognito wallet", data, "wallet must be an object")

        created_at_str = data.get("created_at", "")
        try:
            created_at = datetime.fromisoformat(created_at_str) if created_at_str else None
        except (TypeError, ValueError):
            created_at = None

        return cls(
            address=require_address(data.get("address"), "incognito address"),
            main_wallet_address=require_address(data.get("main_wallet_address"), "main wallet address"),
            chain_id=require_chain_id(data.get("chain_id")),
            created_at=created_at or datetime.now(timezone.utc),
            is_active=bool(data.get("is_active", True)),
            label=data.get("label") or None,
        )
