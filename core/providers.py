"""
Contracts for the external collaborators.

The privacy-pool provider generates proofs, executes pool contracts and
derives unlinkable addresses. The chain-data provider answers plain balance
queries. Neither is implemented in this package beyond the in-memory
ledger in core.memory_pool; production backends implement these classes.

Wire formats:
    - addresses: "0x" + 40 hex characters
    - operation refs: "0x" + 64 hex characters
    - balances and amounts: decimal strings
    - operation states: one of "submitted" (or "pending"), "confirming",
      "indexing", "completed", "failed"

Failures:
    Providers raise core.exceptions.ProviderError for rejected requests
    and failed queries.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Tuple


class PrivacyPoolProvider(ABC):
    """Shield, unshield, status polling and address derivation."""

    @abstractmethod
    def submit_shield(self, source_address: str, token: str, amount: str, chain_id: int) -> Tuple[str, str]:
        """Submit a shield request. Returns (operation_ref, initial_state)."""

    @abstractmethod
    def submit_unshield(
        self, destination_address: str, token: str, amount: str, chain_id: int
    ) -> Tuple[str, str]:
        """Submit an unshield request. Returns (operation_ref, initial_state)."""

    @abstractmethod
    def poll_operation_state(self, operation_ref: str) -> str:
        """Return the current state of an operation. Single request, no waiting."""

    @abstractmethod
    def read_shielded_balance(self, address: str, token: str, chain_id: int) -> str:
        """Shielded-pool balance owned by address, as a decimal string."""

    @abstractmethod
    def derive_address(self, public_address: str, chain_id: int) -> str:
        """Deterministically derive the unlinkable address for (public_address, chain_id)."""


class ChainDataProvider(ABC):
    """Public chain balance queries."""

    @abstractmethod
    def read_incognito_balance(self, address: str, token: str, chain_id: int) -> str:
        """Token balance held at an incognito address, as a decimal string."""

    @abstractmethod
    def read_public_balance(self, address: str, token: str, chain_id: int) -> str:
        """Token balance held at a public (main) wallet, as a decimal string."""
