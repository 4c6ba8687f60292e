"""
In-process privacy pool for development and tests.

Implements both provider contracts against a lock-protected ledger so the
whole entry/exit flow can run without a real pool deployment.

Ledger rules:
    - shield debits the source's public balance at submission and credits
      the shielded balance of the source's owner on completion. The owner
      of an incognito address is the main wallet it was derived from;
      any other address owns itself.
    - unshield debits the destination owner's shielded balance at
      submission and credits the destination's public balance on completion.
    - a failed operation refunds what was debited.
    - each poll advances an operation one step along STATE_PROGRESSION.

THREAD SAFETY:
    All ledger reads and writes hold a single threading.Lock, so several
    sessions can drive the same pool concurrently.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import threading
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional, Sequence, Tuple

from logging_config import get_logger

from .exceptions import ProviderError
from .providers import ChainDataProvider, PrivacyPoolProvider
from .validation import parse_positive_amount, require_address


STATE_PROGRESSION: Tuple[str, ...] = ("submitted", "confirming", "indexing", "completed")


@dataclass
class _LedgerOperation:
    kind: str
    chain_id: int
    token: str
    amount: Decimal
    debit_key: Tuple[int, str, str]
    debit_shielded: bool
    credit_key: Tuple[int, str, str]
    credit_shielded: bool
    step: int = 0
    failed_reason: Optional[str] = None
    settled: bool = False


def _fmt(amount: Decimal) -> str:
    # "10000.00" -> "10000", "0.50" -> "0.5"
    text = format(amount.normalize(), "f")
    return text if text != "-0" else "0"


class InMemoryPrivacyPool(PrivacyPoolProvider, ChainDataProvider):
    """
    Simulated privacy pool and chain ledger.

    Attributes:
        key_material: Secret mixed into address derivation
        progression: States reported by successive polls
    """

    def __init__(
        self,
        key_material: str = "dev-key-material",
        progression: Sequence[str] = STATE_PROGRESSION,
        logger: Optional[logging.Logger] = None,
    ):
        if not progression or progression[-1] != "completed":
            raise ValueError("progression must end in 'completed'")
        self._key = key_material.encode("utf-8")
        self._progression = tuple(progression)
        self._logger = logger or get_logger(__name__)
        self._lock = threading.Lock()

        self._public: Dict[Tuple[int, str, str], Decimal] = defaultdict(Decimal)
        self._shielded: Dict[Tuple[int, str, str], Decimal] = defaultdict(Decimal)
        self._owners: Dict[Tuple[int, str], str] = {}
        self._operations: Dict[str, _LedgerOperation] = {}

    @property
    def progression(self) -> Tuple[str, ...]:
        return self._progression

    # ------------------------------------------------------------------
    # Test / demo helpers
    # ------------------------------------------------------------------

    def fund(self, address: str, token: str, amount: str, chain_id: int = 1) -> None:
        """Credit a public balance (deposit from outside the system)."""
        require_address(address)
        value = parse_positive_amount(amount)
        with self._lock:
            self._public[(chain_id, address.lower(), token)] += value
        self._logger.debug(f"Funded {address} with {amount} {token} on chain {chain_id}")

    def fail_operation(self, operation_ref: str, reason: str = "Operation reverted") -> None:
        """Force an operation into the failed state and refund its debit."""
        with self._lock:
            op = self._get_operation(operation_ref)
            if op.settled or op.failed_reason:
                return
            op.failed_reason = reason
            self._balance_book(op.debit_shielded)[op.debit_key] += op.amount

    def operation_failure(self, operation_ref: str) -> Optional[str]:
        with self._lock:
            return self._get_operation(operation_ref).failed_reason

    def total_supply(self, token: str, chain_id: int = 1) -> str:
        """Public, shielded and in-flight holdings of a token combined."""
        with self._lock:
            total = sum(
                (v for (c, _, t), v in self._public.items() if c == chain_id and t == token),
                Decimal("0"),
            )
            total += sum(
                (v for (c, _, t), v in self._shielded.items() if c == chain_id and t == token),
                Decimal("0"),
            )
            total += sum(
                (op.amount for op in self._operations.values()
                 if op.chain_id == chain_id and op.token == token
                 and not op.settled and not op.failed_reason),
                Decimal("0"),
            )
        return _fmt(total)

    # ------------------------------------------------------------------
    # PrivacyPoolProvider
    # ------------------------------------------------------------------

    def derive_address(self, public_address: str, chain_id: int) -> str:
        require_address(public_address, "public address")
        message = f"{public_address.lower()}:{chain_id}".encode("utf-8")
        digest = hmac.new(self._key, message, hashlib.sha256).hexdigest()
        derived = "0x" + digest[:40]
        with self._lock:
            self._owners[(chain_id, derived)] = public_address.lower()
        return derived

    def submit_shield(self, source_address: str, token: str, amount: str, chain_id: int) -> Tuple[str, str]:
        value = parse_positive_amount(amount)
        source = source_address.lower()
        with self._lock:
            owner = self._owners.get((chain_id, source), source)
            debit_key = (chain_id, source, token)
            if self._public[debit_key] < value:
                raise ProviderError(
                    f"Insufficient balance: {source_address} holds "
                    f"{_fmt(self._public[debit_key])} {token}, needs {amount}",
                    operation="shield",
                )
            self._public[debit_key] -= value
            ref = self._new_operation(
                "shield", chain_id, token, value,
                debit_key=debit_key, debit_shielded=False,
                credit_key=(chain_id, owner, token), credit_shielded=True,
            )
        self._logger.info(f"Shield accepted: {ref[:10]} {amount} {token}")
        return ref, self._progression[0]

    def submit_unshield(
        self, destination_address: str, token: str, amount: str, chain_id: int
    ) -> Tuple[str, str]:
        value = parse_positive_amount(amount)
        destination = destination_address.lower()
        with self._lock:
            owner = self._owners.get((chain_id, destination), destination)
            debit_key = (chain_id, owner, token)
            if self._shielded[debit_key] < value:
                raise ProviderError(
                    f"Insufficient shielded balance: {_fmt(self._shielded[debit_key])} {token} "
                    f"available, needs {amount}",
                    operation="unshield",
                )
            self._shielded[debit_key] -= value
            ref = self._new_operation(
                "unshield", chain_id, token, value,
                debit_key=debit_key, debit_shielded=True,
                credit_key=(chain_id, destination, token), credit_shielded=False,
            )
        self._logger.info(f"Unshield accepted: {ref[:10]} {amount} {token}")
        return ref, self._progression[0]

    def poll_operation_state(self, operation_ref: str) -> str:
        with self._lock:
            op = self._get_operation(operation_ref)
            if op.failed_reason:
                return "failed"
            if op.step < len(self._progression) - 1:
                op.step += 1
            state = self._progression[op.step]
            if state == "completed" and not op.settled:
                self._balance_book(op.credit_shielded)[op.credit_key] += op.amount
                op.settled = True
            return state

    def read_shielded_balance(self, address: str, token: str, chain_id: int) -> str:
        require_address(address)
        with self._lock:
            return _fmt(self._shielded[(chain_id, address.lower(), token)])

    # ------------------------------------------------------------------
    # ChainDataProvider
    # ------------------------------------------------------------------

    def read_incognito_balance(self, address: str, token: str, chain_id: int) -> str:
        return self.read_public_balance(address, token, chain_id)

    def read_public_balance(self, address: str, token: str, chain_id: int) -> str:
        require_address(address)
        with self._lock:
            return _fmt(self._public[(chain_id, address.lower(), token)])

    # ------------------------------------------------------------------
    # Internals (caller holds the lock)
    # ------------------------------------------------------------------

    def _balance_book(self, shielded: bool) -> Dict[Tuple[int, str, str], Decimal]:
        return self._shielded if shielded else self._public

    def _get_operation(self, operation_ref: str) -> _LedgerOperation:
        op = self._operations.get(operation_ref)
        if op is None:
            raise ProviderError(f"Unknown operation {operation_ref}", operation="poll")
        return op

    def _new_operation(self, kind: str, chain_id: int, token: str, amount: Decimal, **keys) -> str:
        ref = "0x" + secrets.token_hex(32)
        self._operations[ref] = _LedgerOperation(kind, chain_id, token, amount, **keys)
        return ref
