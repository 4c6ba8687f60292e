"""
Input validation shared by every privacy operation.

Addresses are 20-byte values rendered as 0x + 40 hex characters.
Operation references are 32-byte values rendered as 0x + 64 hex characters.
Amounts are decimal strings that must parse to a strictly positive number.
"""

from __future__ import annotations

import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any

from .exceptions import InvalidInputError


ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")
OPERATION_REF_PATTERN = re.compile(r"^0x[a-fA-F0-9]{64}$")


def is_valid_address(value: Any) -> bool:
    """True if value has the 20-byte hex address shape."""
    return isinstance(value, str) and bool(ADDRESS_PATTERN.match(value))


def is_valid_operation_ref(value: Any) -> bool:
    """True if value has the 32-byte hex operation reference shape."""
    return isinstance(value, str) and bool(OPERATION_REF_PATTERN.match(value))


def same_address(a: str, b: str) -> bool:
    """Hex addresses compare case-insensitively."""
    return a.lower() == b.lower()


def require_address(value: Any, field: str = "address") -> str:
    """
    Validate an address.

    Args:
        value: Candidate address
        field: Parameter name used in the error message

    Returns:
        The address unchanged

    Raises:
        InvalidInputError: If value is not a 20-byte hex address
    """
    if not value:
        raise InvalidInputError(field, value, "address is required")
    if not is_valid_address(value):
        raise InvalidInputError(field, value, f"{value!r} is not a 0x-prefixed 20-byte hex address")
    return value


def require_operation_ref(value: Any) -> str:
    if not is_valid_operation_ref(value):
        raise InvalidInputError(
            "operation reference", value, f"{value!r} is not a 0x-prefixed 32-byte hex value"
        )
    return value


def _to_decimal(value: Any) -> Decimal:
    # bool is an int subclass; True is not an amount
    if isinstance(value, bool) or not isinstance(value, (str, int, float, Decimal)):
        raise InvalidOperation
    return Decimal(str(value).strip())


def parse_positive_amount(value: Any, field: str = "amount") -> Decimal:
    """
    Parse an amount that must be strictly positive.

    Rejects empty, zero, negative, non-numeric and non-finite values.

    Returns:
        The parsed Decimal

    Raises:
        InvalidInputError: If the amount is not a positive number
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidInputError(field, value, "amount is required")
    try:
        amount = _to_decimal(value)
    except (InvalidOperation, ValueError):
        raise InvalidInputError(field, value, f"{value!r} is not a number")
    if not amount.is_finite():
        raise InvalidInputError(field, value, f"{value!r} is not a finite number")
    if amount <= 0:
        raise InvalidInputError(field, value, f"{value!r} must be greater than zero")
    return amount


def parse_balance(value: Any) -> Decimal:
    """
    Parse a balance returned by a provider.

    Raises:
        ValueError: If the balance is not a finite, non-negative number
    """
    try:
        balance = _to_decimal(value)
    except (InvalidOperation, ValueError):
        raise ValueError(f"Malformed balance {value!r}")
    if not balance.is_finite() or balance < 0:
        raise ValueError(f"Malformed balance {value!r}")
    return balance


def is_positive_balance(value: Any) -> bool:
    """True only for a strictly positive numeric balance string."""
    try:
        return parse_balance(value) > 0
    except ValueError:
        return False


def require_chain_id(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidInputError("chain id", value, f"{value!r} must be a positive integer")
    return value


def is_positive_seconds(value: Any) -> bool:
    """True for a finite, strictly positive duration in seconds."""
    return (
        not isinstance(value, bool)
        and isinstance(value, (int, float))
        and math.isfinite(value)
        and value > 0
    )
