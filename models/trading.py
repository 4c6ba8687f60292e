"""
Trading enums and trade configuration.

PrivateTradeConfig is a frozen dataclass: one configuration drives exactly
one shield or unshield call and cannot be modified after construction.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from core.exceptions import InvalidInputError
from core.validation import is_positive_seconds, parse_positive_amount


class SupportedToken(Enum):
    """Tokens the privacy pool accepts."""

    USDC = "USDC"
    USDT = "USDT"
    DAI = "DAI"
    WETH = "WETH"
    WBTC = "WBTC"


class OperationState(Enum):
    """
    State of a shield or unshield operation.

    Lifecycle:
        IDLE -> SUBMITTED -> CONFIRMING -> INDEXING -> COMPLETED
        FAILED is reachable from SUBMITTED, CONFIRMING or INDEXING.

    COMPLETED and FAILED are terminal. IDLE is the neutral default
    when no operation has begun.
    """

    IDLE = "idle"
    SUBMITTED = "submitted"
    CONFIRMING = "confirming"
    INDEXING = "indexing"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def _missing_(cls, value):
        # Providers report a freshly submitted operation as "pending"
        if isinstance(value, str) and value.lower() == "pending":
            return cls.SUBMITTED
        return None

    @property
    def is_terminal(self) -> bool:
        return self in (OperationState.COMPLETED, OperationState.FAILED)

    @property
    def progress(self) -> int:
        """Position along the success path (FAILED ranks with COMPLETED)."""
        return _PROGRESS[self]


_PROGRESS = {
    OperationState.IDLE: 0,
    OperationState.SUBMITTED: 1,
    OperationState.CONFIRMING: 2,
    OperationState.INDEXING: 3,
    OperationState.COMPLETED: 4,
    OperationState.FAILED: 4,
}


class PrivacyPoolStatus(Enum):
    NOT_INITIALIZED = "not_initialized"
    READY = "ready"
    SHIELDING = "shielding"
    UNSHIELDING = "unshielding"
    ERROR = "error"


class TradeType(Enum):
    ENTRY = "entry"
    EXIT = "exit"


class PrivateTradeMode(Enum):
    """Phase a trade session is in."""

    SHIELD = "shield"
    PREPARE = "prepare"
    UNSHIELD = "unshield"
    TRADE = "trade"
    EXIT = "exit"


class OperationKind(Enum):
    SHIELD = "shield"
    UNSHIELD = "unshield"


def _coerce_enum(enum_cls, value: Any, field: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise InvalidInputError(field, value, f"{value!r} is not one of {allowed}")


@dataclass(frozen=True)
class PrivateTradeConfig:
    """
    Entry or exit directive for a single shield/unshield call.

    Validated on construction - an invalid config cannot exist.
    """

    trade_type: TradeType
    """Entry (into the incognito wallet) or exit (back to the pool)."""

    token: SupportedToken
    """Token to move."""

    amount: str
    """Amount in token units, as a decimal string. Must be positive."""

    slippage_tolerance: float
    """Slippage tolerance in percent (0.5 means 0.5%). Non-negative."""

    auto_unshield: Optional[bool] = None
    """Unshield straight after the shield confirms. None uses the service default."""

    max_indexing_time: Optional[float] = None
    """Seconds to wait for pool indexing. None uses the service default (70s)."""

    def __post_init__(self):
        object.__setattr__(self, "trade_type", _coerce_enum(TradeType, self.trade_type, "trade type"))
        object.__setattr__(self, "token", _coerce_enum(SupportedToken, self.token, "token"))

        parse_positive_amount(self.amount)
        object.__setattr__(self, "amount", str(self.amount).strip())

        slippage = self.slippage_tolerance
        if isinstance(slippage, bool) or not isinstance(slippage, (int, float)) \
                or not math.isfinite(slippage) or slippage < 0:
            raise InvalidInputError(
                "slippage tolerance", slippage, f"{slippage!r} must be a non-negative percentage"
            )

        if self.auto_unshield is not None and not isinstance(self.auto_unshield, bool):
            raise InvalidInputError(
                "auto unshield", self.auto_unshield, f"{self.auto_unshield!r} must be true, false or null"
            )

        if self.max_indexing_time is not None:
            wait = self.max_indexing_time
            if not is_positive_seconds(wait):
                raise InvalidInputError(
                    "max indexing time", wait, f"{wait!r} must be a finite positive number of seconds"
                )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trade_type": self.trade_type.value,
            "token": self.token.value,
            "amount": self.amount,
            "slippage_tolerance": self.slippage_tolerance,
            "auto_unshield": self.auto_unshield,
            "max_indexing_time": self.max_indexing_time,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_trade_type: TradeType = TradeType.ENTRY) -> "PrivateTradeConfig":
        """
        Create from a JSON request body.

        Raises:
            InvalidInputError: If a required key is missing or a value is invalid
        """
        if not isinstance(data, dict):
            raise InvalidInputError("config", data, "config must be an object")
        for key in ("token", "amount"):
            if key not in data:
                raise InvalidInputError(key, None, f"{key} is required")
        return cls(
            trade_type=data.get("trade_type", default_trade_type),
            token=data["token"],
            amount=data["amount"],
            slippage_tolerance=data.get("slippage_tolerance", 0.5),
            auto_unshield=data.get("auto_unshield"),
            max_indexing_time=data.get("max_indexing_time"),
        )
