"""
Privacy pool operations.

Building blocks used by the orchestration service:
- incognito: Incognito address derivation and balance reads
- shield / unshield: Request submission (no waiting)
- tracker: Bounded polling until an operation is terminal
- aggregator: Never-raising funds status snapshots

Data flows one way: services call these modules, these modules call the
providers, nothing calls back up.
"""

from .incognito import derive_incognito_address, get_incognito_balance, is_valid_incognito_address
from .shield import Submission, shield_tokens, get_shielded_balance
from .unshield import unshield_tokens
from .tracker import ConfirmationTracker, DEFAULT_MAX_WAIT_SECONDS, DEFAULT_POLLING_INTERVAL_SECONDS
from .aggregator import FundsStatusAggregator

__all__ = [
    "derive_incognito_address",
    "get_incognito_balance",
    "is_valid_incognito_address",
    "Submission",
    "shield_tokens",
    "get_shielded_balance",
    "unshield_tokens",
    "ConfirmationTracker",
    "DEFAULT_MAX_WAIT_SECONDS",
    "DEFAULT_POLLING_INTERVAL_SECONDS",
    "FundsStatusAggregator",
]
