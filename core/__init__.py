"""
Core module for private trading.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy
- validation: Address, amount and operation reference checks
- providers: Contracts for the external privacy-pool and chain-data providers
- memory_pool: In-process provider for development and tests
- provider_manager: Provider lifecycle management
"""

from .exceptions import (
    PrivateTradingError,
    ProviderUnavailableError,
    InvalidInputError,
    ProviderError,
    OperationSubmissionError,
    ConfirmationError,
    OperationFailedError,
    ConfirmationTimeoutError,
    InvalidStateTransitionError,
    PhaseError,
    IncognitoDerivationError,
    PreparePrivateFundsError,
    UnshieldForTradingError,
    ExitPrivatePositionError,
    SessionError,
    SessionNotFoundError,
    SessionBusyError,
    SessionStateError,
)
from .providers import PrivacyPoolProvider, ChainDataProvider
from .memory_pool import InMemoryPrivacyPool
from .provider_manager import ProviderManager

__all__ = [
    "PrivateTradingError",
    "ProviderUnavailableError",
    "InvalidInputError",
    "ProviderError",
    "OperationSubmissionError",
    "ConfirmationError",
    "OperationFailedError",
    "ConfirmationTimeoutError",
    "InvalidStateTransitionError",
    "PhaseError",
    "IncognitoDerivationError",
    "PreparePrivateFundsError",
    "UnshieldForTradingError",
    "ExitPrivatePositionError",
    "SessionError",
    "SessionNotFoundError",
    "SessionBusyError",
    "SessionStateError",
    "PrivacyPoolProvider",
    "ChainDataProvider",
    "InMemoryPrivacyPool",
    "ProviderManager",
]
