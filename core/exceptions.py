"""
Custom exceptions for private trading.

Exception Hierarchy:
    PrivateTradingError (base)
    ├── ProviderUnavailableError     - Provider backend cannot start (startup failure)
    ├── InvalidInputError            - Malformed address, amount or config (caller error)
    ├── ProviderError                - External provider rejected a request or query
    ├── OperationSubmissionError     - Shield/unshield submission rejected
    ├── ConfirmationError            - Waiting for an operation did not succeed
    │   ├── OperationFailedError     - Operation reached the failed state
    │   └── ConfirmationTimeoutError - Deadline elapsed before a terminal state
    ├── InvalidStateTransitionError  - Attempt to move a terminal operation
    ├── PhaseError                   - Orchestration failure tagged with its phase
    │   ├── IncognitoDerivationError
    │   ├── PreparePrivateFundsError
    │   ├── UnshieldForTradingError
    │   └── ExitPrivatePositionError
    └── SessionError
        ├── SessionNotFoundError
        └── SessionBusyError

Usage:
    Validation and submission errors fail fast and are never retried here.
    Status checks never raise; they degrade to an ERROR snapshot instead.
"""

from typing import Optional, Dict, Any


class PrivateTradingError(Exception):
    """
    Base exception for all private trading errors.

    All custom exceptions inherit from this class, allowing callers to catch
    all application-specific errors with a single except clause if needed.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


def root_message(error: BaseException) -> str:
    """Message of an error without the details suffix."""
    if isinstance(error, PrivateTradingError):
        return error.message
    return str(error)


# =============================================================================
# STARTUP ERRORS - Application will not start if these occur
# =============================================================================

class ProviderUnavailableError(PrivateTradingError):
    """
    The configured privacy-pool backend could not be initialized.

    This is a FATAL error - no shield, unshield or status call can be made
    without a provider. The app should display a clear error and exit.
    """

    def __init__(self, backend: str, reason: str = "backend is not available"):
        message = f"Privacy pool backend '{backend}' unavailable: {reason}"
        details = {
            "backend": backend,
            "resolution": "Check PRIVACY_POOL_BACKEND in .env",
        }
        super().__init__(message, details)
        self.backend = backend


# =============================================================================
# CALLER ERRORS
# =============================================================================

class InvalidInputError(PrivateTradingError):
    """
    A required parameter is malformed.

    Raised before any external call is made. Never retried.
    """

    def __init__(self, field: str, value: Any, reason: str):
        message = f"Invalid {field}: {reason}"
        super().__init__(message)
        self.field = field
        self.value = value
        self.reason = reason


# =============================================================================
# PROVIDER AND OPERATION ERRORS
# =============================================================================

class ProviderError(PrivateTradingError):
    """
    The external privacy-pool or chain-data provider failed a request.

    Providers raise this for rejected submissions (insufficient balance,
    proof generation failure) and for failed balance or status queries.
    """

    def __init__(self, message: str, operation: Optional[str] = None):
        details = {"operation": operation} if operation else None
        super().__init__(message, details)
        self.operation = operation


class OperationSubmissionError(PrivateTradingError):
    """
    The provider rejected a shield or unshield submission.

    Carries the provider's own message so it can be surfaced to the user.
    """

    def __init__(self, operation: str, provider_message: str):
        message = f"{operation.capitalize()} submission failed: {provider_message}"
        super().__init__(message)
        self.operation = operation
        self.provider_message = provider_message


class ConfirmationError(PrivateTradingError):
    """Base class for confirmation wait failures."""

    def __init__(self, message: str, operation_ref: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.operation_ref = operation_ref


class OperationFailedError(ConfirmationError):
    """
    Polling observed the failed state.

    Surfaced immediately, never retried.
    """

    def __init__(self, operation_ref: str, reason: Optional[str] = None):
        message = "Transaction failed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, operation_ref)
        self.reason = reason


class ConfirmationTimeoutError(ConfirmationError):
    """
    The confirmation deadline elapsed while the operation was non-terminal.

    The operation may still complete - callers can keep polling manually.
    """

    def __init__(self, operation_ref: str, timeout_seconds: float, last_state: Optional[str] = None):
        message = f"Transaction confirmation timeout after {timeout_seconds:.1f}s"
        details = {
            "operation_ref": operation_ref,
            "last_state": last_state,
            "resolution": "The pool may still be indexing - check status later.",
        }
        super().__init__(message, operation_ref, details)
        self.timeout_seconds = timeout_seconds
        self.last_state = last_state


class InvalidStateTransitionError(PrivateTradingError):
    """An operation in a terminal state was asked to change state."""

    def __init__(self, operation_ref: str, current: str, requested: str):
        message = f"Operation {operation_ref} is {current} and cannot move to {requested}"
        super().__init__(message)
        self.operation_ref = operation_ref


# =============================================================================
# PHASE ERRORS - raised by the orchestration service
# =============================================================================

class PhaseError(PrivateTradingError):
    """
    Failure of one orchestration phase.

    Keeps the taxonomy machine-inspectable (phase + cause) while rendering
    "<prefix>: <root cause message>" for display.
    """

    phase = ""
    prefix = "Failed"

    def __init__(self, cause: BaseException):
        message = f"{self.prefix}: {root_message(cause)}"
        super().__init__(message)
        self.cause = cause

    @property
    def caused_by_invalid_input(self) -> bool:
        return isinstance(self.cause, InvalidInputError)


class IncognitoDerivationError(PhaseError):
    phase = "derive"
    prefix = "Failed to derive incognito wallet"


class PreparePrivateFundsError(PhaseError):
    phase = "prepare"
    prefix = "Failed to prepare private funds"


class UnshieldForTradingError(PhaseError):
    phase = "unshield"
    prefix = "Failed to unshield for trading"


class ExitPrivatePositionError(PhaseError):
    phase = "exit"
    prefix = "Failed to exit private position"


# =============================================================================
# SESSION ERRORS
# =============================================================================

class SessionError(PrivateTradingError):
    """Base class for trade session errors."""

    def __init__(self, message: str, session_id: str):
        super().__init__(message)
        self.session_id = session_id


class SessionNotFoundError(SessionError):
    def __init__(self, session_id: str):
        super().__init__(f"Unknown trade session {session_id}", session_id)


class SessionBusyError(SessionError):
    """A step was requested while the session's previous step is still running."""

    def __init__(self, session_id: str):
        super().__init__(f"Trade session {session_id[:8]} is still processing", session_id)


class SessionStateError(SessionError):
    """A step was requested in a phase that does not allow it."""

    def __init__(self, session_id: str, mode: str, requested: str):
        super().__init__(
            f"Cannot {requested} trade session {session_id[:8]} in mode '{mode}'",
            session_id
        )
        self.mode = mode
        self.requested = requested
