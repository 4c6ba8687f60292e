"""
Confirmation tracking for shield/unshield operations.

The pool's indexer only exposes pull-based status, so confirmation is a
fixed-interval polling loop bounded by a deadline measured on the
monotonic clock.

Outcomes (first observed wins):
    - COMPLETED polled  -> return COMPLETED
    - FAILED polled     -> raise OperationFailedError
    - deadline elapsed  -> raise ConfirmationTimeoutError

A status query error is NOT retried - it propagates at once, so the wait
never runs past the caller's deadline.

Usage:
    tracker = ConfirmationTracker(pool)
    state = tracker.await_confirmation(operation, max_wait_seconds=70)
"""

from __future__ import annotations

import logging
import time
from typing import Optional, Union

from core.exceptions import (
    ConfirmationTimeoutError,
    InvalidInputError,
    OperationFailedError,
    ProviderError,
)
from core.providers import PrivacyPoolProvider
from core.validation import is_positive_seconds, require_operation_ref
from logging_config import get_logger
from models.operation import PrivacyOperation
from models.trading import OperationState


DEFAULT_MAX_WAIT_SECONDS = 70.0
DEFAULT_POLLING_INTERVAL_SECONDS = 2.0


class ConfirmationTracker:
    """
    Polls an operation until it is terminal or the deadline passes.

    One poll request at a time per call; the tracker holds no state
    between calls, so one instance can serve any number of sessions.

    Attributes:
        polling_interval_seconds: Pause between polls
        default_max_wait_seconds: Deadline when the caller gives none
    """

    def __init__(
        self,
        pool: PrivacyPoolProvider,
        polling_interval_seconds: float = DEFAULT_POLLING_INTERVAL_SECONDS,
        default_max_wait_seconds: float = DEFAULT_MAX_WAIT_SECONDS,
        logger: Optional[logging.Logger] = None
    ):
        if not is_positive_seconds(polling_interval_seconds):
            raise ValueError("polling_interval_seconds must be a finite positive number")
        if not is_positive_seconds(default_max_wait_seconds):
            raise ValueError("default_max_wait_seconds must be a finite positive number")

        self._pool = pool
        self._polling_interval = polling_interval_seconds
        self._default_max_wait = default_max_wait_seconds
        self._logger = logger or get_logger(__name__)

    @property
    def polling_interval_seconds(self) -> float:
        return self._polling_interval

    @property
    def default_max_wait_seconds(self) -> float:
        return self._default_max_wait

    def await_confirmation(
        self,
        operation: Union[str, PrivacyOperation],
        max_wait_seconds: Optional[float] = None,
        logger: Optional[logging.Logger] = None
    ) -> OperationState:
        """
        Block until the operation completes, fails or times out.

        Args:
            operation: Operation reference, or a PrivacyOperation whose state
                is advanced as new states are observed
            max_wait_seconds: Deadline (default: default_max_wait_seconds)
            logger: Logger for this wait (e.g. a session logger)

        Returns:
            OperationState.COMPLETED

        Raises:
            InvalidInputError: If the reference or the deadline is malformed
            OperationFailedError: If FAILED is observed
            ConfirmationTimeoutError: If the deadline passes first
            ProviderError: If a status query fails (not retried)
        """
        log = logger or self._logger
        handle = operation if isinstance(operation, PrivacyOperation) else None
        operation_ref = require_operation_ref(handle.operation_ref if handle else operation)

        max_wait = self._default_max_wait if max_wait_seconds is None else max_wait_seconds
        if not is_positive_seconds(max_wait):
            raise InvalidInputError("max wait", max_wait, "must be a finite positive number of seconds")

        if handle and handle.state == OperationState.COMPLETED:
            return OperationState.COMPLETED
        if handle and handle.state == OperationState.FAILED:
            raise OperationFailedError(operation_ref, handle.error)

        short_ref = operation_ref[:10]
        log.info(
            f"Waiting for {short_ref}... "
            f"(timeout={max_wait}s, poll_interval={self._polling_interval}s)"
        )

        start_time = time.monotonic()
        last_state: Optional[OperationState] = handle.state if handle else None
        polls = 0

        while True:
            elapsed = time.monotonic() - start_time
            if elapsed >= max_wait:
                log.error(f"Operation {short_ref}... timed out after {elapsed:.1f}s")
                raise ConfirmationTimeoutError(
                    operation_ref,
                    timeout_seconds=max_wait,
                    last_state=last_state.value if last_state else None
                )

            state = self._poll(operation_ref)
            polls += 1
            log.debug(f"Poll {polls} for {short_ref}...: {state.value}")

            if handle:
                handle.advance(state)
            last_state = state

            if state == OperationState.COMPLETED:
                log.info(f"Operation {short_ref}... completed after {elapsed:.1f}s ({polls} polls)")
                return state

            if state == OperationState.FAILED:
                log.error(f"Operation {short_ref}... failed after {elapsed:.1f}s")
                raise OperationFailedError(operation_ref, handle.error if handle else None)

            remaining = max_wait - (time.monotonic() - start_time)
            if remaining > 0:
                time.sleep(min(self._polling_interval, remaining))

    def _poll(self, operation_ref: str) -> OperationState:
        raw_state = self._pool.poll_operation_state(operation_ref)
        try:
            return raw_state if isinstance(raw_state, OperationState) else OperationState(raw_state)
        except ValueError:
            raise ProviderError(f"Unknown operation state {raw_state!r}", operation="poll")
