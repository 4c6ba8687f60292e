"""
Unit tests for the confirmation tracker.

Timing tests use intervals of a few milliseconds so the suite stays fast;
the 2s/70s production defaults are asserted separately.
"""

import time
from unittest.mock import MagicMock

import pytest

from core.exceptions import (
    ConfirmationTimeoutError,
    InvalidInputError,
    OperationFailedError,
    ProviderError,
)
from models.operation import PrivacyOperation
from models.trading import OperationKind, OperationState, SupportedToken
from privacy.tracker import (
    ConfirmationTracker,
    DEFAULT_MAX_WAIT_SECONDS,
    DEFAULT_POLLING_INTERVAL_SECONDS,
)


REF = "0x" + "ab" * 32


# Fixtures

@pytest.fixture
def mock_pool():
    return MagicMock()


@pytest.fixture
def tracker(mock_pool):
    return ConfirmationTracker(mock_pool, polling_interval_seconds=0.01, default_max_wait_seconds=1.0)


@pytest.fixture
def operation():
    return PrivacyOperation.create_submitted(
        kind=OperationKind.UNSHIELD,
        operation_ref=REF,
        token=SupportedToken.USDC,
        amount="10000",
        destination_address="0x" + "2" * 40,
    )


class TestDefaults:
    def test_production_defaults(self, mock_pool):
        tracker = ConfirmationTracker(mock_pool)
        assert DEFAULT_MAX_WAIT_SECONDS == 70.0
        assert DEFAULT_POLLING_INTERVAL_SECONDS == 2.0
        assert tracker.default_max_wait_seconds == 70.0
        assert tracker.polling_interval_seconds == 2.0

    @pytest.mark.parametrize("kwargs", [
        {"polling_interval_seconds": 0},
        {"default_max_wait_seconds": -1},
        {"polling_interval_seconds": float("nan")},
        {"default_max_wait_seconds": float("inf")},
    ])
    def test_rejects_non_positive_settings(self, mock_pool, kwargs):
        with pytest.raises(ValueError):
            ConfirmationTracker(mock_pool, **kwargs)


class TestAwaitConfirmation:
    """Test the polling loop outcomes."""

    def test_completes_after_progression(self, tracker, mock_pool):
        mock_pool.poll_operation_state.side_effect = ["submitted", "confirming", "indexing", "completed"]
        assert tracker.await_confirmation(REF) is OperationState.COMPLETED
        assert mock_pool.poll_operation_state.call_count == 4

    def test_already_completed_on_first_poll(self, tracker, mock_pool):
        mock_pool.poll_operation_state.return_value = "completed"
        assert tracker.await_confirmation(REF) is OperationState.COMPLETED
        mock_pool.poll_operation_state.assert_called_once_with(REF)

    def test_failed_raises(self, tracker, mock_pool):
        mock_pool.poll_operation_state.side_effect = ["confirming", "failed"]
        with pytest.raises(OperationFailedError) as exc_info:
            tracker.await_confirmation(REF)
        assert exc_info.value.message == "Transaction failed"
        assert mock_pool.poll_operation_state.call_count == 2

    def test_timeout(self, tracker, mock_pool):
        mock_pool.poll_operation_state.return_value = "indexing"
        start = time.monotonic()
        with pytest.raises(ConfirmationTimeoutError) as exc_info:
            tracker.await_confirmation(REF, max_wait_seconds=0.1)
        elapsed = time.monotonic() - start

        assert exc_info.value.message == "Transaction confirmation timeout after 0.1s"
        assert exc_info.value.last_state == "indexing"
        assert exc_info.value.details["operation_ref"] == REF
        assert 0.1 <= elapsed < 1.0

    def test_timeout_uses_default_deadline(self, mock_pool):
        tracker = ConfirmationTracker(mock_pool, polling_interval_seconds=0.01, default_max_wait_seconds=0.05)
        mock_pool.poll_operation_state.return_value = "submitted"
        with pytest.raises(ConfirmationTimeoutError) as exc_info:
            tracker.await_confirmation(REF)
        assert exc_info.value.timeout_seconds == 0.05

    def test_deadline_shorter_than_poll_interval(self, mock_pool):
        tracker = ConfirmationTracker(mock_pool, polling_interval_seconds=2.0)
        mock_pool.poll_operation_state.return_value = "submitted"
        start = time.monotonic()
        with pytest.raises(ConfirmationTimeoutError) as exc_info:
            tracker.await_confirmation(REF, max_wait_seconds=1.0)
        elapsed = time.monotonic() - start

        assert exc_info.value.last_state == "submitted"
        assert 1.0 <= elapsed < 1.5
        # The final sleep is clipped to the deadline, so only one poll fits
        assert mock_pool.poll_operation_state.call_count == 1

    def test_query_error_not_retried(self, tracker, mock_pool):
        mock_pool.poll_operation_state.side_effect = ProviderError("indexer offline")
        with pytest.raises(ProviderError, match="indexer offline"):
            tracker.await_confirmation(REF)
        mock_pool.poll_operation_state.assert_called_once()

    def test_unknown_state_is_provider_error(self, tracker, mock_pool):
        mock_pool.poll_operation_state.return_value = "exploded"
        with pytest.raises(ProviderError):
            tracker.await_confirmation(REF)

    def test_pending_alias(self, tracker, mock_pool):
        mock_pool.poll_operation_state.side_effect = ["pending", "completed"]
        assert tracker.await_confirmation(REF) is OperationState.COMPLETED

    @pytest.mark.parametrize("ref", ["", "0x1234", "0x" + "1" * 40])
    def test_invalid_ref(self, tracker, mock_pool, ref):
        with pytest.raises(InvalidInputError):
            tracker.await_confirmation(ref)
        mock_pool.poll_operation_state.assert_not_called()

    @pytest.mark.parametrize("max_wait", [0, -5, "70", True, float("nan"), float("inf")])
    def test_invalid_max_wait(self, tracker, mock_pool, max_wait):
        with pytest.raises(InvalidInputError):
            tracker.await_confirmation(REF, max_wait_seconds=max_wait)
        mock_pool.poll_operation_state.assert_not_called()


class TestOperationHandle:
    """Test that polling advances a PrivacyOperation handle."""

    def test_handle_advanced_to_completed(self, tracker, mock_pool, operation):
        mock_pool.poll_operation_state.side_effect = ["confirming", "indexing", "completed"]
        tracker.await_confirmation(operation)
        assert operation.state is OperationState.COMPLETED
        assert operation.confirmed_at is not None

    def test_handle_ignores_regression(self, tracker, mock_pool, operation):
        mock_pool.poll_operation_state.side_effect = ["indexing", "confirming", "completed"]
        tracker.await_confirmation(operation)
        assert operation.state is OperationState.COMPLETED

    def test_handle_failure_recorded(self, tracker, mock_pool, operation):
        mock_pool.poll_operation_state.return_value = "failed"
        with pytest.raises(OperationFailedError):
            tracker.await_confirmation(operation)
        assert operation.state is OperationState.FAILED
        assert operation.error

    def test_terminal_handle_returns_without_polling(self, tracker, mock_pool, operation):
        operation.advance(OperationState.COMPLETED)
        assert tracker.await_confirmation(operation) is OperationState.COMPLETED
        mock_pool.poll_operation_state.assert_not_called()

    def test_failed_handle_raises_without_polling(self, tracker, mock_pool, operation):
        operation.advance(OperationState.FAILED, reason="Proof rejected")
        with pytest.raises(OperationFailedError, match="Proof rejected"):
            tracker.await_confirmation(operation)
        mock_pool.poll_operation_state.assert_not_called()

    def test_handle_timeout_keeps_last_state(self, tracker, mock_pool, operation):
        mock_pool.poll_operation_state.return_value = "confirming"
        with pytest.raises(ConfirmationTimeoutError):
            tracker.await_confirmation(operation, max_wait_seconds=0.05)
        assert operation.state is OperationState.CONFIRMING
