"""
Unit tests for the trading data models.
"""

from datetime import datetime, timezone

import pytest

from core.exceptions import InvalidInputError, InvalidStateTransitionError
from models.funds_status import PrivateFundsStatus
from models.operation import PrivacyOperation
from models.session import PrivateTradeSession
from models.trading import (
    OperationKind,
    OperationState,
    PrivacyPoolStatus,
    PrivateTradeConfig,
    PrivateTradeMode,
    SupportedToken,
    TradeType,
)
from models.wallet import IncognitoWallet


MAIN = "0x" + "1" * 40
INCOGNITO = "0x" + "2" * 40
REF = "0x" + "ab" * 32


# Fixtures

@pytest.fixture
def config():
    return PrivateTradeConfig(
        trade_type=TradeType.ENTRY,
        token=SupportedToken.USDC,
        amount="10000",
        slippage_tolerance=0.5,
    )


@pytest.fixture
def operation():
    return PrivacyOperation.create_submitted(
        kind=OperationKind.SHIELD,
        operation_ref=REF,
        token=SupportedToken.USDC,
        amount="10000",
        source_address=MAIN,
    )


# Tests for OperationState

class TestOperationState:
    def test_pending_is_submitted(self):
        assert OperationState("pending") is OperationState.SUBMITTED

    def test_unknown_state_rejected(self):
        with pytest.raises(ValueError):
            OperationState("settling")

    def test_terminal_states(self):
        terminal = {s for s in OperationState if s.is_terminal}
        assert terminal == {OperationState.COMPLETED, OperationState.FAILED}

    def test_progress_order(self):
        path = [
            OperationState.IDLE,
            OperationState.SUBMITTED,
            OperationState.CONFIRMING,
            OperationState.INDEXING,
            OperationState.COMPLETED,
        ]
        assert [s.progress for s in path] == sorted(s.progress for s in path)


# Tests for PrivateTradeConfig

class TestPrivateTradeConfig:
    """Test construction-time validation of trade configurations."""

    def test_coerces_strings(self):
        config = PrivateTradeConfig(trade_type="exit", token="DAI", amount=" 25 ", slippage_tolerance=1)
        assert config.trade_type is TradeType.EXIT
        assert config.token is SupportedToken.DAI
        assert config.amount == "25"

    def test_unsupported_token(self):
        with pytest.raises(InvalidInputError) as exc_info:
            PrivateTradeConfig(trade_type="entry", token="DOGE", amount="1", slippage_tolerance=0.5)
        assert exc_info.value.field == "token"

    @pytest.mark.parametrize("amount", ["0", "-5", "", "ten"])
    def test_invalid_amount(self, amount):
        with pytest.raises(InvalidInputError):
            PrivateTradeConfig(trade_type="entry", token="USDC", amount=amount, slippage_tolerance=0.5)

    @pytest.mark.parametrize("slippage", [-0.1, float("nan"), "0.5", True])
    def test_invalid_slippage(self, slippage):
        with pytest.raises(InvalidInputError):
            PrivateTradeConfig(trade_type="entry", token="USDC", amount="1", slippage_tolerance=slippage)

    @pytest.mark.parametrize("wait", [0, -1, True, "70", float("nan"), float("inf")])
    def test_invalid_max_indexing_time(self, wait):
        with pytest.raises(InvalidInputError):
            PrivateTradeConfig(
                trade_type="entry", token="USDC", amount="1", slippage_tolerance=0.5, max_indexing_time=wait
            )

    @pytest.mark.parametrize("flag", ["false", 0, 1])
    def test_auto_unshield_must_be_bool(self, flag):
        with pytest.raises(InvalidInputError) as exc_info:
            PrivateTradeConfig.from_dict({"token": "USDC", "amount": "1", "auto_unshield": flag})
        assert exc_info.value.field == "auto unshield"

    def test_is_frozen(self, config):
        with pytest.raises(AttributeError):
            config.amount = "1"

    def test_from_dict_defaults(self):
        config = PrivateTradeConfig.from_dict({"token": "USDC", "amount": "10000"})
        assert config.trade_type is TradeType.ENTRY
        assert config.slippage_tolerance == 0.5
        assert config.auto_unshield is None

    def test_from_dict_exit_default(self):
        config = PrivateTradeConfig.from_dict(
            {"token": "USDC", "amount": "11500"}, default_trade_type=TradeType.EXIT
        )
        assert config.trade_type is TradeType.EXIT

    def test_from_dict_missing_amount(self):
        with pytest.raises(InvalidInputError) as exc_info:
            PrivateTradeConfig.from_dict({"token": "USDC"})
        assert exc_info.value.field == "amount"

    def test_to_dict(self, config):
        data = config.to_dict()
        assert data["token"] == "USDC"
        assert data["trade_type"] == "entry"
        assert data["amount"] == "10000"


# Tests for PrivacyOperation

class TestPrivacyOperation:
    """Test operation state transitions."""

    def test_created_submitted(self, operation):
        assert operation.state is OperationState.SUBMITTED
        assert operation.started_at.tzinfo is not None
        assert operation.confirmed_at is None

    def test_advance_along_path(self, operation):
        assert operation.advance(OperationState.CONFIRMING)
        assert operation.advance(OperationState.INDEXING)
        assert operation.advance(OperationState.COMPLETED)
        assert operation.confirmed_at is not None
        assert operation.is_terminal

    def test_regression_ignored(self, operation):
        operation.advance(OperationState.INDEXING)
        assert not operation.advance(OperationState.CONFIRMING)
        assert operation.state is OperationState.INDEXING

    def test_skipping_states_allowed(self, operation):
        assert operation.advance(OperationState.COMPLETED)

    def test_failed_records_reason(self, operation):
        operation.advance(OperationState.FAILED, reason="Proof rejected")
        assert operation.error == "Proof rejected"

    def test_failed_default_reason(self, operation):
        operation.advance(OperationState.FAILED)
        assert operation.error

    def test_terminal_cannot_change(self, operation):
        operation.advance(OperationState.COMPLETED)
        with pytest.raises(InvalidStateTransitionError):
            operation.advance(OperationState.FAILED)
        with pytest.raises(InvalidStateTransitionError):
            operation.advance(OperationState.INDEXING)

    def test_terminal_repeat_is_noop(self, operation):
        operation.advance(OperationState.COMPLETED)
        assert not operation.advance(OperationState.COMPLETED)

    def test_to_dict(self, operation):
        data = operation.to_dict()
        assert data["kind"] == "shield"
        assert data["state"] == "submitted"
        assert data["source_address"] == MAIN
        assert data["destination_address"] is None


# Tests for IncognitoWallet

class TestIncognitoWallet:
    def test_address_must_differ_from_main(self):
        with pytest.raises(InvalidInputError):
            IncognitoWallet(
                address=MAIN.upper().replace("0X", "0x"),
                main_wallet_address=MAIN,
                chain_id=1,
                created_at=datetime.now(timezone.utc),
            )

    def test_round_trip_through_dict(self):
        wallet = IncognitoWallet(
            address=INCOGNITO,
            main_wallet_address=MAIN,
            chain_id=1,
            created_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
            label="desk-1",
        )
        restored = IncognitoWallet.from_dict(wallet.to_dict())
        assert restored == wallet

    def test_from_dict_rejects_bad_chain(self):
        with pytest.raises(InvalidInputError):
            IncognitoWallet.from_dict({"address": INCOGNITO, "main_wallet_address": MAIN, "chain_id": "1"})


# Tests for PrivateFundsStatus

class TestPrivateFundsStatus:
    """Test readiness derivation."""

    @pytest.mark.parametrize("shielded,incognito,ready", [
        ("0", "0", False),
        ("10000", "0", True),
        ("0", "10000", True),
        ("5", "5", True),
    ])
    def test_readiness(self, shielded, incognito, ready):
        status = PrivateFundsStatus.from_balances(shielded, incognito)
        assert status.is_ready is ready
        expected = PrivacyPoolStatus.READY if ready else PrivacyPoolStatus.NOT_INITIALIZED
        assert status.privacy_pool_status is expected

    def test_error_snapshot(self):
        status = PrivateFundsStatus.create_error("Indexer unavailable")
        assert status.privacy_pool_status is PrivacyPoolStatus.ERROR
        assert status.is_ready is False
        assert status.transaction_state is OperationState.FAILED
        assert status.shielded_balance == "0"
        assert status.incognito_balance == "0"
        assert status.error == "Indexer unavailable"

    def test_to_dict(self):
        data = PrivateFundsStatus.from_balances("1", "0", transaction_state=OperationState.INDEXING).to_dict()
        assert data["privacy_pool_status"] == "ready"
        assert data["transaction_state"] == "indexing"
        assert data["error"] is None


# Tests for PrivateTradeSession

class TestPrivateTradeSession:
    def test_create(self, config):
        session = PrivateTradeSession.create(MAIN, config)
        assert len(session.session_id) == 36
        assert session.mode is PrivateTradeMode.PREPARE
        assert not session.has_failed
        assert not session.is_ended

    def test_failure_tracking(self, config):
        session = PrivateTradeSession.create(MAIN, config)
        session.record_failure("prepare", "Failed to prepare private funds: boom")
        assert session.has_failed
        assert session.error_phase == "prepare"
        session.clear_failure()
        assert not session.has_failed

    def test_to_dict(self, config, operation):
        session = PrivateTradeSession.create(MAIN, config, label="desk-1", session_id="abc")
        session.shield_operation = operation
        data = session.to_dict()
        assert data["session_id"] == "abc"
        assert data["mode"] == "prepare"
        assert data["shield_operation"]["operation_ref"] == REF
        assert data["incognito_wallet"] is None
        assert data["ended_at"] is None
