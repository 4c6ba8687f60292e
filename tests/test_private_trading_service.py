"""
Unit tests for the private trading orchestration service.

Tests cover:
- Phase error wrapping ("<prefix>: <root message>", cause kept)
- Operation handles returned by each phase
- Delegation of status checks and confirmation waits
- Configuration isolation between service instances
"""

from unittest.mock import MagicMock

import pytest

from core.exceptions import (
    ConfirmationTimeoutError,
    ExitPrivatePositionError,
    IncognitoDerivationError,
    InvalidInputError,
    OperationFailedError,
    OperationSubmissionError,
    PhaseError,
    PreparePrivateFundsError,
    ProviderError,
    UnshieldForTradingError,
)
from models.trading import (
    OperationKind,
    OperationState,
    PrivacyPoolStatus,
    PrivateTradeConfig,
    SupportedToken,
    TradeType,
)
from services.private_trading_service import PrivateTradingService


MAIN = "0x" + "1" * 40
INCOGNITO = "0x" + "2" * 40
REF = "0x" + "ab" * 32


# Fixtures

@pytest.fixture
def mock_pool():
    pool = MagicMock()
    pool.derive_address.return_value = INCOGNITO
    pool.submit_shield.return_value = (REF, "submitted")
    pool.submit_unshield.return_value = (REF, "submitted")
    pool.poll_operation_state.return_value = "completed"
    pool.read_shielded_balance.return_value = "10000"
    return pool


@pytest.fixture
def mock_chain():
    chain = MagicMock()
    chain.read_incognito_balance.return_value = "0"
    return chain


@pytest.fixture
def service(mock_pool, mock_chain):
    return PrivateTradingService(
        chain_id=1,
        pool=mock_pool,
        chain=mock_chain,
        max_indexing_seconds=0.5,
        polling_interval_seconds=0.01,
    )


@pytest.fixture
def entry_config():
    return PrivateTradeConfig(
        trade_type=TradeType.ENTRY,
        token=SupportedToken.USDC,
        amount="10000",
        slippage_tolerance=0.5,
    )


@pytest.fixture
def wallet(service):
    return service.derive_incognito_wallet(MAIN)


class TestConfiguration:
    def test_read_only_properties(self, service):
        assert service.chain_id == 1
        assert service.max_indexing_seconds == 0.5
        assert service.polling_interval_seconds == 0.01
        with pytest.raises(AttributeError):
            service.chain_id = 137

    def test_defaults(self, mock_pool, mock_chain):
        service = PrivateTradingService(chain_id=1, pool=mock_pool, chain=mock_chain)
        assert service.max_indexing_seconds == 70.0
        assert service.polling_interval_seconds == 2.0

    def test_invalid_chain_id(self, mock_pool, mock_chain):
        with pytest.raises(InvalidInputError):
            PrivateTradingService(chain_id=0, pool=mock_pool, chain=mock_chain)

    def test_instances_are_independent(self, mock_pool, mock_chain):
        mainnet = PrivateTradingService(chain_id=1, pool=mock_pool, chain=mock_chain)
        polygon = PrivateTradingService(chain_id=137, pool=mock_pool, chain=mock_chain)
        mainnet.derive_incognito_wallet(MAIN)
        polygon.derive_incognito_wallet(MAIN)
        assert [c.args[1] for c in mock_pool.derive_address.call_args_list] == [1, 137]

    def test_from_config(self, mock_pool, mock_chain):
        config = {
            "PRIVATE_TRADING_CHAIN_ID": 137,
            "MAX_INDEXING_SECONDS": 30,
            "POLLING_INTERVAL_SECONDS": 1,
            "STATUS_INCLUDE_MAIN_WALLET": True,
        }
        service = PrivateTradingService.from_config(config, mock_pool, mock_chain)
        assert service.chain_id == 137
        assert service.max_indexing_seconds == 30.0
        assert service.polling_interval_seconds == 1.0

    def test_from_config_object(self, mock_pool, mock_chain):
        class Settings:
            PRIVATE_TRADING_CHAIN_ID = 10

        service = PrivateTradingService.from_config(Settings, mock_pool, mock_chain)
        assert service.chain_id == 10
        assert service.max_indexing_seconds == 70.0


class TestDeriveIncognitoWallet:
    """Test the derive phase."""

    def test_success(self, service):
        wallet = service.derive_incognito_wallet(MAIN, label="desk-1")
        assert wallet.address == INCOGNITO
        assert wallet.main_wallet_address == MAIN
        assert wallet.chain_id == 1
        assert wallet.is_active is True
        assert wallet.label == "desk-1"
        assert wallet.created_at.tzinfo is not None

    def test_invalid_input_wrapped(self, service, mock_pool):
        with pytest.raises(IncognitoDerivationError) as exc_info:
            service.derive_incognito_wallet("0x123")
        error = exc_info.value
        assert error.message.startswith("Failed to derive incognito wallet: Invalid main wallet address")
        assert isinstance(error.cause, InvalidInputError)
        assert error.__cause__ is error.cause
        assert error.caused_by_invalid_input
        assert error.phase == "derive"
        mock_pool.derive_address.assert_not_called()

    def test_provider_failure_wrapped(self, service, mock_pool):
        mock_pool.derive_address.side_effect = ProviderError("key store locked")
        with pytest.raises(IncognitoDerivationError) as exc_info:
            service.derive_incognito_wallet(MAIN)
        assert exc_info.value.message == "Failed to derive incognito wallet: key store locked"
        assert not exc_info.value.caused_by_invalid_input


class TestPreparePrivateFunds:
    """Test the shield-from-main phase."""

    def test_success(self, service, entry_config, mock_pool):
        operation = service.prepare_private_funds(MAIN, entry_config)
        assert operation.kind is OperationKind.SHIELD
        assert operation.operation_ref == REF
        assert operation.state is OperationState.SUBMITTED
        assert operation.source_address == MAIN
        assert operation.token is SupportedToken.USDC
        assert operation.amount == "10000"
        mock_pool.submit_shield.assert_called_once_with(MAIN, "USDC", "10000", 1)

    def test_submission_failure_wrapped(self, service, entry_config, mock_pool):
        mock_pool.submit_shield.side_effect = ProviderError("Insufficient balance")
        with pytest.raises(PreparePrivateFundsError) as exc_info:
            service.prepare_private_funds(MAIN, entry_config)
        error = exc_info.value
        assert error.message == "Failed to prepare private funds: Shield submission failed: Insufficient balance"
        assert isinstance(error.cause, OperationSubmissionError)
        assert error.phase == "prepare"

    def test_invalid_address(self, service, entry_config, mock_pool):
        with pytest.raises(PreparePrivateFundsError) as exc_info:
            service.prepare_private_funds("", entry_config)
        assert exc_info.value.caused_by_invalid_input
        mock_pool.submit_shield.assert_not_called()

    def test_not_a_config(self, service):
        with pytest.raises(PreparePrivateFundsError):
            service.prepare_private_funds(MAIN, {"token": "USDC", "amount": "1"})


class TestUnshieldForTrading:
    def test_destination_is_incognito(self, service, wallet, entry_config, mock_pool):
        operation = service.unshield_for_trading(wallet, entry_config)
        assert operation.kind is OperationKind.UNSHIELD
        assert operation.destination_address == INCOGNITO
        assert operation.source_address is None
        mock_pool.submit_unshield.assert_called_once_with(INCOGNITO, "USDC", "10000", 1)

    def test_failure_wrapped(self, service, wallet, entry_config, mock_pool):
        mock_pool.submit_unshield.side_effect = ProviderError("Proof generation failed")
        with pytest.raises(UnshieldForTradingError) as exc_info:
            service.unshield_for_trading(wallet, entry_config)
        assert exc_info.value.message == (
            "Failed to unshield for trading: Unshield submission failed: Proof generation failed"
        )
        assert exc_info.value.phase == "unshield"


class TestExitPrivatePosition:
    def test_source_is_incognito(self, service, wallet, mock_pool):
        exit_config = PrivateTradeConfig(
            trade_type=TradeType.EXIT, token=SupportedToken.USDC, amount="11500", slippage_tolerance=0.5
        )
        operation = service.exit_private_position(wallet, exit_config)
        assert operation.kind is OperationKind.SHIELD
        assert operation.source_address == INCOGNITO
        assert operation.amount == "11500"
        mock_pool.submit_shield.assert_called_once_with(INCOGNITO, "USDC", "11500", 1)

    def test_failure_wrapped(self, service, wallet, entry_config, mock_pool):
        mock_pool.submit_shield.side_effect = RuntimeError("nonce too low")
        with pytest.raises(ExitPrivatePositionError) as exc_info:
            service.exit_private_position(wallet, entry_config)
        assert exc_info.value.message == "Failed to exit private position: Shield submission failed: nonce too low"
        assert isinstance(exc_info.value, PhaseError)


class TestStatusAndConfirmation:
    """Status checks and waits are delegated without phase wrapping."""

    def test_status(self, service):
        status = service.check_private_funds_status(MAIN, INCOGNITO, SupportedToken.USDC)
        assert status.is_ready is True
        assert status.shielded_balance == "10000"

    def test_status_never_raises(self, service, mock_pool):
        mock_pool.read_shielded_balance.side_effect = ProviderError("down")
        status = service.check_private_funds_status(MAIN, INCOGNITO, SupportedToken.USDC)
        assert status.privacy_pool_status is PrivacyPoolStatus.ERROR

    def test_wait_completes(self, service, entry_config):
        operation = service.prepare_private_funds(MAIN, entry_config)
        assert service.wait_for_transaction_confirmation(operation) is OperationState.COMPLETED
        assert operation.state is OperationState.COMPLETED

    def test_wait_failure_not_wrapped(self, service, mock_pool):
        mock_pool.poll_operation_state.return_value = "failed"
        with pytest.raises(OperationFailedError):
            service.wait_for_transaction_confirmation(REF)

    def test_wait_uses_service_default_deadline(self, service, mock_pool):
        mock_pool.poll_operation_state.return_value = "indexing"
        with pytest.raises(ConfirmationTimeoutError) as exc_info:
            service.wait_for_transaction_confirmation(REF)
        assert exc_info.value.timeout_seconds == 0.5

    def test_wait_override_deadline(self, service, mock_pool):
        mock_pool.poll_operation_state.return_value = "indexing"
        with pytest.raises(ConfirmationTimeoutError) as exc_info:
            service.wait_for_transaction_confirmation(REF, max_wait_seconds=0.05)
        assert exc_info.value.timeout_seconds == 0.05
