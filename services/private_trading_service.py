"""
Private trading orchestration service.

Composes derivation, shield/unshield, confirmation tracking and status
aggregation into the trading flow:

    derive -> prepare (shield) -> await -> unshield (to incognito) -> await
           -> [external trading] -> exit (shield from incognito) -> await

Each phase wraps its failures in a PhaseError subclass that keeps the root
cause (error.cause, chained with `raise ... from`) and renders
"<phase prefix>: <root message>". Status checks and confirmation waits
are not wrapped.

Configuration (chain id, default deadline, poll interval) is fixed at
construction, so services for different networks coexist without shared
mutable state.

Usage:
    service = PrivateTradingService(chain_id=1, pool=pool, chain=chain)

    wallet = service.derive_incognito_wallet(main_address)
    shield_op = service.prepare_private_funds(main_address, config)
    service.wait_for_transaction_confirmation(shield_op)
    unshield_op = service.unshield_for_trading(wallet, config)
    service.wait_for_transaction_confirmation(unshield_op)
    status = service.check_private_funds_status(main_address, wallet.address, config.token)
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Union

from core.exceptions import (
    ExitPrivatePositionError,
    IncognitoDerivationError,
    PrivateTradingError,
    PreparePrivateFundsError,
    UnshieldForTradingError,
)
from core.providers import ChainDataProvider, PrivacyPoolProvider
from core.validation import require_chain_id
from logging_config import get_logger
from models.funds_status import PrivateFundsStatus
from models.operation import PrivacyOperation
from models.trading import OperationKind, OperationState, PrivateTradeConfig
from models.wallet import IncognitoWallet
from privacy.aggregator import FundsStatusAggregator
from privacy.incognito import derive_incognito_address
from privacy.shield import shield_tokens
from privacy.tracker import (
    ConfirmationTracker,
    DEFAULT_MAX_WAIT_SECONDS,
    DEFAULT_POLLING_INTERVAL_SECONDS,
)
from privacy.unshield import unshield_tokens


logger = get_logger(__name__)


class PrivateTradingService:
    """
    Top-level facade for private trading operations.

    Every public method is a single-shot request except
    wait_for_transaction_confirmation, the only call that blocks.

    Attributes:
        chain_id: Network all operations run on
        max_indexing_seconds: Default confirmation deadline
        polling_interval_seconds: Pause between status polls
    """

    def __init__(
        self,
        chain_id: int,
        pool: PrivacyPoolProvider,
        chain: ChainDataProvider,
        max_indexing_seconds: float = DEFAULT_MAX_WAIT_SECONDS,
        polling_interval_seconds: float = DEFAULT_POLLING_INTERVAL_SECONDS,
        include_main_wallet_balance: bool = False,
    ):
        """
        Initialize the service.

        Args:
            chain_id: Network identifier
            pool: Privacy pool provider
            chain: Chain-data provider
            max_indexing_seconds: Default confirmation deadline (70s)
            polling_interval_seconds: Status poll interval (2s)
            include_main_wallet_balance: Also read the main wallet in status checks
        """
        self._chain_id = require_chain_id(chain_id)
        self._pool = pool
        self._tracker = ConfirmationTracker(
            pool,
            polling_interval_seconds=polling_interval_seconds,
            default_max_wait_seconds=max_indexing_seconds,
        )
        self._aggregator = FundsStatusAggregator(
            pool, chain, self._chain_id,
            include_main_wallet_balance=include_main_wallet_balance,
        )

        logger.info(
            f"PrivateTradingService initialized (chain={chain_id}, "
            f"max_indexing={max_indexing_seconds}s, poll_interval={polling_interval_seconds}s)"
        )

    @classmethod
    def from_config(cls, config, pool: PrivacyPoolProvider, chain: ChainDataProvider) -> "PrivateTradingService":
        """Build from a mapping of config keys (Flask app.config or a Config class)."""
        get = config.get if hasattr(config, "get") else lambda k, d=None: getattr(config, k, d)
        return cls(
            chain_id=int(get("PRIVATE_TRADING_CHAIN_ID", 1)),
            pool=pool,
            chain=chain,
            max_indexing_seconds=float(get("MAX_INDEXING_SECONDS", DEFAULT_MAX_WAIT_SECONDS)),
            polling_interval_seconds=float(get("POLLING_INTERVAL_SECONDS", DEFAULT_POLLING_INTERVAL_SECONDS)),
            include_main_wallet_balance=bool(get("STATUS_INCLUDE_MAIN_WALLET", False)),
        )

    @property
    def chain_id(self) -> int:
        return self._chain_id

    @property
    def max_indexing_seconds(self) -> float:
        return self._tracker.default_max_wait_seconds

    @property
    def polling_interval_seconds(self) -> float:
        return self._tracker.polling_interval_seconds

    # =========================================================================
    # PHASES
    # =========================================================================

    def derive_incognito_wallet(self, main_wallet_address: str, label: Optional[str] = None) -> IncognitoWallet:
        """
        Derive the incognito wallet for a main wallet.

        Args:
            main_wallet_address: Main wallet address
            label: Optional display label

        Returns:
            Active IncognitoWallet

        Raises:
            IncognitoDerivationError: If validation or derivation fails
        """
        try:
            address = derive_incognito_address(self._pool, main_wallet_address, self._chain_id)
            wallet = IncognitoWallet(
                address=address,
                main_wallet_address=main_wallet_address,
                chain_id=self._chain_id,
                created_at=datetime.now(timezone.utc),
                is_active=True,
                label=label or None,
            )
        except Exception as e:
            error = IncognitoDerivationError(e)
            logger.error(error.message)
            raise error from e

        logger.info(f"Incognito wallet derived for {main_wallet_address[:10]}...")
        return wallet

    def prepare_private_funds(self, main_wallet_address: str, config: PrivateTradeConfig) -> PrivacyOperation:
        """
        Shield tokens from the main wallet into the privacy pool.

        Returns:
            Shield operation in the SUBMITTED state

        Raises:
            PreparePrivateFundsError: If validation or submission fails
        """
        try:
            return self._shield(main_wallet_address, config)
        except Exception as e:
            error = PreparePrivateFundsError(e)
            logger.error(error.message)
            raise error from e

    def unshield_for_trading(self, incognito_wallet: IncognitoWallet, config: PrivateTradeConfig) -> PrivacyOperation:
        """
        Unshield tokens from the pool to the incognito wallet.

        Returns:
            Unshield operation in the SUBMITTED state, destination = wallet address

        Raises:
            UnshieldForTradingError: If validation or submission fails
        """
        try:
            submission = unshield_tokens(
                self._pool, incognito_wallet.address, config.token, config.amount, self._chain_id
            )
        except Exception as e:
            error = UnshieldForTradingError(e)
            logger.error(error.message)
            raise error from e

        return PrivacyOperation.create_submitted(
            kind=OperationKind.UNSHIELD,
            operation_ref=submission.operation_ref,
            token=config.token,
            amount=config.amount,
            state=submission.state,
            destination_address=incognito_wallet.address,
        )

    def exit_private_position(self, incognito_wallet: IncognitoWallet, config: PrivateTradeConfig) -> PrivacyOperation:
        """
        Shield tokens from the incognito wallet back into the pool.

        Returns:
            Shield operation sourced from the incognito wallet

        Raises:
            ExitPrivatePositionError: If validation or submission fails
        """
        try:
            return self._shield(incognito_wallet.address, config)
        except Exception as e:
            error = ExitPrivatePositionError(e)
            logger.error(error.message)
            raise error from e

    def check_private_funds_status(
        self,
        main_wallet_address: str,
        incognito_address: str,
        token,
        transaction_state: OperationState = OperationState.IDLE
    ) -> PrivateFundsStatus:
        """Current funds status. Never raises - failures give an ERROR snapshot."""
        return self._aggregator.check_status(
            main_wallet_address, incognito_address, token, transaction_state
        )

    def wait_for_transaction_confirmation(
        self,
        operation: Union[str, PrivacyOperation],
        max_wait_seconds: Optional[float] = None,
        logger=None
    ) -> OperationState:
        """
        Block until an operation is confirmed and indexed.

        Raises:
            OperationFailedError: If the operation fails
            ConfirmationTimeoutError: If the deadline passes first
        """
        return self._tracker.await_confirmation(operation, max_wait_seconds, logger=logger)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _shield(self, source_address: str, config: PrivateTradeConfig) -> PrivacyOperation:
        if not isinstance(config, PrivateTradeConfig):
            raise PrivateTradingError(f"Expected PrivateTradeConfig, got {type(config).__name__}")
        submission = shield_tokens(self._pool, source_address, config.token, config.amount, self._chain_id)
        return PrivacyOperation.create_submitted(
            kind=OperationKind.SHIELD,
            operation_ref=submission.operation_ref,
            token=config.token,
            amount=config.amount,
            state=submission.state,
            source_address=source_address,
        )
