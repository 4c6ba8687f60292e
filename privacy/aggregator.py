"""
Funds status aggregation.

Combines the shielded-pool balance of the main wallet and the balance of
the incognito wallet (and, optionally, the main wallet's public balance)
into one PrivateFundsStatus.

NEVER RAISES:
    Status checks run inside polling loops. Any failed or malformed read
    turns into an ERROR snapshot carrying the captured message instead of
    an exception.

NO CACHING:
    Every call queries every source again. The reads run concurrently and
    are unordered relative to each other and to in-flight shield/unshield
    operations, so a snapshot is a point-in-time hint, not a transactional
    read.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from core.exceptions import root_message
from core.providers import ChainDataProvider, PrivacyPoolProvider
from core.validation import parse_balance, require_address
from logging_config import get_logger
from models.funds_status import PrivateFundsStatus
from models.trading import OperationState, SupportedToken
from .incognito import get_incognito_balance
from .shield import get_shielded_balance


class FundsStatusAggregator:
    """
    Builds funds status snapshots from live balance reads.

    Holds no mutable state; safe to share between sessions.
    """

    def __init__(
        self,
        pool: PrivacyPoolProvider,
        chain: ChainDataProvider,
        chain_id: int,
        include_main_wallet_balance: bool = False,
        logger: Optional[logging.Logger] = None
    ):
        self._pool = pool
        self._chain = chain
        self._chain_id = chain_id
        self._include_main_wallet = include_main_wallet_balance
        self._logger = logger or get_logger(__name__)

    @property
    def include_main_wallet_balance(self) -> bool:
        return self._include_main_wallet

    def check_status(
        self,
        main_address: str,
        incognito_address: str,
        token,
        transaction_state: OperationState = OperationState.IDLE
    ) -> PrivateFundsStatus:
        """
        Read all balances and derive readiness.

        Args:
            main_address: Main wallet (owner of the shielded balance)
            incognito_address: Incognito wallet
            token: Token to check
            transaction_state: Last known operation state, echoed in the snapshot

        Returns:
            PrivateFundsStatus - READY / NOT_INITIALIZED on success,
            ERROR if any read failed
        """
        try:
            require_address(main_address, "main wallet address")
            require_address(incognito_address, "incognito address")
            token = SupportedToken(token.value if isinstance(token, SupportedToken) else token)

            with ThreadPoolExecutor(max_workers=3, thread_name_prefix="StatusRead") as executor:
                shielded_future = executor.submit(
                    get_shielded_balance, self._pool, main_address, token, self._chain_id
                )
                incognito_future = executor.submit(
                    get_incognito_balance, self._chain, incognito_address, token, self._chain_id
                )
                main_future = None
                if self._include_main_wallet:
                    main_future = executor.submit(
                        self._chain.read_public_balance, main_address, token.value, self._chain_id
                    )

                shielded_balance = shielded_future.result()
                incognito_balance = incognito_future.result()
                main_balance = main_future.result() if main_future else "0"

            for balance in (shielded_balance, incognito_balance, main_balance):
                parse_balance(balance)

        except Exception as e:
            message = root_message(e)
            self._logger.warning(f"Funds status degraded: {message}")
            return PrivateFundsStatus.create_error(message)

        status = PrivateFundsStatus.from_balances(
            shielded_balance=shielded_balance,
            incognito_balance=incognito_balance,
            main_wallet_balance=main_balance,
            transaction_state=transaction_state,
        )
        self._logger.debug(
            f"Funds status: shielded={shielded_balance} incognito={incognito_balance} "
            f"ready={status.is_ready}"
        )
        return status
