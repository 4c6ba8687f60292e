"""
Trade session service with thread-per-run architecture.

Runs whole private trading sessions in background threads so that HTTP
callers never block on a 70-second confirmation wait.

    entry:    derive -> prepare -> await -> [auto] unshield -> await -> status
    unshield: unshield -> await -> status        (manual mode only)
    exit:     exit -> await -> status -> ended

Thread Safety:
    - PrivateTradeConfig and IncognitoWallet are immutable - safe to pass in
    - A session is written only by the worker thread currently running it
    - Workers replace session fields by single attribute assignment;
      TradeSessionStore serializes snapshots under its lock
    - At most one worker per session; a second request gets SessionBusyError

Usage:
    # At app startup
    session_service = TradeSessionService(trading_service)

    # Entry (returns immediately)
    session_id = session_service.start_entry(main_address, config)

    # Polling
    snapshot = session_service.get_session(session_id)

    # Exit
    session_service.start_exit(session_id, exit_config)

    # Release a finished session
    session_service.close_session(session_id)

    # At app shutdown
    session_service.shutdown()
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from core.exceptions import (
    ExitPrivatePositionError,
    PhaseError,
    PreparePrivateFundsError,
    SessionBusyError,
    SessionNotFoundError,
    SessionStateError,
    UnshieldForTradingError,
)
from core.validation import require_address
from logging_config import get_logger, get_session_logger, set_thread_name
from models.operation import PrivacyOperation
from models.session import PrivateTradeSession
from models.trading import PrivateTradeConfig, PrivateTradeMode
from .private_trading_service import PrivateTradingService


# Module logger
logger = get_logger(__name__)


class TradeSessionStore:
    """
    Thread-safe storage for trade sessions.

    The only channel between session worker threads and callers.
    Unlike a consume-once result store, sessions stay until closed:
    they are read many times while their steps run.
    """

    def __init__(self):
        self._sessions: Dict[str, PrivateTradeSession] = {}
        self._lock = threading.Lock()

    def put(self, session: PrivateTradeSession) -> None:
        with self._lock:
            self._sessions[session.session_id] = session
            logger.debug(f"Stored session {session.session_id[:8]}")

    def get(self, session_id: str) -> PrivateTradeSession:
        """
        Get a live session object.

        Raises:
            SessionNotFoundError: If the id is unknown
        """
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def snapshot(self, session_id: str) -> Dict:
        """Serialized copy of a session, taken under the store lock."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFoundError(session_id)
            return session.to_dict()

    def remove(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def clear(self) -> int:
        """
        Remove all stored sessions.

        Returns:
            Number of sessions removed
        """
        with self._lock:
            count = len(self._sessions)
            self._sessions.clear()
            logger.info(f"Cleared {count} trade sessions from store")
            return count


class TradeSessionService:
    """
    Runs trade sessions in background threads.

    Each step request (entry, manual unshield, exit) starts one worker
    thread named "Session-<id>". The worker records every failure on the
    session as a phase-prefixed message and never lets an exception escape.

    Attributes:
        store: TradeSessionStore holding every session
        auto_unshield_default: Unshield right after shielding unless the
            trade configuration says otherwise
    """

    def __init__(self, trading_service: PrivateTradingService, auto_unshield_default: bool = True):
        """
        Initialize session service.

        Args:
            trading_service: Orchestration service shared by all workers
            auto_unshield_default: Default for configurations without auto_unshield
        """
        self._trading = trading_service
        self._auto_unshield_default = auto_unshield_default
        self._store = TradeSessionStore()

        # Track active worker threads for busy checks and cleanup
        self._active_threads: Dict[str, threading.Thread] = {}
        self._threads_lock = threading.Lock()

        logger.info(f"TradeSessionService initialized (auto_unshield_default={auto_unshield_default})")

    @property
    def store(self) -> TradeSessionStore:
        return self._store

    @property
    def auto_unshield_default(self) -> bool:
        return self._auto_unshield_default

    # =========================================================================
    # STEP REQUESTS
    # =========================================================================

    def start_entry(
        self,
        main_wallet_address: str,
        config: PrivateTradeConfig,
        label: Optional[str] = None,
        session_id: Optional[str] = None
    ) -> str:
        """
        Create a session and run its entry in the background.

        Args:
            main_wallet_address: Wallet funding the session
            config: Entry configuration
            label: Optional incognito wallet label
            session_id: Optional session ID (generated if not provided)

        Returns:
            session_id (UUID string)

        Raises:
            InvalidInputError: If the main wallet address is malformed
        """
        require_address(main_wallet_address, "main wallet address")

        session = PrivateTradeSession.create(main_wallet_address, config, label=label, session_id=session_id)
        self._store.put(session)

        logger.info(
            f"Starting entry session {session.session_id[:8]} "
            f"({config.amount} {config.token.value} from {main_wallet_address[:10]}...)"
        )
        self._start_worker(session.session_id, self._run_entry, session)
        return session.session_id

    def unshield_session(self, session_id: str, config: Optional[PrivateTradeConfig] = None) -> None:
        """
        Run the unshield step of a session waiting for manual unshield.

        Args:
            session_id: Session to advance
            config: Unshield configuration (default: the entry configuration)

        Raises:
            SessionNotFoundError: If the id is unknown
            SessionBusyError: If a step is still running
            SessionStateError: If the session is not waiting for unshield
        """
        session = self._store.get(session_id)

        def check():
            if session.mode != PrivateTradeMode.UNSHIELD or session.incognito_wallet is None:
                raise SessionStateError(session_id, session.mode.value, "unshield")

        self._start_worker(session_id, self._run_unshield, session, config or session.config, check=check)

    def start_exit(self, session_id: str, config: PrivateTradeConfig) -> None:
        """
        Run the exit of a trading session in the background.

        Raises:
            SessionNotFoundError: If the id is unknown
            SessionBusyError: If a step is still running
            SessionStateError: If the session has no open position to exit
        """
        session = self._store.get(session_id)

        def check():
            if session.mode not in (PrivateTradeMode.TRADE, PrivateTradeMode.EXIT) or session.is_ended:
                raise SessionStateError(session_id, session.mode.value, "exit")

        self._start_worker(session_id, self._run_exit, session, config, check=check)

    def get_session(self, session_id: str) -> Dict:
        """Snapshot of a session for display (raises SessionNotFoundError)."""
        return self._store.snapshot(session_id)

    def is_session_busy(self, session_id: str) -> bool:
        with self._threads_lock:
            thread = self._active_threads.get(session_id)
            return thread is not None and thread.is_alive()

    def close_session(self, session_id: str) -> None:
        """
        Drop a session from the store.

        Raises:
            SessionNotFoundError: If the id is unknown
            SessionBusyError: If a step is still running
        """
        with self._threads_lock:
            running = self._active_threads.get(session_id)
            if running is not None and running.is_alive():
                raise SessionBusyError(session_id)
            if not self._store.remove(session_id):
                raise SessionNotFoundError(session_id)
            self._active_threads.pop(session_id, None)
        logger.info(f"Closed trade session {session_id[:8]}")

    def shutdown(self, timeout_per_thread: float = 5.0) -> None:
        """
        Wait for all active session workers to complete.

        Args:
            timeout_per_thread: Max seconds to wait per thread
        """
        with self._threads_lock:
            active = list(self._active_threads.items())

        if active:
            logger.info(f"Waiting for {len(active)} session threads to complete...")
        else:
            logger.info("No active session threads to wait for")

        for session_id, thread in active:
            if thread.is_alive():
                thread.join(timeout=timeout_per_thread)
                if thread.is_alive():
                    logger.warning(f"Session thread {session_id[:8]} did not complete in time")

        self._store.clear()

        logger.info("Session service shutdown complete")

    # =========================================================================
    # WORKERS
    # =========================================================================

    def _start_worker(self, session_id: str, target: Callable, *args, check: Optional[Callable] = None) -> None:
        thread = threading.Thread(
            target=self._worker_main,
            args=(session_id, target) + args,
            name=f"Session-{session_id[:8]}",
            daemon=True
        )

        # Busy check, state check and registration happen atomically
        with self._threads_lock:
            running = self._active_threads.get(session_id)
            if running is not None and running.is_alive():
                raise SessionBusyError(session_id)
            if check:
                check()
            self._active_threads[session_id] = thread

        thread.start()

    def _worker_main(self, session_id: str, target: Callable, *args) -> None:
        set_thread_name(f"Session-{session_id[:8]}")
        session_logger = get_session_logger(session_id)
        session_logger.info(f"Worker starting: {target.__name__.lstrip('_')}")

        try:
            target(*args, session_logger)
        except PhaseError as e:
            session = self._store.get(session_id)
            session.record_failure(e.phase, e.message)
            session_logger.error(e.message)
        except Exception as e:
            # Never let a worker die silently
            session_logger.exception(f"Unexpected worker failure: {e}")
            self._store.get(session_id).record_failure("internal", str(e))
        finally:
            with self._threads_lock:
                if self._active_threads.get(session_id) is threading.current_thread():
                    self._active_threads.pop(session_id, None)
            session_logger.info("Worker exiting")

    def _run_entry(self, session: PrivateTradeSession, session_logger) -> None:
        session.clear_failure()
        config = session.config

        session.mode = PrivateTradeMode.PREPARE
        session.incognito_wallet = self._trading.derive_incognito_wallet(
            session.main_wallet_address, label=session.label
        )
        session_logger.info(f"Incognito wallet {session.incognito_wallet.address[:10]}... ready")

        operation = self._trading.prepare_private_funds(session.main_wallet_address, config)
        session.shield_operation = operation
        session.mode = PrivateTradeMode.SHIELD
        self._await(operation, config, session_logger, PreparePrivateFundsError)

        session.mode = PrivateTradeMode.UNSHIELD
        auto_unshield = self._auto_unshield_default if config.auto_unshield is None else config.auto_unshield
        if not auto_unshield:
            session_logger.info("Shield confirmed, waiting for manual unshield")
            self._refresh_status(session, operation)
            return

        self._run_unshield(session, config, session_logger)

    def _run_unshield(self, session: PrivateTradeSession, config: PrivateTradeConfig, session_logger) -> None:
        session.clear_failure()

        operation = self._trading.unshield_for_trading(session.incognito_wallet, config)
        session.unshield_operation = operation
        self._await(operation, config, session_logger, UnshieldForTradingError)

        session.mode = PrivateTradeMode.TRADE
        self._refresh_status(session, operation)
        session_logger.info("Funds available in incognito wallet, session ready to trade")

    def _run_exit(self, session: PrivateTradeSession, config: PrivateTradeConfig, session_logger) -> None:
        session.clear_failure()
        session.exit_config = config
        session.mode = PrivateTradeMode.EXIT

        operation = self._trading.exit_private_position(session.incognito_wallet, config)
        session.exit_operation = operation
        self._await(operation, config, session_logger, ExitPrivatePositionError)

        self._refresh_status(session, operation)
        session.ended_at = datetime.now(timezone.utc)
        session_logger.info(f"Exit of {config.amount} {config.token.value} confirmed, session ended")

    def _await(
        self,
        operation: PrivacyOperation,
        config: PrivateTradeConfig,
        session_logger,
        phase_error: type
    ) -> None:
        # Waits use the configuration's deadline when it sets one
        try:
            self._trading.wait_for_transaction_confirmation(
                operation, max_wait_seconds=config.max_indexing_time, logger=session_logger
            )
        except Exception as e:
            raise phase_error(e) from e

    def _refresh_status(self, session: PrivateTradeSession, operation: PrivacyOperation) -> None:
        session.status = self._trading.check_private_funds_status(
            session.main_wallet_address,
            session.incognito_wallet.address,
            operation.token,
            transaction_state=operation.state,
        )
