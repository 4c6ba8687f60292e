"""
Privacy pool provider lifecycle management.

This module selects the configured provider backend and owns its lifetime.
The providers are created once in the main thread at application startup
and released on shutdown.

THREAD SAFETY:
    - initialize() must be called from main thread only
    - cleanup() must be called from main thread only
    - pool and chain properties are read-only and thread-safe
    - Session worker threads share the providers; providers guard their own state

FAIL FAST BEHAVIOR:
    - Unknown backend name: raises ProviderUnavailableError
    - NO silent fallback to another backend

Usage:
    # At application startup (main thread)
    manager = ProviderManager("memory", key_material="...")
    manager.initialize()

    service = PrivateTradingService(chain_id, manager.pool, manager.chain)

    # At application shutdown (main thread)
    manager.cleanup()
"""

from __future__ import annotations

import logging
from typing import Optional

from logging_config import get_logger

from .exceptions import ProviderUnavailableError
from .memory_pool import InMemoryPrivacyPool
from .providers import ChainDataProvider, PrivacyPoolProvider


SUPPORTED_BACKENDS = ("memory",)


class ProviderManager:
    """
    Manages privacy pool and chain-data provider lifecycle.

    Attributes:
        backend: Name of the configured backend
        is_initialized: True if providers are active
        pool: PrivacyPoolProvider (read-only after init)
        chain: ChainDataProvider (read-only after init)
    """

    def __init__(
        self,
        backend: str,
        key_material: str = "",
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize provider manager.

        Args:
            backend: Backend name (see SUPPORTED_BACKENDS)
            key_material: Secret used by the backend for address derivation
            logger: Logger instance (optional, creates default if not provided)

        Note:
            This does NOT create the providers - call initialize() to do that.
        """
        self._backend = (backend or "").strip().lower()
        self._key_material = key_material
        self._logger = logger or get_logger(__name__)
        self._pool: Optional[PrivacyPoolProvider] = None
        self._chain: Optional[ChainDataProvider] = None
        self._is_initialized = False

    @property
    def backend(self) -> str:
        return self._backend

    @property
    def is_initialized(self) -> bool:
        """True if providers are created and usable."""
        return self._is_initialized

    @property
    def pool(self) -> PrivacyPoolProvider:
        """
        Privacy pool provider.

        Raises:
            RuntimeError: If not initialized
        """
        if not self._is_initialized or self._pool is None:
            raise RuntimeError("Providers not initialized - call initialize() first")
        return self._pool

    @property
    def chain(self) -> ChainDataProvider:
        """
        Chain-data provider.

        Raises:
            RuntimeError: If not initialized
        """
        if not self._is_initialized or self._chain is None:
            raise RuntimeError("Providers not initialized - call initialize() first")
        return self._chain

    def initialize(self) -> PrivacyPoolProvider:
        """
        Create the configured providers.

        MUST be called from the main thread only.

        Returns:
            The privacy pool provider

        Raises:
            ProviderUnavailableError: If the backend is unknown
            RuntimeError: If called when already initialized
        """
        if self._is_initialized:
            raise RuntimeError("Providers already initialized")

        self._logger.info(f"Initializing privacy pool backend: {self._backend or '<unset>'}")

        if self._backend not in SUPPORTED_BACKENDS:
            self._logger.critical(f"Unsupported privacy pool backend: {self._backend!r}")
            raise ProviderUnavailableError(
                self._backend or "<unset>",
                f"supported backends are {', '.join(SUPPORTED_BACKENDS)}"
            )

        if not self._key_material:
            self._logger.warning("No key material configured - using development key")
            pool = InMemoryPrivacyPool()
        else:
            pool = InMemoryPrivacyPool(key_material=self._key_material)

        # The in-memory ledger answers both pool and chain queries
        self._pool = pool
        self._chain = pool
        self._is_initialized = True

        self._logger.info(f"Privacy pool backend '{self._backend}' ready")
        return pool

    def cleanup(self) -> None:
        """
        Release providers.

        Safe to call multiple times (idempotent).
        """
        if not self._is_initialized:
            self._logger.debug("Providers not initialized, nothing to clean up")
            return

        self._pool = None
        self._chain = None
        self._is_initialized = False
        self._logger.info("Privacy pool providers released")

    def __enter__(self) -> "ProviderManager":
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.cleanup()
