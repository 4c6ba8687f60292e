"""
Private trading API - Flask Application Entry Point.

This is a slim app factory that:
1. Initializes the privacy pool providers (fail-fast)
2. Creates the orchestration service
3. Creates the session service (thread-per-session-step)
4. Registers route blueprints and JSON error handlers

ARCHITECTURE:
    Main Thread
    ├── Provider initialization (ProviderManager)
    ├── Flask request handling (single-shot operations, blocking waits)
    └── Cleanup on shutdown

    Session Threads (one per session step)
    └── derive -> shield -> await -> unshield -> await ... exit -> await

Services hold no per-request state; sessions live in TradeSessionStore.
"""

from __future__ import annotations

import atexit
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from logging_config import setup_logging, get_logger
from core.exceptions import ProviderUnavailableError
from core.provider_manager import ProviderManager
from services.private_trading_service import PrivateTradingService
from services.session_service import TradeSessionService
from routes import register_blueprints


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def _get_base_path() -> Path:
    """
    Get the base path for the application.

    In a frozen bundle: Returns the directory containing the executable
    In development: Returns the directory containing app.py
    """
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    else:
        return Path(__file__).parent


def create_app(config_object: str = "config.Config") -> Flask:
    """
    Application factory - creates and configures Flask app.

    FAIL-FAST: If the privacy pool backend cannot be initialized, the app
    will not start.

    Args:
        config_object: Import path of the configuration class

    Returns:
        Configured Flask application

    Raises:
        ProviderUnavailableError: If the configured backend is unavailable
    """
    # .env next to the executable takes precedence over the shell environment
    env_file = _get_base_path() / '.env'
    if env_file.exists():
        load_dotenv(env_file, override=True)
    else:
        load_dotenv(override=True)

    # Create Flask app
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Configure logging
    if app.config.get("DEBUG"):
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    root_logger = setup_logging(
        log_level=log_level,
        log_dir=Path(app.config["LOG_DIR"]) if app.config.get("LOG_DIR") else None,
        enable_file_logging=app.config.get("ENABLE_FILE_LOGGING", False)
    )

    # Set Flask's logger to use our configured logger
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting private trading API in {app.config.get('ENVIRONMENT')} mode")

    # =========================================================================
    # CORE INITIALIZATION (FAIL-FAST)
    # =========================================================================

    provider_manager = ProviderManager(
        backend=app.config.get("PRIVACY_POOL_BACKEND", "memory"),
        key_material=app.config.get("MEMORY_POOL_KEY_MATERIAL", ""),
        logger=get_logger("core.provider_manager")
    )

    try:
        provider_manager.initialize()
    except ProviderUnavailableError as e:
        logger.error(f"FATAL: Cannot start application - {e}")
        raise

    app.config["PROVIDER_MANAGER"] = provider_manager

    # =========================================================================
    # SERVICES INITIALIZATION
    # =========================================================================

    trading_service = PrivateTradingService.from_config(
        app.config, provider_manager.pool, provider_manager.chain
    )
    app.config["TRADING_SERVICE"] = trading_service

    session_service = TradeSessionService(
        trading_service,
        auto_unshield_default=app.config.get("AUTO_UNSHIELD_DEFAULT", True)
    )
    app.config["SESSION_SERVICE"] = session_service
    logger.info("Session service initialized")

    # =========================================================================
    # CLEANUP REGISTRATION
    # =========================================================================

    def cleanup():
        """Cleanup on application shutdown."""
        logger.info("Shutting down...")

        # Wait for session threads
        session_service.shutdown()

        # Release providers
        provider_manager.cleanup()

        logger.info("Shutdown complete")

    atexit.register(cleanup)

    # =========================================================================
    # REGISTER BLUEPRINTS
    # =========================================================================

    register_blueprints(app)

    logger.info("Application initialized successfully")
    return app


if __name__ == "__main__":
    app = create_app()
    debug_mode = os.environ.get("DEBUG", "1") == "1"
    app.run(debug=debug_mode)
