"""
Configuration for the private trading service.

The privacy pool backend is required. The application fails fast if the
configured backend cannot be initialized.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file early so environment variables are available for Config class
# This must happen before the Config class is defined
load_dotenv(override=True)

# Base directory (where this file lives)
BASE_DIR = Path(__file__).resolve().parent


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Default configuration for the Flask application."""

    # Flask settings
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")
    ENVIRONMENT = os.environ.get("ENVIRONMENT", "development")

    # Debug mode
    DEBUG = _env_flag("DEBUG", "1")

    # Logging
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_DIR = os.environ.get("LOG_DIR", str(BASE_DIR / "logs"))
    # File logs by default only in production
    ENABLE_FILE_LOGGING = _env_flag("ENABLE_FILE_LOGGING", "1" if ENVIRONMENT == "production" else "0")

    # ==========================================================================
    # Private Trading Configuration
    # ==========================================================================
    # PRIVATE_TRADING_CHAIN_ID: Network all operations run on
    #
    # MAX_INDEXING_SECONDS: Default deadline for confirmation waits.
    #   The pool's indexer typically needs up to ~60s after inclusion.
    #
    # POLLING_INTERVAL_SECONDS: Pause between status polls
    #
    # AUTO_UNSHIELD_DEFAULT: Unshield to the incognito wallet right after
    #   the shield confirms (a trade configuration can override it)
    #
    # STATUS_INCLUDE_MAIN_WALLET: Also read the main wallet's public
    #   balance in status snapshots
    # ==========================================================================
    PRIVATE_TRADING_CHAIN_ID = int(os.environ.get("PRIVATE_TRADING_CHAIN_ID", "1"))
    MAX_INDEXING_SECONDS = float(os.environ.get("MAX_INDEXING_SECONDS", "70"))
    POLLING_INTERVAL_SECONDS = float(os.environ.get("POLLING_INTERVAL_SECONDS", "2"))
    AUTO_UNSHIELD_DEFAULT = _env_flag("AUTO_UNSHIELD_DEFAULT", "1")
    STATUS_INCLUDE_MAIN_WALLET = _env_flag("STATUS_INCLUDE_MAIN_WALLET", "0")

    # Privacy pool backend ("memory" is the in-process development ledger)
    PRIVACY_POOL_BACKEND = os.environ.get("PRIVACY_POOL_BACKEND", "memory")
    MEMORY_POOL_KEY_MATERIAL = os.environ.get("MEMORY_POOL_KEY_MATERIAL", "dev-key-material")


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    ENVIRONMENT = "production"
    ENABLE_FILE_LOGGING = True


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    ENABLE_FILE_LOGGING = False
    MAX_INDEXING_SECONDS = 2.0
    POLLING_INTERVAL_SECONDS = 0.01
    MEMORY_POOL_KEY_MATERIAL = "test-key-material"
