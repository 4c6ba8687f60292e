"""
API routes (JSON endpoints).

Handles:
- /health - Health check endpoint
- /api/incognito-wallets - Derive an incognito wallet
- /api/private-funds/* - Shield, unshield and status
- /api/private-positions/exit - Shield back from the incognito wallet
- /api/operations/<ref>/confirmation - Blocking confirmation wait
- /api/sessions/* - Background trade sessions

Errors raised here are rendered by the handlers registered in
register_error_handlers().
"""

from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from core.exceptions import (
    ConfirmationTimeoutError,
    InvalidInputError,
    InvalidStateTransitionError,
    OperationFailedError,
    OperationSubmissionError,
    PhaseError,
    PrivateTradingError,
    ProviderError,
    SessionBusyError,
    SessionNotFoundError,
    SessionStateError,
)
from models.trading import OperationState, PrivateTradeConfig, TradeType
from models.wallet import IncognitoWallet
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

api_bp = Blueprint("api", __name__)


# =============================================================================
# HEALTH
# =============================================================================

@api_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint with service status."""
    health_status = {
        "status": "ok",
        "environment": current_app.config.get("ENVIRONMENT", "unknown"),
        "chain_id": None,
        "checks": {}
    }

    # Check provider manager
    provider_manager = current_app.config.get("PROVIDER_MANAGER")
    if provider_manager and provider_manager.is_initialized:
        health_status["checks"]["privacy_pool"] = provider_manager.backend
    else:
        health_status["checks"]["privacy_pool"] = "not_initialized"
        health_status["status"] = "degraded"

    # Check trading service
    trading_service = current_app.config.get("TRADING_SERVICE")
    if trading_service:
        health_status["chain_id"] = trading_service.chain_id
        health_status["checks"]["trading_service"] = "ok"
    else:
        health_status["checks"]["trading_service"] = "not_available"
        health_status["status"] = "degraded"

    # Check session service
    if current_app.config.get("SESSION_SERVICE"):
        health_status["checks"]["session_service"] = "ok"
    else:
        health_status["checks"]["session_service"] = "not_available"
        health_status["status"] = "degraded"

    status_code = 200 if health_status["status"] == "ok" else 503
    return health_status, status_code


# =============================================================================
# SINGLE-SHOT OPERATIONS
# =============================================================================

@api_bp.route("/api/incognito-wallets", methods=["POST"])
def derive_wallet():
    """Derive the incognito wallet for {"main_wallet_address", "label"?}."""
    body = _json_body()
    wallet = _trading_service().derive_incognito_wallet(
        body.get("main_wallet_address"), label=body.get("label")
    )
    return wallet.to_dict(), 201


@api_bp.route("/api/private-funds/prepare", methods=["POST"])
def prepare_funds():
    """
    Shield from the main wallet.

    Body: {"main_wallet_address", "token", "amount", "slippage_tolerance"?}
    Returns the submitted operation; confirm it via the confirmation endpoint.
    """
    body = _json_body()
    config = PrivateTradeConfig.from_dict(body)
    operation = _trading_service().prepare_private_funds(body.get("main_wallet_address"), config)
    return operation.to_dict(), 202


@api_bp.route("/api/private-funds/unshield", methods=["POST"])
def unshield_funds():
    """Unshield to the wallet in {"incognito_wallet": {...}, "token", "amount"}."""
    body = _json_body()
    wallet = _wallet_from(body)
    config = PrivateTradeConfig.from_dict(body)
    operation = _trading_service().unshield_for_trading(wallet, config)
    return operation.to_dict(), 202


@api_bp.route("/api/private-positions/exit", methods=["POST"])
def exit_position():
    """Shield back from the wallet in {"incognito_wallet": {...}, "token", "amount"}."""
    body = _json_body()
    wallet = _wallet_from(body)
    config = PrivateTradeConfig.from_dict(body, default_trade_type=TradeType.EXIT)
    operation = _trading_service().exit_private_position(wallet, config)
    return operation.to_dict(), 202


@api_bp.route("/api/private-funds/status", methods=["GET"])
def funds_status():
    """
    Funds status snapshot.

    Query: main_wallet_address, incognito_address, token, transaction_state?
    Always 200 for well-formed queries; read failures come back as an
    ERROR snapshot, not as an HTTP error.
    """
    args = request.args
    raw_state = args.get("transaction_state", OperationState.IDLE.value)
    try:
        transaction_state = OperationState(raw_state)
    except ValueError:
        raise InvalidInputError("transaction state", raw_state, f"{raw_state!r} is not a known state")

    status = _trading_service().check_private_funds_status(
        args.get("main_wallet_address", ""),
        args.get("incognito_address", ""),
        args.get("token", ""),
        transaction_state=transaction_state,
    )
    return status.to_dict()


@api_bp.route("/api/operations/<operation_ref>/confirmation", methods=["POST"])
def await_confirmation(operation_ref: str):
    """
    Block until the operation is confirmed and indexed.

    Body (optional): {"max_wait_seconds": float}
    """
    body = request.get_json(silent=True) or {}
    max_wait = body.get("max_wait_seconds") if isinstance(body, dict) else None
    state = _trading_service().wait_for_transaction_confirmation(operation_ref, max_wait_seconds=max_wait)
    return {"operation_ref": operation_ref, "state": state.value}


# =============================================================================
# SESSIONS
# =============================================================================

@api_bp.route("/api/sessions", methods=["POST"])
def start_session():
    """
    Start an entry session in the background.

    Body: {"main_wallet_address", "token", "amount", "label"?,
           "auto_unshield"?, "max_indexing_time"?, "slippage_tolerance"?}
    """
    body = _json_body()
    config = PrivateTradeConfig.from_dict(body)
    session_id = _session_service().start_entry(
        body.get("main_wallet_address"), config, label=body.get("label")
    )
    return {"session_id": session_id, "status": "processing"}, 202


@api_bp.route("/api/sessions/<session_id>", methods=["GET"])
def get_session(session_id: str):
    session_service = _session_service()
    snapshot = session_service.get_session(session_id)
    snapshot["busy"] = session_service.is_session_busy(session_id)
    return snapshot


@api_bp.route("/api/sessions/<session_id>", methods=["DELETE"])
def close_session(session_id: str):
    """Forget a session; 409 while one of its steps is running."""
    _session_service().close_session(session_id)
    return {"session_id": session_id, "status": "closed"}


@api_bp.route("/api/sessions/<session_id>/unshield", methods=["POST"])
def unshield_session(session_id: str):
    """Manual unshield; body may override token/amount of the entry configuration."""
    body = request.get_json(silent=True)
    config = PrivateTradeConfig.from_dict(body) if isinstance(body, dict) and body.get("amount") is not None else None
    _session_service().unshield_session(session_id, config)
    return {"session_id": session_id, "status": "processing"}, 202


@api_bp.route("/api/sessions/<session_id>/exit", methods=["POST"])
def exit_session(session_id: str):
    body = _json_body()
    config = PrivateTradeConfig.from_dict(body, default_trade_type=TradeType.EXIT)
    _session_service().start_exit(session_id, config)
    return {"session_id": session_id, "status": "processing"}, 202


# =============================================================================
# ERROR HANDLING
# =============================================================================

def error_status(error: PrivateTradingError) -> int:
    """HTTP status for an application error."""
    if isinstance(error, PhaseError):
        if error.caused_by_invalid_input:
            return 400
        return error_status(error.cause) if isinstance(error.cause, PrivateTradingError) else 502

    if isinstance(error, InvalidInputError):
        return 400
    if isinstance(error, SessionNotFoundError):
        return 404
    if isinstance(error, (SessionBusyError, SessionStateError, OperationFailedError, InvalidStateTransitionError)):
        return 409
    if isinstance(error, (ProviderError, OperationSubmissionError)):
        return 502
    if isinstance(error, ConfirmationTimeoutError):
        return 504
    return 500


def register_error_handlers(app):
    """Render application and HTTP errors as {"error", "type"} JSON."""

    @app.errorhandler(PrivateTradingError)
    def handle_trading_error(e):
        status_code = error_status(e)
        if status_code >= 500:
            logger.error(f"{type(e).__name__}: {e.message}")
        else:
            logger.info(f"Rejected request ({status_code}): {e.message}")
        return jsonify({"error": e.message, "type": type(e).__name__}), status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({"error": e.description, "type": type(e).__name__}), e.code

    @app.errorhandler(500)
    def handle_server_error(e):
        logger.error(f"500 error: {e}", exc_info=True)
        return jsonify({"error": "An unexpected error occurred", "type": "InternalServerError"}), 500


# =============================================================================
# HELPERS
# =============================================================================

def _trading_service():
    return current_app.config["TRADING_SERVICE"]


def _session_service():
    return current_app.config["SESSION_SERVICE"]


def _json_body() -> dict:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise InvalidInputError("body", body, "request body must be a JSON object")
    return body


def _wallet_from(body: dict) -> IncognitoWallet:
    data = body.get("incognito_wallet")
    if not isinstance(data, dict):
        raise InvalidInputError("incognito wallet", data, "incognito_wallet object is required")
    return IncognitoWallet.from_dict(data)
