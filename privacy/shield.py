"""
Shield operations.

Shielding moves value from a public address into the privacy pool. The
request is submitted and the call returns at once; confirmation is the
ConfirmationTracker's job.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.exceptions import InvalidInputError, OperationSubmissionError, root_message
from core.providers import PrivacyPoolProvider
from core.validation import parse_positive_amount, require_address, require_chain_id, require_operation_ref
from logging_config import get_logger
from models.trading import OperationState
from .incognito import token_symbol


logger = get_logger(__name__)


@dataclass(frozen=True)
class Submission:
    """Provider acknowledgement of a shield or unshield request."""

    operation_ref: str
    state: OperationState


def accept_submission(operation: str, response) -> Submission:
    """
    Check the provider's (operation_ref, state) reply.

    Raises:
        OperationSubmissionError: If the reply is malformed
    """
    try:
        operation_ref, state = response
        require_operation_ref(operation_ref)
        return Submission(operation_ref=operation_ref, state=OperationState(state))
    except (TypeError, ValueError, InvalidInputError) as e:
        raise OperationSubmissionError(operation, f"malformed provider response: {e}") from e


def submit(pool_call, operation: str, address: str, token, amount: str, chain_id: int) -> Submission:
    try:
        response = pool_call(address, token_symbol(token), amount, chain_id)
    except InvalidInputError:
        raise
    except Exception as e:
        logger.warning(f"{operation.capitalize()} rejected by provider: {root_message(e)}")
        raise OperationSubmissionError(operation, root_message(e)) from e

    submission = accept_submission(operation, response)
    logger.info(
        f"{operation.capitalize()} submitted: {submission.operation_ref[:10]}... "
        f"{amount} {token_symbol(token)} state={submission.state.value}"
    )
    return submission


def shield_tokens(
    pool: PrivacyPoolProvider,
    source_address: str,
    token,
    amount: str,
    chain_id: int
) -> Submission:
    """
    Shield tokens into the privacy pool.

    Args:
        pool: Privacy pool provider
        source_address: Address the value leaves
        token: Token to shield
        amount: Amount in token units (decimal string)
        chain_id: Network identifier

    Returns:
        Submission with the operation reference and initial state

    Raises:
        InvalidInputError: If address or amount is malformed (no provider call made)
        OperationSubmissionError: If the provider rejects the request
    """
    require_address(source_address, "source address")
    parse_positive_amount(amount)
    require_chain_id(chain_id)

    return submit(pool.submit_shield, "shield", source_address, token, amount, chain_id)


def get_shielded_balance(pool: PrivacyPoolProvider, address: str, token, chain_id: int) -> str:
    """
    Read the shielded-pool balance owned by an address.

    Raises:
        InvalidInputError: If the address is malformed
        ProviderError: If the query fails
    """
    require_address(address, "wallet address")
    return pool.read_shielded_balance(address, token_symbol(token), chain_id)
