"""
Unshield operations.

Unshielding moves value from the privacy pool to a destination address:
the incognito wallet on entry, or a public address when leaving the system.
"""

from __future__ import annotations

from core.providers import PrivacyPoolProvider
from core.validation import parse_positive_amount, require_address, require_chain_id
from .shield import Submission, submit


def unshield_tokens(
    pool: PrivacyPoolProvider,
    destination_address: str,
    token,
    amount: str,
    chain_id: int
) -> Submission:
    """
    Unshield tokens from the privacy pool to a destination address.

    Args:
        pool: Privacy pool provider
        destination_address: Address the value arrives at
        token: Token to unshield
        amount: Amount in token units (decimal string)
        chain_id: Network identifier

    Returns:
        Submission with the operation reference and initial state

    Raises:
        InvalidInputError: If address or amount is malformed (no provider call made)
        OperationSubmissionError: If the provider rejects the request
            (e.g. insufficient shielded balance, proof generation failure)
    """
    require_address(destination_address, "destination address")
    parse_positive_amount(amount)
    require_chain_id(chain_id)

    return submit(pool.submit_unshield, "unshield", destination_address, token, amount, chain_id)
