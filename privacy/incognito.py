"""
Incognito wallet derivation and balance reads.

Derivation is delegated to the privacy-pool provider, which holds the key
material. This module enforces the contract around it: the input must be
a 20-byte hex address, and the output must be one too and must never
equal the input.
"""

from __future__ import annotations

from core.exceptions import ProviderError
from core.providers import ChainDataProvider, PrivacyPoolProvider
from core.validation import is_valid_address, require_address, require_chain_id, same_address
from logging_config import get_logger
from models.trading import SupportedToken


logger = get_logger(__name__)


def token_symbol(token) -> str:
    return token.value if isinstance(token, SupportedToken) else str(token)


def derive_incognito_address(pool: PrivacyPoolProvider, public_address: str, chain_id: int) -> str:
    """
    Derive the unlinkable address for a main wallet on a network.

    Deterministic: identical inputs give identical outputs, and changing
    either input changes the output.

    Args:
        pool: Privacy pool provider holding the key material
        public_address: Main wallet address
        chain_id: Network identifier

    Returns:
        Derived incognito address

    Raises:
        InvalidInputError: If public_address is malformed (no provider call made)
        ProviderError: If the provider returns an address that breaks the contract
    """
    require_address(public_address, "main wallet address")
    require_chain_id(chain_id)

    derived = pool.derive_address(public_address, chain_id)

    if not is_valid_address(derived):
        raise ProviderError(f"Provider derived a malformed address: {derived!r}", operation="derive")
    if same_address(derived, public_address):
        raise ProviderError("Provider derived an address equal to the main wallet", operation="derive")

    logger.debug(f"Derived incognito address for {public_address[:10]}... on chain {chain_id}")
    return derived


def get_incognito_balance(chain: ChainDataProvider, incognito_address: str, token, chain_id: int) -> str:
    """
    Read the token balance held at an incognito address.

    Raises:
        InvalidInputError: If the address is malformed
        ProviderError: If the query fails
    """
    require_address(incognito_address, "incognito address")
    return chain.read_incognito_balance(incognito_address, token_symbol(token), chain_id)


def is_valid_incognito_address(address) -> bool:
    return is_valid_address(address)
