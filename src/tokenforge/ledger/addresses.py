"""Deterministic program-derived address (PDA) derivation."""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Sequence

from solders.pubkey import Pubkey
from spl.token.constants import ASSOCIATED_TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID

from .exceptions import AddressDerivationExhausted

PDA_MARKER = b"ProgramDerivedAddress"
MAX_SEEDS = 16
MAX_SEED_LENGTH = 32
MAX_BUMP = 255

logger = logging.getLogger(__name__)


def _validate_seeds(seeds: Sequence[bytes]) -> None:
    # The bump occupies one of the seed slots.
    if len(seeds) >= MAX_SEEDS:
        msg = f"At most {MAX_SEEDS - 1} seeds may be supplied, got {len(seeds)}"
        raise ValueError(msg)
    for seed in seeds:
        if len(seed) > MAX_SEED_LENGTH:
            msg = f"Seed exceeds {MAX_SEED_LENGTH} bytes: {len(seed)}"
            raise ValueError(msg)


def create_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> Pubkey | None:
    """Hash ``seeds`` under ``program_id``; return None if the result lies on the curve."""

    hasher = hashlib.sha256()
    for seed in seeds:
        hasher.update(seed)
    hasher.update(bytes(program_id))
    hasher.update(PDA_MARKER)
    candidate = Pubkey(hasher.digest())
    if candidate.is_on_curve():
        return None
    return candidate


def derive_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> tuple[Pubkey, int]:
    """Return the first off-curve address and its bump, searching 255 down to 0."""

    seeds = [bytes(seed) for seed in seeds]
    _validate_seeds(seeds)
    for bump in range(MAX_BUMP, -1, -1):
        address = create_program_address([*seeds, bytes([bump])], program_id)
        if address is not None:
            return address, bump
    logger.critical("No viable bump seed for program %s", program_id)
    msg = f"Unable to find an off-curve address for program {program_id}"
    raise AddressDerivationExhausted(msg)


def associated_token_address(
    owner: Pubkey,
    mint: Pubkey,
    token_program: Pubkey = TOKEN_2022_PROGRAM_ID,
) -> Pubkey:
    """Derive the associated token account of ``owner`` for ``mint``."""

    address, _ = derive_program_address(
        [bytes(owner), bytes(token_program), bytes(mint)],
        ASSOCIATED_TOKEN_PROGRAM_ID,
    )
    return address


__all__ = [
    "associated_token_address",
    "create_program_address",
    "derive_program_address",
]
