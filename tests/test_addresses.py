from __future__ import annotations

import pytest
from solders.pubkey import Pubkey
from spl.token.constants import ASSOCIATED_TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID

from tokenforge.domain import MintExtension, Wallet
from tokenforge.ledger import associated_token_address, create_program_address, derive_program_address
from tokenforge.transactions import instructions as ix


def test_derivation_matches_runtime_search() -> None:
    program = ASSOCIATED_TOKEN_PROGRAM_ID
    seeds = [b"vault", bytes(Pubkey.new_unique())]

    address, bump = derive_program_address(seeds, program)

    expected_address, expected_bump = Pubkey.find_program_address(seeds, program)
    assert address == expected_address
    assert bump == expected_bump
    assert not address.is_on_curve()


def test_derivation_is_deterministic() -> None:
    seeds = [b"config"]
    program = Pubkey.new_unique()
    assert derive_program_address(seeds, program) == derive_program_address(seeds, program)


def test_create_program_address_uses_given_bump() -> None:
    seeds = [b"config"]
    program = Pubkey.new_unique()
    address, bump = derive_program_address(seeds, program)
    assert create_program_address([*seeds, bytes([bump])], program) == address


def test_seed_validation() -> None:
    program = Pubkey.new_unique()
    with pytest.raises(ValueError):
        derive_program_address([b"x" * 33], program)
    with pytest.raises(ValueError):
        derive_program_address([b"s"] * 16, program)


def test_associated_account_matches_instruction_target() -> None:
    payer = Wallet.generate("payer")
    owner = Wallet.generate("owner")
    mint = Pubkey.new_unique()

    address, instruction = ix.create_associated_account(payer.pubkey, owner.pubkey, mint)

    assert address == associated_token_address(owner.pubkey, mint)
    expected, _ = Pubkey.find_program_address(
        [bytes(owner.pubkey), bytes(TOKEN_2022_PROGRAM_ID), bytes(mint)],
        ASSOCIATED_TOKEN_PROGRAM_ID,
    )
    assert address == expected
    assert instruction.data == bytes([1])
    assert instruction.accounts[1].pubkey == address


def test_mint_space_accounts_for_extensions() -> None:
    assert ix.mint_space() == 82
    assert ix.mint_space({MintExtension.METADATA_POINTER}) == 165 + 1 + 4 + 64
    both = {MintExtension.METADATA_POINTER, MintExtension.TRANSFER_FEE_CONFIG}
    assert ix.mint_space(both) == 165 + 1 + 4 + 64 + 4 + 108


def test_metadata_space_counts_encoded_strings() -> None:
    # TLV header, authority, mint, three length-prefixed strings, empty vector
    assert ix.metadata_space("Forge", "FRG", "uri") == 4 + 32 + 32 + (4 + 5) + (4 + 3) + (4 + 3) + 4


def test_set_transfer_fee_packs_schedule() -> None:
    mint = Pubkey.new_unique()
    authority = Pubkey.new_unique()
    instruction = ix.set_transfer_fee(mint, authority, 500, 1_000)
    assert instruction.program_id == TOKEN_2022_PROGRAM_ID
    assert instruction.data == bytes([26, 5]) + (500).to_bytes(2, "little") + (1_000).to_bytes(8, "little")
    assert instruction.accounts[1].is_signer
