"""Token-2022 instruction factory.

Instructions covered by ``spl.token.instructions`` are delegated there; the
metadata-pointer, transfer-fee and token-metadata interface instructions are
packed locally because the SDK does not expose them.
"""

from __future__ import annotations

import hashlib
import struct
from collections.abc import Iterable

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.system_program import (
    CreateAccountParams,
    TransferParams,
    create_account,
)
from solders.system_program import transfer as system_transfer
from spl.token.constants import ASSOCIATED_TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID
from spl.token.instructions import (
    AuthorityType,
    burn_checked,
    freeze_account,
    initialize_mint,
    mint_to_checked,
    set_authority,
    thaw_account,
    transfer_checked,
)
from spl.token.models import (
    BurnCheckedParams,
    FreezeAccountParams,
    InitializeMintParams,
    MintToCheckedParams,
    SetAuthorityParams,
    ThawAccountParams,
    TransferCheckedParams,
)

from tokenforge.domain import MintExtension
from tokenforge.ledger import associated_token_address

BASE_MINT_SIZE = 82
BASE_ACCOUNT_SIZE = 165
ACCOUNT_TYPE_SIZE = 1
TLV_HEADER_SIZE = 4
PUBKEY_SIZE = 32

EXTENSION_SIZES: dict[MintExtension, int] = {
    MintExtension.TRANSFER_FEE_CONFIG: 108,
    MintExtension.METADATA_POINTER: 64,
}

_TRANSFER_FEE_EXTENSION = 26
_INITIALIZE_TRANSFER_FEE_CONFIG = 0
_SET_TRANSFER_FEE = 5
_METADATA_POINTER_EXTENSION = 39
_INITIALIZE_METADATA_POINTER = 0
_COPTION_SOME = 1
_CREATE_IDEMPOTENT = 1


def _interface_discriminator(name: str) -> bytes:
    return hashlib.sha256(f"spl_token_metadata_interface:{name}".encode()).digest()[:8]


_METADATA_INITIALIZE = _interface_discriminator("initialize_account")
_METADATA_UPDATE_AUTHORITY = _interface_discriminator("update_the_authority")


def _borsh_string(value: str) -> bytes:
    encoded = value.encode("utf-8")
    return struct.pack("<I", len(encoded)) + encoded


def _optional_pubkey(value: Pubkey | None) -> bytes:
    return bytes(value) if value is not None else bytes(PUBKEY_SIZE)


def mint_space(extensions: Iterable[MintExtension] = ()) -> int:
    """Account size for a mint carrying ``extensions``."""

    selected = set(extensions)
    if not selected:
        return BASE_MINT_SIZE
    tlv = sum(TLV_HEADER_SIZE + EXTENSION_SIZES[extension] for extension in selected)
    return BASE_ACCOUNT_SIZE + ACCOUNT_TYPE_SIZE + tlv


def metadata_space(name: str, symbol: str, uri: str) -> int:
    """Bytes the token-metadata TLV entry adds to the mint account."""

    strings = sum(len(_borsh_string(value)) for value in (name, symbol, uri))
    # update authority + mint + strings + empty additional-metadata vector
    return TLV_HEADER_SIZE + PUBKEY_SIZE + PUBKEY_SIZE + strings + 4


def create_mint_account(payer: Pubkey, mint: Pubkey, lamports: int, space: int) -> Instruction:
    return create_account(
        CreateAccountParams(
            from_pubkey=payer,
            to_pubkey=mint,
            lamports=lamports,
            space=space,
            owner=TOKEN_2022_PROGRAM_ID,
        )
    )


def initialize_metadata_pointer(mint: Pubkey, authority: Pubkey | None, metadata_address: Pubkey) -> Instruction:
    data = (
        bytes([_METADATA_POINTER_EXTENSION, _INITIALIZE_METADATA_POINTER])
        + _optional_pubkey(authority)
        + bytes(metadata_address)
    )
    return Instruction(
        TOKEN_2022_PROGRAM_ID,
        data,
        [AccountMeta(pubkey=mint, is_signer=False, is_writable=True)],
    )


def initialize_transfer_fee_config(
    mint: Pubkey,
    fee_authority: Pubkey,
    withdraw_withheld_authority: Pubkey,
    fee_basis_points: int,
    max_fee: int,
) -> Instruction:
    data = (
        bytes([_TRANSFER_FEE_EXTENSION, _INITIALIZE_TRANSFER_FEE_CONFIG, _COPTION_SOME])
        + bytes(fee_authority)
        + bytes([_COPTION_SOME])
        + bytes(withdraw_withheld_authority)
        + struct.pack("<HQ", fee_basis_points, max_fee)
    )
    return Instruction(
        TOKEN_2022_PROGRAM_ID,
        data,
        [AccountMeta(pubkey=mint, is_signer=False, is_writable=True)],
    )


def set_transfer_fee(mint: Pubkey, fee_authority: Pubkey, fee_basis_points: int, max_fee: int) -> Instruction:
    data = bytes([_TRANSFER_FEE_EXTENSION, _SET_TRANSFER_FEE]) + struct.pack("<HQ", fee_basis_points, max_fee)
    return Instruction(
        TOKEN_2022_PROGRAM_ID,
        data,
        [
            AccountMeta(pubkey=mint, is_signer=False, is_writable=True),
            AccountMeta(pubkey=fee_authority, is_signer=True, is_writable=False),
        ],
    )


def initialize_mint_instruction(
    mint: Pubkey,
    decimals: int,
    mint_authority: Pubkey,
    freeze_authority: Pubkey | None,
) -> Instruction:
    return initialize_mint(
        InitializeMintParams(
            decimals=decimals,
            program_id=TOKEN_2022_PROGRAM_ID,
            mint=mint,
            mint_authority=mint_authority,
            freeze_authority=freeze_authority,
        )
    )


def initialize_token_metadata(
    mint: Pubkey,
    update_authority: Pubkey,
    mint_authority: Pubkey,
    name: str,
    symbol: str,
    uri: str,
) -> Instruction:
    data = _METADATA_INITIALIZE + _borsh_string(name) + _borsh_string(symbol) + _borsh_string(uri)
    return Instruction(
        TOKEN_2022_PROGRAM_ID,
        data,
        [
            AccountMeta(pubkey=mint, is_signer=False, is_writable=True),
            AccountMeta(pubkey=update_authority, is_signer=False, is_writable=False),
            AccountMeta(pubkey=mint, is_signer=False, is_writable=False),
            AccountMeta(pubkey=mint_authority, is_signer=True, is_writable=False),
        ],
    )


def update_metadata_authority(
    mint: Pubkey,
    current_authority: Pubkey,
    new_authority: Pubkey | None = None,
) -> Instruction:
    data = _METADATA_UPDATE_AUTHORITY + _optional_pubkey(new_authority)
    return Instruction(
        TOKEN_2022_PROGRAM_ID,
        data,
        [
            AccountMeta(pubkey=mint, is_signer=False, is_writable=True),
            AccountMeta(pubkey=current_authority, is_signer=True, is_writable=False),
        ],
    )


def create_associated_account(payer: Pubkey, owner: Pubkey, mint: Pubkey) -> tuple[Pubkey, Instruction]:
    """Return the holder's associated account and an idempotent create instruction."""

    address = associated_token_address(owner, mint, TOKEN_2022_PROGRAM_ID)
    instruction = Instruction(
        ASSOCIATED_TOKEN_PROGRAM_ID,
        bytes([_CREATE_IDEMPOTENT]),
        [
            AccountMeta(pubkey=payer, is_signer=True, is_writable=True),
            AccountMeta(pubkey=address, is_signer=False, is_writable=True),
            AccountMeta(pubkey=owner, is_signer=False, is_writable=False),
            AccountMeta(pubkey=mint, is_signer=False, is_writable=False),
            AccountMeta(pubkey=SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
            AccountMeta(pubkey=TOKEN_2022_PROGRAM_ID, is_signer=False, is_writable=False),
        ],
    )
    return address, instruction


def mint_to(mint: Pubkey, destination: Pubkey, authority: Pubkey, amount: int, decimals: int) -> Instruction:
    return mint_to_checked(
        MintToCheckedParams(
            program_id=TOKEN_2022_PROGRAM_ID,
            mint=mint,
            dest=destination,
            mint_authority=authority,
            amount=amount,
            decimals=decimals,
        )
    )


def revoke_mint_authority(mint: Pubkey, current_authority: Pubkey) -> Instruction:
    return set_authority(
        SetAuthorityParams(
            program_id=TOKEN_2022_PROGRAM_ID,
            account=mint,
            authority=AuthorityType.MINT_TOKENS,
            current_authority=current_authority,
            new_authority=None,
        )
    )


def transfer(
    source: Pubkey,
    mint: Pubkey,
    destination: Pubkey,
    owner: Pubkey,
    amount: int,
    decimals: int,
) -> Instruction:
    return transfer_checked(
        TransferCheckedParams(
            program_id=TOKEN_2022_PROGRAM_ID,
            source=source,
            mint=mint,
            dest=destination,
            owner=owner,
            amount=amount,
            decimals=decimals,
        )
    )


def burn(account: Pubkey, mint: Pubkey, owner: Pubkey, amount: int, decimals: int) -> Instruction:
    return burn_checked(
        BurnCheckedParams(
            program_id=TOKEN_2022_PROGRAM_ID,
            account=account,
            mint=mint,
            owner=owner,
            amount=amount,
            decimals=decimals,
        )
    )


def freeze(account: Pubkey, mint: Pubkey, authority: Pubkey) -> Instruction:
    return freeze_account(
        FreezeAccountParams(
            program_id=TOKEN_2022_PROGRAM_ID,
            account=account,
            mint=mint,
            authority=authority,
        )
    )


def thaw(account: Pubkey, mint: Pubkey, authority: Pubkey) -> Instruction:
    return thaw_account(
        ThawAccountParams(
            program_id=TOKEN_2022_PROGRAM_ID,
            account=account,
            mint=mint,
            authority=authority,
        )
    )


def transfer_lamports(source: Pubkey, destination: Pubkey, lamports: int) -> Instruction:
    return system_transfer(TransferParams(from_pubkey=source, to_pubkey=destination, lamports=lamports))


__all__ = [
    "BASE_MINT_SIZE",
    "EXTENSION_SIZES",
    "burn",
    "create_associated_account",
    "create_mint_account",
    "freeze",
    "initialize_metadata_pointer",
    "initialize_mint_instruction",
    "initialize_token_metadata",
    "initialize_transfer_fee_config",
    "metadata_space",
    "mint_space",
    "mint_to",
    "revoke_mint_authority",
    "set_transfer_fee",
    "thaw",
    "transfer",
    "transfer_lamports",
    "update_metadata_authority",
]
