"""Enumerations used across the tokenforge domain layer."""

from __future__ import annotations

from enum import StrEnum


class AuthorityRole(StrEnum):
    """Capabilities a mint can bind to a signing key."""

    MINT = "mint"
    FREEZE = "freeze"
    UPDATE = "update"
    FEE = "fee"
    WITHDRAW_WITHHELD = "withdraw_withheld"


class LifecycleStage(StrEnum):
    """Ordered positions of a token in its provisioning lifecycle."""

    UNINITIALIZED = "uninitialized"
    MINT_CREATED = "mint_created"
    METADATA_ATTACHED = "metadata_attached"
    ACCOUNTS_PROVISIONED = "accounts_provisioned"
    SUPPLY_MINTED = "supply_minted"
    FEE_CONFIGURED = "fee_configured"
    MINT_AUTHORITY_REVOKED = "mint_authority_revoked"
    METADATA_IMMUTABILIZED = "metadata_immutabilized"
    FINALIZED = "finalized"


class TransactionStatus(StrEnum):
    """Status of a single submission attempt."""

    BUILT = "built"
    SIGNED = "signed"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    EXPIRED = "expired"


class MintExtension(StrEnum):
    """Token-2022 mint extensions this project knows how to initialize."""

    TRANSFER_FEE_CONFIG = "transfer_fee_config"
    METADATA_POINTER = "metadata_pointer"


class Commitment(StrEnum):
    """Ledger commitment levels accepted by the RPC client."""

    PROCESSED = "processed"
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"
