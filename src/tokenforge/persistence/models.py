"""Persisted lifecycle record."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from tokenforge.domain import (
    AuthorityRole,
    Commitment,
    DomainModel,
    LifecycleStage,
    Mint,
    PublicKeyStr,
    SignatureStr,
    TokenAccount,
    TokenMetadata,
)
from tokenforge.utils import utc_now

RECORD_VERSION = 1


class NetworkConfig(DomainModel):
    environment: str = "devnet"
    endpoint: str
    commitment: Commitment = Commitment.CONFIRMED


class TokenRecord(DomainModel):
    """Mint, metadata and holder accounts as last observed on the ledger."""

    mint: Mint | None = None
    metadata: TokenMetadata | None = None
    accounts: dict[str, TokenAccount] = Field(default_factory=dict)

    def account(self, label: str) -> TokenAccount | None:
        return self.accounts.get(label)

    def with_account(self, account: TokenAccount) -> TokenRecord:
        accounts = dict(self.accounts)
        accounts[account.label] = account
        return self.model_copy(update={"accounts": accounts})


class PendingRecord(DomainModel):
    """A submission whose outcome had not been observed when the record was saved.

    ``outcome`` is the token state to adopt if the signature turns out to
    have executed, so a resumed process can finish the bookkeeping without
    rebuilding the transaction.
    """

    operation: str
    stage: LifecycleStage | None = None
    signature: SignatureStr
    expiry_height: int
    mint_address: PublicKeyStr | None = None
    outcome: TokenRecord
    submitted_at: datetime = Field(default_factory=utc_now)
    details: dict[str, Any] = Field(default_factory=dict)


class LifecycleRecord(DomainModel):
    version: int = RECORD_VERSION
    network: NetworkConfig
    stage: LifecycleStage = LifecycleStage.UNINITIALIZED
    authorities: dict[AuthorityRole, PublicKeyStr | None] = Field(default_factory=dict)
    wallets: dict[str, PublicKeyStr] = Field(default_factory=dict)
    token: TokenRecord = Field(default_factory=TokenRecord)
    pending: PendingRecord | None = None
    history: list[SignatureStr] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def mint(self) -> Mint | None:
        return self.token.mint


__all__ = [
    "RECORD_VERSION",
    "LifecycleRecord",
    "NetworkConfig",
    "PendingRecord",
    "TokenRecord",
]
