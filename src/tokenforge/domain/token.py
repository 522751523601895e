"""Mint, token account and metadata domain models."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from pydantic import Field, field_validator, model_validator

from .base import DomainModel
from .enums import AuthorityRole, MintExtension
from .types import MAX_FEE_BASIS_POINTS, HolderLabel, PublicKeyStr, RawAmount

MAX_NAME_LENGTH = 32
MAX_SYMBOL_LENGTH = 10
MAX_URI_LENGTH = 200


@dataclass(frozen=True, slots=True)
class TransferFeeBreakdown:
    """Split of a fee-bearing transfer into withheld and credited parts."""

    amount: RawAmount
    withheld: RawAmount
    net: RawAmount


def compute_transfer_fee(amount: RawAmount, fee_basis_points: int, max_fee: RawAmount = 0) -> RawAmount:
    """Return the amount withheld from a transfer of ``amount`` raw units.

    The fee is ``floor(amount * bps / 10000)`` capped at ``max_fee``; a cap of
    zero means uncapped.
    """

    if amount < 0:
        msg = "Transfer amount must be non-negative"
        raise ValueError(msg)
    if not 0 <= fee_basis_points <= MAX_FEE_BASIS_POINTS:
        msg = f"fee_basis_points must be within 0..{MAX_FEE_BASIS_POINTS}"
        raise ValueError(msg)
    if max_fee < 0:
        msg = "max_fee must be non-negative"
        raise ValueError(msg)
    fee = amount * fee_basis_points // MAX_FEE_BASIS_POINTS
    if max_fee:
        fee = min(fee, max_fee)
    return fee


def split_transfer(amount: RawAmount, fee_basis_points: int, max_fee: RawAmount = 0) -> TransferFeeBreakdown:
    withheld = compute_transfer_fee(amount, fee_basis_points, max_fee)
    return TransferFeeBreakdown(amount=amount, withheld=withheld, net=amount - withheld)


class TransferFeeConfig(DomainModel):
    """Transfer-fee schedule applied to every transfer of a mint."""

    fee_basis_points: int = Field(ge=0, le=MAX_FEE_BASIS_POINTS)
    max_fee: RawAmount = Field(default=0, ge=0)
    fee_authority: PublicKeyStr | None = None
    withdraw_withheld_authority: PublicKeyStr | None = None

    def breakdown(self, amount: RawAmount) -> TransferFeeBreakdown:
        return split_transfer(amount, self.fee_basis_points, self.max_fee)

    def same_rate(self, other: TransferFeeConfig) -> bool:
        return (self.fee_basis_points, self.max_fee) == (other.fee_basis_points, other.max_fee)


class Mint(DomainModel):
    """Ledger object describing a token type."""

    address: PublicKeyStr
    decimals: int = Field(ge=0, le=255)
    supply: RawAmount = Field(default=0, ge=0)
    extensions: frozenset[MintExtension] = frozenset()
    authorities: Mapping[AuthorityRole, PublicKeyStr | None] = Field(default_factory=dict)
    transfer_fee: TransferFeeConfig | None = None
    newer_transfer_fee: TransferFeeConfig | None = None
    newer_fee_epoch: int | None = Field(default=None, ge=0)

    def authority(self, role: AuthorityRole) -> PublicKeyStr | None:
        return self.authorities.get(role)

    def is_revoked(self, role: AuthorityRole) -> bool:
        """Return True when ``role`` was bound and later set to nobody."""

        return role in self.authorities and self.authorities[role] is None

    def has_extension(self, extension: MintExtension) -> bool:
        return extension in self.extensions

    def with_revoked(self, role: AuthorityRole) -> Mint:
        authorities = dict(self.authorities)
        authorities[role] = None
        return self.model_copy(update={"authorities": authorities})

    def fee_for_epoch(self, epoch: int) -> TransferFeeConfig | None:
        """Return the schedule the ledger charges during ``epoch``.

        A changed fee is stored as a newer schedule and only replaces the
        current one from ``newer_fee_epoch`` onwards.
        """

        if self.newer_transfer_fee is not None and self.newer_fee_epoch is not None and epoch >= self.newer_fee_epoch:
            return self.newer_transfer_fee
        return self.transfer_fee

    def at_epoch(self, epoch: int) -> Mint:
        current = self.fee_for_epoch(epoch)
        if current is self.transfer_fee:
            return self
        return self.model_copy(
            update={"transfer_fee": current, "newer_transfer_fee": None, "newer_fee_epoch": None}
        )


class TokenAccount(DomainModel):
    """Holder account for a single mint."""

    label: HolderLabel
    address: PublicKeyStr
    owner: PublicKeyStr
    mint: PublicKeyStr
    balance: RawAmount = Field(default=0, ge=0)
    withheld: RawAmount = Field(default=0, ge=0)
    frozen: bool = False


class TokenMetadata(DomainModel):
    """Descriptive metadata stored alongside the mint."""

    mint: PublicKeyStr
    name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)
    symbol: str = Field(min_length=1, max_length=MAX_SYMBOL_LENGTH)
    uri: str = Field(max_length=MAX_URI_LENGTH)
    is_mutable: bool = True
    update_authority: PublicKeyStr | None = None

    @field_validator("symbol", mode="before")
    @classmethod
    def normalize_symbol(cls, value: str) -> str:
        if isinstance(value, str):
            return value.strip().upper()
        return value


class TokenPlan(DomainModel):
    """Operator-supplied description of the token to provision."""

    name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)
    symbol: str = Field(min_length=1, max_length=MAX_SYMBOL_LENGTH)
    uri: str = Field(min_length=1, max_length=MAX_URI_LENGTH)
    decimals: int = Field(default=6, ge=0, le=255)
    initial_supply: Decimal = Field(gt=0)
    fee_basis_points: int = Field(default=0, ge=0, le=MAX_FEE_BASIS_POINTS)
    max_fee: Decimal = Field(default=Decimal("0"), ge=0)
    freeze_authority: bool = True

    @field_validator("symbol", mode="before")
    @classmethod
    def normalize_symbol(cls, value: str) -> str:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @model_validator(mode="after")
    def check_precision(self) -> TokenPlan:
        _scale(self.initial_supply, self.decimals)
        _scale(self.max_fee, self.decimals)
        return self

    @property
    def raw_supply(self) -> RawAmount:
        return _scale(self.initial_supply, self.decimals)

    @property
    def raw_max_fee(self) -> RawAmount:
        return _scale(self.max_fee, self.decimals)


def _scale(amount: Decimal, decimals: int) -> RawAmount:
    scaled = amount.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        msg = f"{amount} has more than {decimals} decimal places"
        raise ValueError(msg)
    return int(scaled)


__all__ = [
    "MAX_NAME_LENGTH",
    "MAX_SYMBOL_LENGTH",
    "MAX_URI_LENGTH",
    "Mint",
    "TokenAccount",
    "TokenMetadata",
    "TokenPlan",
    "TransferFeeBreakdown",
    "TransferFeeConfig",
    "compute_transfer_fee",
    "split_transfer",
]
