"""Domain layer exports."""

from .base import DomainModel
from .enums import AuthorityRole, Commitment, LifecycleStage, MintExtension, TransactionStatus
from .token import (
    Mint,
    TokenAccount,
    TokenMetadata,
    TokenPlan,
    TransferFeeBreakdown,
    TransferFeeConfig,
    compute_transfer_fee,
    split_transfer,
)
from .types import (
    LAMPORTS_PER_SOL,
    MAX_FEE_BASIS_POINTS,
    HolderLabel,
    Lamports,
    PublicKeyStr,
    RawAmount,
    SignatureStr,
)
from .wallet import Wallet

__all__ = [
    "AuthorityRole",
    "Commitment",
    "DomainModel",
    "HolderLabel",
    "LAMPORTS_PER_SOL",
    "Lamports",
    "LifecycleStage",
    "MAX_FEE_BASIS_POINTS",
    "Mint",
    "MintExtension",
    "PublicKeyStr",
    "RawAmount",
    "SignatureStr",
    "TokenAccount",
    "TokenMetadata",
    "TokenPlan",
    "TransactionStatus",
    "TransferFeeBreakdown",
    "TransferFeeConfig",
    "Wallet",
    "compute_transfer_fee",
    "split_transfer",
]
