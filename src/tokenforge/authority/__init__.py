"""Signing authorities, wallet loading and operator gates."""

from .exceptions import AuthorityError, SignerUnavailable
from .gate import (
    DEFAULT_CONFIRMATION_PHRASE,
    AutoApproveGate,
    ConfirmationGate,
    InteractiveConfirmationGate,
    PolicyGate,
    irreversible_warning,
)
from .loader import WALLET_LABELS, load_keypair, load_wallet, load_wallets, wallet_path
from .registry import (
    DEFAULT_ROLE_LABELS,
    FEE_COLLECTOR_LABEL,
    PAYER_LABEL,
    REVOKED,
    TREASURY_LABEL,
    AuthorityRegistry,
    Signer,
)

__all__ = [
    "DEFAULT_CONFIRMATION_PHRASE",
    "DEFAULT_ROLE_LABELS",
    "FEE_COLLECTOR_LABEL",
    "PAYER_LABEL",
    "REVOKED",
    "TREASURY_LABEL",
    "WALLET_LABELS",
    "AuthorityError",
    "AuthorityRegistry",
    "AutoApproveGate",
    "ConfirmationGate",
    "InteractiveConfirmationGate",
    "PolicyGate",
    "Signer",
    "SignerUnavailable",
    "irreversible_warning",
    "load_keypair",
    "load_wallet",
    "load_wallets",
    "wallet_path",
]
