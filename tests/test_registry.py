from __future__ import annotations

import pytest

from tokenforge.authority import (
    PAYER_LABEL,
    REVOKED,
    TREASURY_LABEL,
    AuthorityRegistry,
    SignerUnavailable,
)
from tokenforge.domain import AuthorityRole, Wallet


def test_from_wallets_binds_default_labels(wallets: dict[str, Wallet]) -> None:
    registry = AuthorityRegistry.from_wallets(wallets)

    assert registry.require(AuthorityRole.MINT) is wallets["mint-authority"]
    assert registry.require(AuthorityRole.UPDATE) is wallets[PAYER_LABEL]
    assert registry.require(AuthorityRole.FEE) is registry.require(AuthorityRole.WITHDRAW_WITHHELD)
    assert registry.payer is wallets[PAYER_LABEL]
    assert registry.resolve(TREASURY_LABEL) is wallets[TREASURY_LABEL]


def test_missing_wallet_leaves_role_unbound(wallets: dict[str, Wallet]) -> None:
    del wallets["freeze-authority"]
    registry = AuthorityRegistry.from_wallets(wallets)

    assert registry.binding(AuthorityRole.FREEZE) is None
    with pytest.raises(SignerUnavailable, match="No wallet"):
        registry.require(AuthorityRole.FREEZE)


def test_revocation_returns_new_registry(registry: AuthorityRegistry) -> None:
    revoked = registry.with_revoked(AuthorityRole.MINT)

    assert revoked.is_revoked(AuthorityRole.MINT)
    assert revoked.binding(AuthorityRole.MINT) is REVOKED
    assert not registry.is_revoked(AuthorityRole.MINT)
    with pytest.raises(SignerUnavailable, match="revoked"):
        revoked.require(AuthorityRole.MINT)
    assert revoked.public_keys()[AuthorityRole.MINT] is None


def test_revoked_role_cannot_be_rebound(registry: AuthorityRegistry) -> None:
    revoked = registry.with_revoked(AuthorityRole.MINT)
    with pytest.raises(SignerUnavailable):
        revoked.bind(AuthorityRole.MINT, Wallet.generate("replacement"))

    rebound = registry.bind(AuthorityRole.FREEZE, Wallet.generate("replacement"))
    assert rebound.require(AuthorityRole.FREEZE).label == "replacement"


def test_unknown_label_is_unavailable(registry: AuthorityRegistry) -> None:
    with pytest.raises(SignerUnavailable, match="not loaded"):
        registry.wallet_for("nobody")


def test_wallet_repr_hides_secret() -> None:
    wallet = Wallet.generate("treasury")
    assert "keypair" not in repr(wallet)
    assert wallet.public_key in str(wallet)
