"""Role to signing-capability bindings."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Final

from tokenforge.domain import AuthorityRole, PublicKeyStr, Wallet

from .exceptions import SignerUnavailable

PAYER_LABEL: Final = "token-authority"
TREASURY_LABEL: Final = "treasury"
FEE_COLLECTOR_LABEL: Final = "fee-collector"

DEFAULT_ROLE_LABELS: Mapping[AuthorityRole, str] = MappingProxyType(
    {
        AuthorityRole.MINT: "mint-authority",
        AuthorityRole.FREEZE: "freeze-authority",
        AuthorityRole.UPDATE: PAYER_LABEL,
        AuthorityRole.FEE: FEE_COLLECTOR_LABEL,
        AuthorityRole.WITHDRAW_WITHHELD: FEE_COLLECTOR_LABEL,
    }
)


class _Revoked:
    _instance: _Revoked | None = None

    def __new__(cls) -> _Revoked:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "REVOKED"


REVOKED: Final = _Revoked()

Binding = Wallet | _Revoked
Signer = AuthorityRole | str


class AuthorityRegistry:
    """Read-only view of which wallet may act for each role.

    Revocation never mutates a registry; ``with_revoked`` hands back a new
    instance so registries shared between orchestrators stay stable.
    Holder wallets (payer, treasury and so on) are addressed by label.
    """

    __slots__ = ("_bindings", "_holders")

    def __init__(
        self,
        bindings: Mapping[AuthorityRole, Binding] | None = None,
        holders: Mapping[str, Wallet] | None = None,
    ) -> None:
        self._bindings: Mapping[AuthorityRole, Binding] = MappingProxyType(dict(bindings or {}))
        self._holders: Mapping[str, Wallet] = MappingProxyType(dict(holders or {}))

    @classmethod
    def from_wallets(
        cls,
        wallets: Mapping[str, Wallet],
        role_labels: Mapping[AuthorityRole, str] = DEFAULT_ROLE_LABELS,
    ) -> AuthorityRegistry:
        """Bind each role to the wallet stored under its configured label."""

        bindings: dict[AuthorityRole, Binding] = {}
        for role, label in role_labels.items():
            wallet = wallets.get(label)
            if wallet is not None:
                bindings[role] = wallet
        return cls(bindings, wallets)

    def binding(self, role: AuthorityRole) -> Binding | None:
        return self._bindings.get(role)

    def is_revoked(self, role: AuthorityRole) -> bool:
        return self._bindings.get(role) is REVOKED

    def require(self, role: AuthorityRole) -> Wallet:
        binding = self._bindings.get(role)
        if isinstance(binding, Wallet):
            return binding
        if binding is REVOKED:
            msg = f"The {role} authority has been revoked"
            raise SignerUnavailable(msg)
        msg = f"No wallet is bound to the {role} authority"
        raise SignerUnavailable(msg)

    def wallet_for(self, label: str) -> Wallet:
        try:
            return self._holders[label]
        except KeyError as exc:
            msg = f"Wallet '{label}' is not loaded"
            raise SignerUnavailable(msg) from exc

    def resolve(self, signer: Signer) -> Wallet:
        if isinstance(signer, AuthorityRole):
            return self.require(signer)
        return self.wallet_for(signer)

    def bind(self, role: AuthorityRole, wallet: Wallet) -> AuthorityRegistry:
        if self.is_revoked(role):
            msg = f"The {role} authority was revoked and cannot be re-bound"
            raise SignerUnavailable(msg)
        bindings = dict(self._bindings)
        bindings[role] = wallet
        return AuthorityRegistry(bindings, self._holders)

    def with_revoked(self, role: AuthorityRole) -> AuthorityRegistry:
        bindings = dict(self._bindings)
        bindings[role] = REVOKED
        return AuthorityRegistry(bindings, self._holders)

    def public_keys(self) -> dict[AuthorityRole, PublicKeyStr | None]:
        keys: dict[AuthorityRole, PublicKeyStr | None] = {}
        for role, binding in self._bindings.items():
            keys[role] = binding.public_key if isinstance(binding, Wallet) else None
        return keys

    @property
    def holders(self) -> Mapping[str, Wallet]:
        return self._holders

    @property
    def payer(self) -> Wallet:
        return self.wallet_for(PAYER_LABEL)

    def __iter__(self) -> Iterator[AuthorityRole]:
        return iter(self._bindings)

    def __repr__(self) -> str:
        roles = ", ".join(f"{role}={binding!r}" for role, binding in self._bindings.items())
        return f"AuthorityRegistry({roles})"


__all__ = [
    "DEFAULT_ROLE_LABELS",
    "FEE_COLLECTOR_LABEL",
    "PAYER_LABEL",
    "REVOKED",
    "TREASURY_LABEL",
    "AuthorityRegistry",
    "Binding",
    "Signer",
]
