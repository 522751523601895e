"""Lightweight application configuration loader."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from tokenforge.domain import Commitment
from tokenforge.persistence.errors import ConfigError

DEFAULT_ENDPOINTS: dict[str, str] = {
    "devnet": "https://api.devnet.solana.com",
    "testnet": "https://api.testnet.solana.com",
    "mainnet-beta": "https://api.mainnet-beta.solana.com",
    "localnet": "http://127.0.0.1:8899",
}
MAINNET_ENVIRONMENTS = frozenset({"mainnet", "mainnet-beta"})


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        msg = f"{name} must be an integer, got {raw!r}"
        raise ConfigError(msg) from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        msg = f"{name} must be a number, got {raw!r}"
        raise ConfigError(msg) from exc


@dataclass(frozen=True)
class AppSettings:
    """Immutable configuration sourced from environment variables."""

    environment: str = "devnet"
    rpc_endpoint: str = DEFAULT_ENDPOINTS["devnet"]
    commitment: Commitment = Commitment.CONFIRMED
    record_path: Path = Path("state/token.json")
    wallets_dir: Path = Path("wallets")
    retry_max_attempts: int = 5
    retry_initial_delay: float = 1.0
    retry_multiplier: float = 2.0
    poll_interval: float = 2.0
    request_timeout: float = 30.0
    airdrop_cooldown: float = 2.0
    confirmation_phrase: str = "CONFIRM"

    @property
    def is_mainnet(self) -> bool:
        return self.environment in MAINNET_ENVIRONMENTS

    @classmethod
    def from_env(cls) -> AppSettings:
        environment = os.getenv("TOKENFORGE_ENV", cls.environment).strip().lower()
        endpoint = os.getenv("TOKENFORGE_RPC_ENDPOINT") or DEFAULT_ENDPOINTS.get(environment)
        if not endpoint:
            msg = f"TOKENFORGE_RPC_ENDPOINT is required for environment '{environment}'"
            raise ConfigError(msg)
        raw_commitment = os.getenv("TOKENFORGE_COMMITMENT", cls.commitment.value)
        try:
            commitment = Commitment(raw_commitment.strip().lower())
        except ValueError as exc:
            msg = f"Unsupported commitment level {raw_commitment!r}"
            raise ConfigError(msg) from exc
        return cls(
            environment=environment,
            rpc_endpoint=endpoint,
            commitment=commitment,
            record_path=Path(os.getenv("TOKENFORGE_RECORD_PATH", str(cls.record_path))),
            wallets_dir=Path(os.getenv("TOKENFORGE_WALLETS_DIR", str(cls.wallets_dir))),
            retry_max_attempts=_env_int("TOKENFORGE_RETRY_MAX_ATTEMPTS", cls.retry_max_attempts),
            retry_initial_delay=_env_float("TOKENFORGE_RETRY_INITIAL_DELAY", cls.retry_initial_delay),
            retry_multiplier=_env_float("TOKENFORGE_RETRY_MULTIPLIER", cls.retry_multiplier),
            poll_interval=_env_float("TOKENFORGE_POLL_INTERVAL", cls.poll_interval),
            request_timeout=_env_float("TOKENFORGE_REQUEST_TIMEOUT", cls.request_timeout),
            airdrop_cooldown=_env_float("TOKENFORGE_AIRDROP_COOLDOWN", cls.airdrop_cooldown),
            confirmation_phrase=os.getenv("TOKENFORGE_CONFIRMATION_PHRASE", cls.confirmation_phrase),
        )


__all__ = ["DEFAULT_ENDPOINTS", "MAINNET_ENVIRONMENTS", "AppSettings"]
