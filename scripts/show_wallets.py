#!/usr/bin/env python3
"""Print the public keys of the wallet files without touching the ledger."""

from pathlib import Path

from dotenv import load_dotenv

# Load .env file
_env_path = Path(__file__).parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)

from tokenforge.authority import DEFAULT_ROLE_LABELS, load_wallets
from tokenforge.config import AppSettings


def main() -> None:
    settings = AppSettings.from_env()
    wallets = load_wallets(settings.wallets_dir, required=False)

    print("\nWallet Public Keys:")
    print("------------------")
    for label, wallet in wallets.items():
        roles = [str(role) for role, role_label in DEFAULT_ROLE_LABELS.items() if role_label == label]
        suffix = f" [{', '.join(roles)}]" if roles else ""
        print(f"{label}: {wallet.public_key}{suffix}")


if __name__ == "__main__":
    main()
