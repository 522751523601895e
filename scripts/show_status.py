#!/usr/bin/env python3
"""Show the persisted lifecycle record and any submission left pending."""

import asyncio
from pathlib import Path

from dotenv import load_dotenv

# Load .env file
_env_path = Path(__file__).parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)

from tokenforge.cli.deps import get_container
from tokenforge.cli.display import render_status


async def main() -> None:
    container = get_container()

    if not await container.store.exists():
        print(f"No lifecycle record at {container.settings.record_path}")
        return

    record = await container.store.load()
    render_status(record)

    pending = record.pending
    if pending is not None:
        height = await container.ledger.get_current_height()
        status = await container.ledger.get_execution_status(pending.signature)
        print(f"Pending {pending.operation}: {pending.signature}")
        print(f"  ledger status: {status.state.value}")
        print(f"  current height {height}, valid through {pending.expiry_height}")


if __name__ == "__main__":
    asyncio.run(main())
