"""
scripts/init_db.py
────────────────────────────────────────────────────────────────────────
Create the onboarding tables (user_settings, initial_plan_snapshots,
partners) in the database named by DATABASE_URL:

    python -m scripts.init_db            # create missing tables
    python -m scripts.init_db --drop     # drop + recreate (dev only)
"""
from __future__ import annotations

import asyncio
from argparse import ArgumentParser

from dotenv import load_dotenv
load_dotenv()

from services.db import create_all, engine  # noqa: E402


async def _async_main() -> None:
    ap = ArgumentParser()
    ap.add_argument("--drop", action="store_true", help="drop existing tables first")
    args = ap.parse_args()

    await create_all(drop=args.drop)
    await engine().dispose()
    print("✓ onboarding tables ready")


if __name__ == "__main__":  # pragma: no cover
    asyncio.run(_async_main())
