#!/usr/bin/env python3
"""
Delete every order of one shop and reset its order counter to 0.
Aggregated sales stats are kept.

Usage examples:
  - Dry run (show how many orders would be removed):
      python scripts/reset_orders.py --shop 버거킹 --dry-run

  - Remove without interactive prompt:
      python scripts/reset_orders.py --shop 버거킹 --yes

  - Default (asks for confirmation):
      python scripts/reset_orders.py --shop 버거킹

A run interrupted halfway can simply be started again.
"""

import asyncio
import os
import sys
import argparse

# Ensure project root is on sys.path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
from data.config import SHOPS, RESET_BATCH_SIZE
from data.database import db
from data.operations import reset_orders


async def reset_shop(shop: str, non_interactive: bool, dry_run: bool, batch_size: int) -> None:
    # Load environment variables from .env
    load_dotenv()

    # Connect to database
    await db.connect()
    try:
        current_count = await db.orders.count_documents({"shop": shop})
        if dry_run:
            print(f"[DRY RUN] Orders of {shop}: {current_count}. No changes made.")
            return

        if not non_interactive:
            answer = input(
                f"You are about to permanently delete {current_count} orders of {shop}. Continue? [y/N]: "
            ).strip().lower()
            if answer not in {"y", "yes"}:
                print("Aborted.")
                return

        deleted = await reset_orders(shop, batch_size=batch_size)
        print(f"✅ Removed {deleted} orders of {shop}; order counter reset to 0.")
    finally:
        await db.disconnect()


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reset a shop's order list")
    parser.add_argument("--shop", required=True, choices=SHOPS, help="Shop whose orders are removed")
    parser.add_argument(
        "--yes",
        action="store_true",
        help="Do not prompt for confirmation (non-interactive mode)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show how many orders would be removed without deleting anything",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=RESET_BATCH_SIZE,
        help="Orders deleted per batch",
    )
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    asyncio.run(reset_shop(args.shop, non_interactive=args.yes, dry_run=args.dry_run, batch_size=args.batch_size))
