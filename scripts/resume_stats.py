#!/usr/bin/env python3
"""
Finish aggregations that were claimed but not applied to every accumulator
(e.g. the bot crashed between the daily and the monthly update).

Usage:
    python scripts/resume_stats.py [--shop 버거킹]
"""

import asyncio
import sys
import os
import argparse

# Ensure project root is on sys.path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
from data.database import db
from bot.aggregator import StatsAggregator

load_dotenv()


async def resume(shop):
    await db.connect()
    try:
        resumed = await StatsAggregator().resume_pending(shop)
        print(f"✅ Resumed {resumed} partially aggregated orders.")
    finally:
        await db.disconnect()


def parse_args():
    parser = argparse.ArgumentParser(description="Resume partially applied order aggregations")
    parser.add_argument("--shop", help="Only resume orders of this shop")
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    asyncio.run(resume(args.shop))
