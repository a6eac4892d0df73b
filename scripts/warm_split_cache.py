"""
Warm the split cache for a set of receipts and report which ones have splits.

Usage: python scripts/warm_split_cache.py <receipt_id> [<receipt_id> ...]
"""

import asyncio
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

from receipt_split.config import SplitSettings
from receipt_split.sync.backend import HttpSplitBackend
from receipt_split.sync.cache import SplitCache
from receipt_split.utils.logging_config import logger


async def warm(receipt_ids):
    settings = SplitSettings.from_env()
    backend = HttpSplitBackend(settings)
    cache = SplitCache(backend, max_concurrent=settings.cache_max_concurrent)
    try:
        await cache.warm(receipt_ids)
    finally:
        await backend.aclose()

    for receipt_id in receipt_ids:
        view = cache.view(receipt_id)
        if view is None:
            print(f"{receipt_id}: no split")
            continue
        names = ", ".join(p.name for p in view.participants)
        print(f"{receipt_id}: split {view.split_id} shared by {names}")


def main():
    receipt_ids = sys.argv[1:]
    if not receipt_ids:
        print(__doc__.strip())
        sys.exit(1)
    logger.info(f"Warming split cache for {len(receipt_ids)} receipts")
    asyncio.run(warm(receipt_ids))


if __name__ == "__main__":
    main()
