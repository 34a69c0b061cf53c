"""Script to clear cached retailer views."""

import asyncio
import pathlib
import sys

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))

from retailer_desk.core.cache import CacheStore
from retailer_desk.services.retailers import RETAILER_FAMILY


async def clear_cache():
    """Bump the retailer generation and sweep every retailer key."""
    cache = CacheStore.from_settings()
    await cache.connect()
    try:
        print(f"Clearing retailer cache ({cache.backend})...")
        count = await cache.invalidate_family(RETAILER_FAMILY)
        print(f"Cleared {count} cache entries")
    finally:
        await cache.close()


if __name__ == "__main__":
    asyncio.run(clear_cache())
