#!/usr/bin/env python3
"""Rebuild the projects/posts index lists from the stored records.

Run while no employer is publishing: each index is rewritten wholesale.
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from egisedge.core.config import get_settings
from egisedge.core.telemetry import configure_api_logging
from egisedge.services.content import ContentRepository, PostRepository, ProjectRepository
from egisedge.services.kv_store import get_kv_store

logger = logging.getLogger("rebuild_indexes")

REPOSITORIES: dict[str, type[ContentRepository]] = {
    "projects": ProjectRepository,
    "posts": PostRepository,
}


async def rebuild(kinds: list[str]) -> dict[str, int]:
    store = get_kv_store()
    counts: dict[str, int] = {}
    try:
        for kind in kinds:
            counts[kind] = await REPOSITORIES[kind](store).rebuild_index()
            logger.info("rebuilt %s index entries=%s", kind, counts[kind])
    finally:
        await store.close()
    return counts


def main() -> None:
    parser = argparse.ArgumentParser(description="Rebuild content index lists in the KV store.")
    parser.add_argument(
        "kinds",
        nargs="*",
        help="Collections to rebuild: projects, posts (default: all)",
    )
    args = parser.parse_args()
    unknown = sorted(set(args.kinds) - set(REPOSITORIES))
    if unknown:
        parser.error(f"unknown collections: {unknown}")

    configure_api_logging(get_settings())
    counts = asyncio.run(rebuild(args.kinds or sorted(REPOSITORIES)))
    for kind, count in counts.items():
        print(f"{kind}: {count}")


if __name__ == "__main__":
    main()
