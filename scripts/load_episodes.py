#!/usr/bin/env python3
"""
Load a few pages of episodes and print them along with the final load states.
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add the parent directory to the path so we can import from episode_feed
sys.path.append(str(Path(__file__).parent.parent))

from episode_feed.core.db import create_tables
from episode_feed.core.logging import setup_logging
from episode_feed.feed import EpisodeFeed
from episode_feed.http_client.episodes_api import EpisodesApi
from episode_feed.models.episode import SearchQuery
from episode_feed.paging.factory import EpisodesDataSourceFactory
from episode_feed.repositories.episode_cache import EpisodeCache


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Page through podcast episodes")
    parser.add_argument("--search", help="Free-text search term")
    parser.add_argument("--category", help="Category id to filter on")
    parser.add_argument("--pages", type=int, default=1, help="Number of pages to load")
    parser.add_argument("--page-size", type=int, default=None, help="Episodes per page")
    return parser.parse_args(argv)


async def load_episodes(args) -> int:
    create_tables()

    async with EpisodesApi() as api:
        factory = EpisodesDataSourceFactory(api, EpisodeCache(), page_size=args.page_size)
        feed = EpisodeFeed(factory, SearchQuery(search_term=args.search, category_id=args.category))

        await feed.start()
        for _ in range(args.pages - 1):
            if not await feed.load_more():
                break
        await feed.close()

    for episode in feed.episodes:
        print(f"{episode.key or '-':<28} {episode.title or '(untitled)'}")

    print(f"\nLoaded {len(feed.episodes)} episodes")
    print(f"Network state: {feed.network_state.value}")
    print(f"Refresh state: {feed.refresh_state.value}")
    return 0 if feed.episodes else 1


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(load_episodes(parse_args())))
