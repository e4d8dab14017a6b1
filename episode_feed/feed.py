"""Accumulates pages from a paging data source the way a list consumer does."""

from typing import Awaitable, Callable, Optional

from episode_feed.core.logging import get_logger
from episode_feed.models.episode import Episode, SearchQuery
from episode_feed.models.load_state import Error, LoadState
from episode_feed.paging.data_source import EpisodesPagingDataSource
from episode_feed.paging.factory import EpisodesDataSourceFactory
from episode_feed.paging.state_channel import StateChannel

logger = get_logger(__name__)


class EpisodeFeed:
    """
    A growing list of episodes for one search query.

    ``start`` loads the first page, ``load_more`` appends the next one and
    ``retry`` repeats whichever load last ended in an error. ``refresh``
    throws the current session away and starts over with a new data source.
    """

    def __init__(self, factory: EpisodesDataSourceFactory, search_query: Optional[SearchQuery] = None):
        self.factory = factory
        self.search_query = search_query or SearchQuery()
        self.data_source: EpisodesPagingDataSource = factory.create(self.search_query)
        self.episodes: list[Episode] = []
        self.end_reached = False
        self._retry: Optional[Callable[[], Awaitable[list[Episode]]]] = None

    @property
    def network_state(self) -> StateChannel[LoadState]:
        return self.data_source.network_state

    @property
    def refresh_state(self) -> StateChannel[LoadState]:
        return self.data_source.refresh_state

    async def start(self) -> list[Episode]:
        page = await self.data_source.load_initial(None)
        self.episodes = list(page)
        self.end_reached = False
        self._after_load(page, self.start)
        return page

    async def load_more(self) -> list[Episode]:
        if not self.episodes or self.end_reached:
            return []
        key = self.data_source.key_of(self.episodes[-1])
        page = await self.data_source.load_after(key)
        self.episodes.extend(page)
        self._after_load(page, self.load_more)
        return page

    async def retry(self) -> list[Episode]:
        if self._retry is None:
            return []
        retry, self._retry = self._retry, None
        logger.info("Retrying failed episode load")
        return await retry()

    async def refresh(self) -> list[Episode]:
        await self.data_source.close()
        self.data_source = self.factory.create(self.search_query)
        self.episodes = []
        self._retry = None
        return await self.start()

    async def close(self) -> None:
        await self.data_source.close()

    def _after_load(self, page: list[Episode], operation) -> None:
        if isinstance(self.network_state.value, Error):
            self._retry = operation
            return
        self._retry = None
        if len(page) < self.data_source.page_size:
            self.end_reached = True
