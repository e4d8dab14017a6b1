"""Item-keyed paging over the episodes API with a single-page offline cache."""

import asyncio
from collections.abc import Sequence
from typing import Optional, Protocol

from episode_feed.core.logging import get_logger
from episode_feed.http_client.episodes_api import UNKNOWN_ERROR, FetchFailure
from episode_feed.models.episode import Episode, PageRequest, SearchQuery
from episode_feed.models.load_state import IDLE, LOADING, Error, Loaded, LoadState
from episode_feed.paging.state_channel import StateChannel
from episode_feed.utils.error_logger import log_error

logger = get_logger(__name__)


class PostsSource(Protocol):
    async def get_posts(
        self,
        search_term: Optional[str],
        category_id: Optional[str],
        created_at_before: Optional[str],
        limit: int,
    ) -> list[Episode]: ...


class EpisodeStore(Protocol):
    def clear(self) -> int: ...

    def insert(self, episodes: Sequence[Episode]) -> None: ...

    def get_episodes(self) -> list[Episode]: ...


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def is_cacheable(cursor: Optional[str], search_query: SearchQuery) -> bool:
    """Only the first page of a query without a category is cached.

    The search term is deliberately not considered.
    """
    return _is_blank(cursor) and _is_blank(search_query.category_id)


class EpisodesPagingDataSource:
    """
    Loads pages of episodes for one search query, newest first.

    Each page is keyed by the date of its last episode. Successful fetches
    always reset the cache, and the first page of a query without a category is
    written back into it. When the API fails, that cached page is served
    instead if the request would have been cacheable.

    Load cycles are serialized per instance, so cache resets never interleave.
    Callers observe progress through ``network_state`` (every load) and
    ``refresh_state`` (initial loads only).
    """

    def __init__(
        self,
        search_query: SearchQuery,
        page_size: int,
        api: PostsSource,
        episode_cache: EpisodeStore,
    ):
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self.search_query = search_query
        self.page_size = page_size
        self.api = api
        self.episode_cache = episode_cache

        self.network_state: StateChannel[LoadState] = StateChannel(IDLE, name="network_state")
        self.refresh_state: StateChannel[LoadState] = StateChannel(IDLE, name="refresh_state")

        self._lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def load_initial(self, requested_key: Optional[str] = None) -> list[Episode]:
        # The first page always starts from the newest episode.
        request = PageRequest(cursor=None, page_size=self.page_size, is_initial=True)
        return await self._dispatch(request)

    async def load_after(self, key: str) -> list[Episode]:
        request = PageRequest(cursor=key, page_size=self.page_size, is_initial=False)
        return await self._dispatch(request)

    async def load_before(self, key: str) -> list[Episode]:
        # Ignored, we only ever append to the initial load.
        return []

    def key_of(self, episode: Episode) -> str:
        return episode.key

    async def close(self) -> None:
        """Cancel outstanding loads. Later loads return nothing."""
        self._closed = True
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"Cancelled {len(tasks)} outstanding episode loads")

    async def _dispatch(self, request: PageRequest) -> list[Episode]:
        if self._closed:
            return []

        task = asyncio.create_task(self._load(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        try:
            return await task
        except asyncio.CancelledError:
            if self._closed and task.cancelled():
                return []
            raise

    def _publish(self, state: LoadState, is_initial: bool) -> None:
        self.network_state.post(state)
        if is_initial:
            self.refresh_state.post(state)

    async def _load(self, request: PageRequest) -> list[Episode]:
        async with self._lock:
            self._publish(LOADING, request.is_initial)

            cacheable = is_cacheable(request.cursor, self.search_query)
            logger.debug(
                f"Loading episodes (cursor={request.cursor!r}, initial={request.is_initial}, "
                f"cacheable={cacheable})"
            )

            try:
                episodes = await self.api.get_posts(
                    self.search_query.search_term,
                    self.search_query.category_id,
                    request.cursor,
                    request.page_size,
                )
            except FetchFailure as failure:
                return await self._fall_back(request, cacheable, failure.message)
            except Exception as e:
                log_error(
                    "paging",
                    e,
                    operation="get_posts",
                    context={"cursor": request.cursor, "initial": request.is_initial},
                )
                return await self._fall_back(request, cacheable, str(e) or UNKNOWN_ERROR)

            await self._reset_cache(episodes, cacheable)

            self._publish(Loaded(len(episodes)), request.is_initial)
            return episodes

    async def _reset_cache(self, episodes: list[Episode], cacheable: bool) -> None:
        def write() -> None:
            self.episode_cache.clear()
            if cacheable:
                self.episode_cache.insert(episodes)

        try:
            await asyncio.to_thread(write)
        except Exception as e:
            log_error("paging", e, operation="cache_write", context={"count": len(episodes)})

    async def _fall_back(
        self, request: PageRequest, cacheable: bool, message: str
    ) -> list[Episode]:
        try:
            cached = await asyncio.to_thread(self.episode_cache.get_episodes)
        except Exception as e:
            log_error("paging", e, operation="cache_read")
            cached = []

        if cacheable and cached:
            logger.warning(f"Episode fetch failed ({message}); serving {len(cached)} cached")
            self._publish(Loaded(len(cached)), request.is_initial)
            return cached

        logger.warning(f"Episode fetch failed (cursor={request.cursor!r}): {message}")
        self._publish(Error(message), request.is_initial)
        return []
