from typing import Optional

from episode_feed.core.settings import get_settings
from episode_feed.models.episode import SearchQuery
from episode_feed.paging.data_source import EpisodeStore, EpisodesPagingDataSource, PostsSource


class EpisodesDataSourceFactory:
    """Builds one data source per paging session from shared collaborators."""

    def __init__(
        self,
        api: PostsSource,
        episode_cache: EpisodeStore,
        page_size: Optional[int] = None,
    ):
        self.api = api
        self.episode_cache = episode_cache
        self.page_size = page_size or get_settings().page_size
        self.latest: Optional[EpisodesPagingDataSource] = None

    def create(self, search_query: SearchQuery) -> EpisodesPagingDataSource:
        self.latest = EpisodesPagingDataSource(
            search_query, self.page_size, self.api, self.episode_cache
        )
        return self.latest
