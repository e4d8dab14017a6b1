"""Single-slot episode cache backed by the ``episodes`` table."""

from collections.abc import Sequence

from episode_feed.core.db import get_db
from episode_feed.core.logging import get_logger
from episode_feed.models.episode import Episode
from episode_feed.models.schema import CachedEpisode

logger = get_logger(__name__)


class EpisodeCache:
    """Whole-table cache of the unfiltered first page.

    Every call opens its own session, so the cache can be used from worker
    threads. Only the paging data source is expected to write to it.
    """

    def __init__(self, session_factory=None):
        self._session_factory = session_factory

    def clear(self) -> int:
        with get_db(self._session_factory) as db:
            deleted = db.query(CachedEpisode).delete()
        logger.debug("Cleared %d cached episodes", deleted)
        return deleted

    def insert(self, episodes: Sequence[Episode]) -> None:
        if not episodes:
            return
        with get_db(self._session_factory) as db:
            db.add_all([CachedEpisode.from_episode(episode) for episode in episodes])
        logger.debug("Cached %d episodes", len(episodes))

    def get_episodes(self) -> list[Episode]:
        with get_db(self._session_factory) as db:
            rows = db.query(CachedEpisode).order_by(CachedEpisode.row_id).all()
            return [row.to_episode() for row in rows]
