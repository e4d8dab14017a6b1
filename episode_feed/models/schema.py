from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Integer, String

from episode_feed.core.db import Base
from episode_feed.models.episode import Episode


class CachedEpisode(Base):
    __tablename__ = "episodes"

    # Autoincrement row id keeps insertion order
    row_id = Column(Integer, primary_key=True, autoincrement=True)
    episode_id = Column(String(64), nullable=False, index=True)
    date = Column(String(64), nullable=True, index=True)
    title = Column(String(500), nullable=True)

    # Full API payload, aliases included
    payload = Column(JSON, default=dict, nullable=False)

    cached_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    @classmethod
    def from_episode(cls, episode: Episode) -> "CachedEpisode":
        return cls(
            episode_id=episode.id,
            date=episode.date,
            title=episode.title,
            payload=episode.to_payload(),
        )

    def to_episode(self) -> Episode:
        return Episode.model_validate(self.payload)

    def __repr__(self):
        return f"<CachedEpisode(episode_id={self.episode_id}, date={self.date})>"
