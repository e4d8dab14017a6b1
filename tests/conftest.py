"""Test configuration and fixtures."""
import asyncio
from datetime import date, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import episode_feed.models.schema  # noqa: F401
from episode_feed.core.db import Base
from episode_feed.models.episode import Episode
from episode_feed.repositories.episode_cache import EpisodeCache


@pytest.fixture
def test_db():
    """Create an in-memory cache database shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(test_db):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_db)


@pytest.fixture
def episode_cache(session_factory):
    return EpisodeCache(session_factory)


@pytest.fixture
def make_episodes():
    """Factory for pages of episodes dated one day apart, newest first."""

    def _make(count: int, newest: date = date(2020, 1, 31), prefix: str = "ep") -> list[Episode]:
        return [
            Episode(
                id=f"{prefix}-{i}",
                date=(newest - timedelta(days=i)).isoformat(),
                title=f"Episode {prefix} {i}",
            )
            for i in range(count)
        ]

    return _make


class FakeEpisodesApi:
    """Scripted stand-in for EpisodesApi.

    Each queued response is either a list of episodes or an exception to raise.
    When ``gate`` is set, every call waits on it before answering.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls: list[tuple] = []
        self.gate: asyncio.Event | None = None
        self.started = asyncio.Event()
        self.in_flight = 0
        self.max_in_flight = 0

    def queue(self, *responses) -> None:
        self.responses.extend(responses)

    async def get_posts(self, search_term, category_id, created_at_before, limit):
        self.calls.append((search_term, category_id, created_at_before, limit))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.started.set()
        try:
            if self.gate is not None:
                await self.gate.wait()
            else:
                await asyncio.sleep(0)
            response = self.responses.pop(0)
        finally:
            self.in_flight -= 1
        if isinstance(response, BaseException):
            raise response
        return response


@pytest.fixture
def fake_api():
    return FakeEpisodesApi()
