"""Tests for EpisodesApi request building, retries and failure mapping."""

import httpx
import pytest

from episode_feed.core.settings import Settings
from episode_feed.http_client.episodes_api import EpisodesApi, FetchFailure

BASE_URL = "https://api.test/api"


def make_api(handler, max_retries: int = 3) -> EpisodesApi:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return EpisodesApi(base_url=BASE_URL, max_retries=max_retries, backoff_seconds=0, client=client)


def post(post_id: str, date: str | None = "2020-01-05T10:00:00.000Z") -> dict:
    return {
        "_id": post_id,
        "date": date,
        "title": {"rendered": f"Episode {post_id}"},
        "excerpt": {"rendered": "<p>About things</p>"},
        "mp3": f"https://cdn.test/{post_id}.mp3",
        "featuredImage": f"https://cdn.test/{post_id}.png",
        "categories": [1, 2],
    }


@pytest.mark.asyncio
async def test_get_posts_builds_query_and_parses_page():
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=[post("a"), post("b", date=None)])

    api = make_api(handler)
    episodes = await api.get_posts("rust", None, "2020-01-05", 10)
    await api.close()

    assert len(requests) == 1
    url = requests[0].url
    assert url.path == "/api/posts"
    assert dict(url.params) == {"search": "rust", "createdAtBefore": "2020-01-05", "limit": "10"}
    assert [episode.id for episode in episodes] == ["a", "b"]
    assert episodes[0].title == "Episode a"
    assert episodes[0].thumbnail_url == "https://cdn.test/a.png"
    assert episodes[0].categories == ["1", "2"]
    assert episodes[1].key == ""


@pytest.mark.asyncio
async def test_category_is_sent_as_categories_param():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.url.params)
        return httpx.Response(200, json=[])

    api = make_api(handler)
    assert await api.get_posts(None, "devops", None, 20) == []
    assert seen == {"categories": "devops", "limit": "20"}


@pytest.mark.asyncio
async def test_client_error_is_not_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(404, text="Not found")

    api = make_api(handler)
    with pytest.raises(FetchFailure) as exc_info:
        await api.get_posts(None, None, None, 10)

    assert exc_info.value.message == "Not found"
    assert exc_info.value.status_code == 404
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_server_error_is_retried_then_reported():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503, text="Service Unavailable")

    api = make_api(handler, max_retries=3)
    with pytest.raises(FetchFailure) as exc_info:
        await api.get_posts(None, None, None, 10)

    assert exc_info.value.message == "Service Unavailable"
    assert exc_info.value.status_code == 503
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_server_error_recovers_on_retry():
    responses = [httpx.Response(502), httpx.Response(200, json=[post("a")])]

    def handler(request: httpx.Request) -> httpx.Response:
        return responses.pop(0)

    api = make_api(handler)
    episodes = await api.get_posts(None, None, None, 10)

    assert [episode.id for episode in episodes] == ["a"]
    assert responses == []


@pytest.mark.asyncio
async def test_empty_error_body_maps_to_unknown_error():
    api = make_api(lambda request: httpx.Response(500))

    with pytest.raises(FetchFailure) as exc_info:
        await api.get_posts(None, None, None, 10)

    assert exc_info.value.message == "Unknown error"


@pytest.mark.asyncio
async def test_transport_error_is_retried_then_reported():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    api = make_api(handler, max_retries=2)
    with pytest.raises(FetchFailure) as exc_info:
        await api.get_posts(None, None, None, 10)

    assert "connection refused" in exc_info.value.message
    assert exc_info.value.status_code is None
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_empty_success_body_is_an_empty_page():
    api = make_api(lambda request: httpx.Response(200))

    assert await api.get_posts(None, None, None, 10) == []


@pytest.mark.asyncio
async def test_non_list_body_is_a_failure():
    api = make_api(lambda request: httpx.Response(200, json={"error": "nope"}))

    with pytest.raises(FetchFailure, match="Expected a list"):
        await api.get_posts(None, None, None, 10)


@pytest.mark.asyncio
async def test_invalid_episode_is_a_failure():
    api = make_api(lambda request: httpx.Response(200, json=[{"title": "no id"}]))

    with pytest.raises(FetchFailure, match="Malformed"):
        await api.get_posts(None, None, None, 10)


@pytest.mark.asyncio
async def test_close_closes_client():
    api = make_api(lambda request: httpx.Response(200, json=[]))
    client = api._get_client()

    async with api:
        await api.get_posts(None, None, None, 10)

    assert client.is_closed
    assert api._client is None


def test_defaults_come_from_settings(mocker):
    mocker.patch(
        "episode_feed.http_client.episodes_api.get_settings",
        return_value=Settings(
            _env_file=None,
            api_base_url="https://configured.test/api/",
            http_timeout_seconds=5,
            http_max_retries=4,
            http_user_agent="FeedTest/1.0",
        ),
    )

    api = EpisodesApi()

    assert api.base_url == "https://configured.test/api"
    assert api.timeout == 5
    assert api.max_retries == 4
    assert api.headers["User-Agent"] == "FeedTest/1.0"


@pytest.mark.asyncio
async def test_zero_retries_makes_a_single_attempt():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503, text="Service Unavailable")

    api = make_api(handler, max_retries=0)
    with pytest.raises(FetchFailure):
        await api.get_posts(None, None, None, 10)

    assert api.max_retries == 1
    assert len(calls) == 1
