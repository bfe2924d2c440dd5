"""
Tests for the rate-limited HTTP client.
"""

from types import SimpleNamespace

import pytest

from infrastructure import http_client as http_module
from infrastructure.http_client import (
    APPLICATION_URLENCODED,
    USER_AGENT,
    HttpClient,
    RetryLimitExceeded,
    Site,
    StatusError,
)
from utils.backoff import exponential_backoff
from utils.rate_limiter import RateLimiter


class FakeResponse:
    def __init__(self, status, body):
        self.status = status
        self._body = body

    async def read(self):
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Replays queued (status, body) pairs and records each request."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []
        self.closed = False

    def request(self, method, url, data=None, headers=None):
        self.requests.append({"method": method, "url": url, "data": data, "headers": headers})
        status, body = self.responses.pop(0)
        return FakeResponse(status, body)

    async def close(self):
        self.closed = True


class SpyLimiter:
    """Stands in for a RateLimiter and records acquisitions."""

    def __init__(self, events, site):
        self.events = events
        self.site = site

    async def acquire_one(self):
        self.events.append(("acquire", self.site))


def roomy_limiters():
    return [RateLimiter(max_tokens=100, refill_interval=1.0) for _ in Site]


@pytest.fixture
def sleeps(monkeypatch):
    recorded = []

    async def fake_sleep(delay):
        recorded.append(delay)

    monkeypatch.setattr(http_module.asyncio, "sleep", fake_sleep)
    return recorded


def test_backoff_schedule():
    delays = exponential_backoff(base=2, factor_ms=500, max_delay_ms=10_000)
    assert [next(delays) for _ in range(8)] == [0.5, 1, 2, 4, 8, 10, 10, 10]


def test_limiter_count_must_match_sites():
    with pytest.raises(ValueError):
        HttpClient(session=FakeSession([]), ratelimiters=[RateLimiter(1, 1.0)])


@pytest.mark.asyncio
async def test_get_sets_user_agent_and_returns_body():
    session = FakeSession([(200, b"payload")])
    client = HttpClient(session=session, ratelimiters=roomy_limiters())

    body = await client.get("https://example.com/a", Site.OSU_AVATAR)

    assert body == b"payload"
    request = session.requests[0]
    assert request["method"] == "GET"
    assert request["headers"]["User-Agent"] == USER_AGENT


@pytest.mark.asyncio
async def test_post_form_is_urlencoded():
    session = FakeSession([(200, b"{}")])
    client = HttpClient(session=session, ratelimiters=roomy_limiters())

    await client.post_form("https://example.com/form", Site.OSU_STATS, {"user": "a b", "mode": 0})

    request = session.requests[0]
    assert request["method"] == "POST"
    assert request["headers"]["Content-Type"] == APPLICATION_URLENCODED
    assert request["data"] == "user=a+b&mode=0"


@pytest.mark.asyncio
async def test_error_status_raises_with_url():
    url = "https://example.com/missing"
    client = HttpClient(session=FakeSession([(404, b"nope")]), ratelimiters=roomy_limiters())

    with pytest.raises(StatusError) as exc_info:
        await client.get(url, Site.OSEKAI)

    assert exc_info.value.status == 404
    assert exc_info.value.url == url
    assert str(exc_info.value) == f"failed with status code 404 when requesting {url}"


@pytest.mark.asyncio
async def test_every_request_waits_on_its_site_limiter():
    events = []
    limiters = [SpyLimiter(events, site) for site in Site]
    session = FakeSession([(200, b"a"), (200, b"b")])

    original_request = session.request

    def recording_request(*args, **kwargs):
        events.append(("request", None))
        return original_request(*args, **kwargs)

    session.request = recording_request
    client = HttpClient(session=session, ratelimiters=limiters)

    await client.get("https://example.com/1", Site.RESPEKTIVE)
    await client.get_discord_attachment(SimpleNamespace(url="https://cdn.example.com/x.osr"))

    assert events == [
        ("acquire", Site.RESPEKTIVE),
        ("request", None),
        ("acquire", Site.DISCORD_ATTACHMENT),
        ("request", None),
    ]


@pytest.mark.asyncio
async def test_map_file_retries_on_429(sleeps):
    session = FakeSession([(429, b""), (429, b""), (429, b""), (200, b"osu file format v14")])
    client = HttpClient(session=session, ratelimiters=roomy_limiters())

    body = await client.get_map_file(123)

    assert body == b"osu file format v14"
    assert sleeps == [0.5, 1, 2]
    assert sum(sleeps) >= 3.5
    assert session.requests[0]["url"] == "https://osu.ppy.sh/osu/123"


@pytest.mark.asyncio
async def test_map_file_nine_retries_then_success(sleeps):
    responses = [(429, b"")] * 9 + [(200, b"data")]
    client = HttpClient(session=FakeSession(responses), ratelimiters=roomy_limiters())

    assert await client.get_map_file(1) == b"data"
    assert sleeps == [0.5, 1, 2, 4, 8, 10, 10, 10, 10]


@pytest.mark.asyncio
async def test_map_file_html_until_retry_limit(sleeps):
    responses = [(200, b"<html><body>rate limited</body></html>")] * 10
    session = FakeSession(responses)
    client = HttpClient(session=session, ratelimiters=roomy_limiters())

    with pytest.raises(RetryLimitExceeded) as exc_info:
        await client.get_map_file(42)

    assert str(exc_info.value) == "reached retry limit and still failed to download 42.osu"
    assert len(session.requests) == 10
    assert len(sleeps) == 9


@pytest.mark.asyncio
async def test_map_file_other_errors_are_not_retried(sleeps):
    session = FakeSession([(500, b"")])
    client = HttpClient(session=session, ratelimiters=roomy_limiters())

    with pytest.raises(StatusError):
        await client.get_map_file(7)

    assert len(session.requests) == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_close_closes_session():
    session = FakeSession([])
    client = HttpClient(session=session, ratelimiters=roomy_limiters())

    await client.close()

    assert session.closed
