"""
Outbound HTTP client with per-site rate limiting.

Every request waits on the rate limiter of its `Site` before it is sent.
"""

from __future__ import annotations

import asyncio
import logging
from enum import IntEnum
from urllib.parse import urlencode

import aiohttp

from utils.backoff import exponential_backoff
from utils.rate_limiter import RateLimiter

logger = logging.getLogger("shishabot.http")

USER_AGENT = "shishabot"
OSU_BASE = "https://osu.ppy.sh/"
APPLICATION_URLENCODED = "application/x-www-form-urlencoded"

MAP_FILE_ATTEMPTS = 10
HTML_SENTINEL = b"<html>"
TOO_MANY_REQUESTS = 429


class Site(IntEnum):
    DISCORD_ATTACHMENT = 0
    HUISMETBENEN = 1
    OSEKAI = 2
    OSU_AVATAR = 3
    OSU_BADGE = 4
    OSU_MAP_FILE = 5
    OSU_MAPSET_COVER = 6
    OSU_STATS = 7
    OSU_TRACKER = 8
    RESPEKTIVE = 9


# Requests per second, indexed by Site
SITE_LIMITS: dict[Site, int] = {
    Site.DISCORD_ATTACHMENT: 2,
    Site.HUISMETBENEN: 2,
    Site.OSEKAI: 2,
    Site.OSU_AVATAR: 10,
    Site.OSU_BADGE: 10,
    Site.OSU_MAP_FILE: 5,
    Site.OSU_MAPSET_COVER: 10,
    Site.OSU_STATS: 2,
    Site.OSU_TRACKER: 2,
    Site.RESPEKTIVE: 1,
}


class StatusError(Exception):
    def __init__(self, status: int, url: str):
        super().__init__(f"failed with status code {status} when requesting {url}")
        self.status = status
        self.url = url


class RetryLimitExceeded(Exception):
    def __init__(self, map_id: int):
        super().__init__(f"reached retry limit and still failed to download {map_id}.osu")
        self.map_id = map_id


class HttpClient:
    """
    Pooled aiohttp client.

    The session is created lazily so the client can be constructed outside
    a running loop. Tests pass their own `session`.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        ratelimiters: list[RateLimiter] | None = None,
    ):
        self._session = session
        self.ratelimiters = ratelimiters or [
            RateLimiter.per_second(SITE_LIMITS[site]) for site in Site
        ]
        if len(self.ratelimiters) != len(Site):
            raise ValueError(f"expected {len(Site)} rate limiters, got {len(self.ratelimiters)}")

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                headers={"User-Agent": USER_AGENT},
                timeout=aiohttp.ClientTimeout(total=60, connect=10),
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def _ratelimit(self, site: Site) -> None:
        await self.ratelimiters[site].acquire_one()

    async def _make_request(
        self,
        method: str,
        url: str,
        site: Site,
        data: str | None = None,
        content_type: str | None = None,
    ) -> bytes:
        logger.debug(f"{method} request of url {url}")

        headers = {"User-Agent": USER_AGENT}
        if content_type is not None:
            headers["Content-Type"] = content_type

        await self._ratelimit(site)

        async with self._get_session().request(method, url, data=data, headers=headers) as response:
            if 400 <= response.status < 600:
                raise StatusError(response.status, url)
            return await response.read()

    async def get(self, url: str, site: Site) -> bytes:
        return await self._make_request("GET", url, site)

    async def post_form(self, url: str, site: Site, form: dict) -> bytes:
        return await self._make_request(
            "POST", url, site, data=urlencode(form), content_type=APPLICATION_URLENCODED
        )

    async def get_discord_attachment(self, attachment) -> bytes:
        return await self.get(attachment.url, Site.DISCORD_ATTACHMENT)

    async def get_map_file(self, map_id: int) -> bytes:
        """
        Download a .osu file.

        Retries with exponential backoff while osu! answers 429 or serves an
        html page instead of the file. Any other outcome returns immediately.
        """
        url = f"{OSU_BASE}osu/{map_id}"
        delays = exponential_backoff(base=2, factor_ms=500, max_delay_ms=10_000)

        for attempt in range(1, MAP_FILE_ATTEMPTS + 1):
            try:
                body = await self.get(url, Site.OSU_MAP_FILE)
            except StatusError as err:
                if err.status != TOO_MANY_REQUESTS:
                    raise
            else:
                if not body.startswith(HTML_SENTINEL):
                    return body

            if attempt == MAP_FILE_ATTEMPTS:
                break

            delay = next(delays)
            logger.debug(f"Request beatmap retry attempt #{attempt} | Backoff {delay}s")
            await asyncio.sleep(delay)

        raise RetryLimitExceeded(map_id)
