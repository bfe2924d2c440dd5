"""
Replay render queue.

Commands push jobs; a single `ReplayWorker` takes them in order, hands them
to the renderer and posts the outcome to the job's output channel. The
renderer reports its progress through `ReplayQueue.set_status`.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable

from domain.models.replay import ReplayData, ReplayStatus

logger = logging.getLogger("shishabot.services.replay_queue")

# (job, queue) -> rendered output, either a link or a file path
Renderer = Callable[[ReplayData, "ReplayQueue"], Awaitable[str]]
# (channel id, content) -> None
Poster = Callable[[int, str], Awaitable[None]]


class ReplayQueue:
    def __init__(self):
        self._pending: deque[ReplayData] = deque()
        self._current: ReplayData | None = None
        self._status = ReplayStatus.waiting()
        self._cond = asyncio.Condition()

    def __len__(self) -> int:
        return len(self._pending) + (self._current is not None)

    async def push(self, data: ReplayData) -> int:
        """Append a job. Returns its 1-based position in the queue."""
        async with self._cond:
            self._pending.append(data)
            self._cond.notify()
            return len(self)

    async def pop(self) -> ReplayData:
        """
        Wait for the next job and mark it as in progress.

        The job stays visible in `peek_all` until `reset_status` is called.
        """
        async with self._cond:
            await self._cond.wait_for(lambda: bool(self._pending))
            self._current = self._pending.popleft()
            self._status = ReplayStatus.waiting()
            return self._current

    def peek_all(self) -> list[tuple[ReplayData, ReplayStatus | None]]:
        """Snapshot of the queue; only the job in progress has a status."""
        entries: list[tuple[ReplayData, ReplayStatus | None]] = []
        if self._current is not None:
            entries.append((self._current, self._status))
        entries.extend((data, None) for data in self._pending)
        return entries

    @property
    def status(self) -> ReplayStatus:
        return self._status

    def set_status(self, status: ReplayStatus) -> None:
        self._status = status

    def reset_status(self) -> None:
        """Finish the job in progress."""
        self._current = None
        self._status = ReplayStatus.waiting()


class ReplayWorker:
    """Processes queued jobs one at a time."""

    def __init__(self, queue: ReplayQueue, renderer: Renderer, poster: Poster):
        self.queue = queue
        self.renderer = renderer
        self.poster = poster
        self._task: asyncio.Task | None = None

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def process_one(self) -> None:
        data = await self.queue.pop()
        name = data.replay_name()
        logger.info(f"Rendering replay `{name}` for user {data.user}")

        try:
            output = await self.renderer(data, self.queue)
        except Exception as exc:
            logger.error(f"failed to render replay `{name}`: {exc}", exc_info=True)
            content = f"<@{data.user}> failed to render `{name}`"
        else:
            content = f"<@{data.user}> `{name}` is done: {output}"
        finally:
            self.queue.reset_status()

        try:
            await self.poster(data.output_channel, content)
        except Exception as exc:
            logger.error(f"failed to post render result of `{name}`: {exc}", exc_info=True)

    async def run(self) -> None:
        while True:
            await self.process_one()
