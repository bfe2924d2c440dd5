"""
Tests for the replay render queue and its worker.
"""

import asyncio
from pathlib import Path

import pytest

from domain.models.replay import ReplayData, ReplaySlim, ReplayStatus, TimePoints
from services.replay_queue import ReplayQueue, ReplayWorker


def job(filename="mrekk_-_Freedom_Dive_Osu_2020-01-01.osr", user=42, output_channel=7):
    return ReplayData(
        input_channel=5,
        output_channel=output_channel,
        path=Path("replays") / "1" / filename,
        replay=None,
        time_points=TimePoints(),
        user=user,
    )


class TestModels:
    def test_replay_name(self):
        assert job().replay_name() == "mrekk - Freedom Dive"
        assert job("plain.osr").replay_name() == "plain"
        assert job("no_extension").replay_name() == "no extension"

    def test_accuracy(self):
        replay = ReplaySlim(
            beatmap_hash=None,
            count_300=90,
            count_100=8,
            count_50=1,
            count_geki=0,
            count_katsu=0,
            count_miss=1,
            max_combo=300,
            mods=0,
            player_name="mrekk",
        )

        assert replay.total_hits() == 100
        assert replay.accuracy() == 92.83

    def test_status_display(self):
        assert str(ReplayStatus.waiting()) == "Waiting"
        assert str(ReplayStatus.rendering(42)) == "Rendering (42%)"
        assert str(ReplayStatus.encoding(100)) == "Encoding (100%)"
        assert str(ReplayStatus.uploading()) == "Uploading"

    def test_status_progress_bounds(self):
        with pytest.raises(ValueError):
            ReplayStatus.rendering(101)


class TestQueue:
    @pytest.mark.asyncio
    async def test_push_reports_position(self):
        queue = ReplayQueue()

        assert await queue.push(job(user=1)) == 1
        assert await queue.push(job(user=2)) == 2
        assert len(queue) == 2

    @pytest.mark.asyncio
    async def test_pop_is_fifo_and_keeps_current_visible(self):
        queue = ReplayQueue()
        first, second = job(user=1), job(user=2)
        await queue.push(first)
        await queue.push(second)

        assert await queue.pop() is first
        queue.set_status(ReplayStatus.rendering(10))

        assert queue.peek_all() == [(first, ReplayStatus.rendering(10)), (second, None)]
        third = job(user=3)
        assert await queue.push(third) == 3

        queue.reset_status()
        assert queue.status == ReplayStatus.waiting()
        assert queue.peek_all() == [(second, None), (third, None)]

    @pytest.mark.asyncio
    async def test_pop_waits_for_push(self):
        queue = ReplayQueue()
        waiter = asyncio.create_task(queue.pop())
        await asyncio.sleep(0)
        assert not waiter.done()

        data = job()
        await queue.push(data)

        assert await asyncio.wait_for(waiter, timeout=1) is data


class TestWorker:
    @pytest.mark.asyncio
    async def test_success_is_posted(self):
        queue = ReplayQueue()
        posted = []

        async def renderer(data, q):
            q.set_status(ReplayStatus.rendering(50))
            assert q.peek_all()[0] == (data, ReplayStatus.rendering(50))
            return "https://example.com/video"

        async def poster(channel_id, content):
            posted.append((channel_id, content))

        worker = ReplayWorker(queue, renderer, poster)
        await queue.push(job())
        await worker.process_one()

        assert posted == [(7, "<@42> `mrekk - Freedom Dive` is done: https://example.com/video")]
        assert queue.peek_all() == []
        assert queue.status == ReplayStatus.waiting()

    @pytest.mark.asyncio
    async def test_failure_is_posted_and_queue_moves_on(self, caplog):
        queue = ReplayQueue()
        posted = []

        async def renderer(data, q):
            raise RuntimeError("danser crashed")

        async def poster(channel_id, content):
            posted.append(content)

        worker = ReplayWorker(queue, renderer, poster)
        await queue.push(job("plain.osr"))
        await worker.process_one()

        assert posted == ["<@42> failed to render `plain`"]
        assert "failed to render replay `plain`" in caplog.text
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_poster_failure_is_logged(self, caplog):
        queue = ReplayQueue()

        async def renderer(data, q):
            return "done"

        async def poster(channel_id, content):
            raise RuntimeError("missing access")

        worker = ReplayWorker(queue, renderer, poster)
        await queue.push(job())
        await worker.process_one()

        assert "failed to post render result" in caplog.text

    @pytest.mark.asyncio
    async def test_run_processes_in_order(self):
        queue = ReplayQueue()
        rendered = []
        finished = asyncio.Event()

        async def renderer(data, q):
            rendered.append(data.user)
            if len(rendered) == 3:
                finished.set()
            return "ok"

        async def poster(channel_id, content):
            pass

        worker = ReplayWorker(queue, renderer, poster)
        worker.start()
        for user in (1, 2, 3):
            await queue.push(job(user=user))

        await asyncio.wait_for(finished.wait(), timeout=1)
        await worker.stop()

        assert rendered == [1, 2, 3]
