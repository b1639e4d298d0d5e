# tests/test_queue.py
"""
Tests for ThrottledQueue and min_interval_for.

Verifies:
  - Spacing formula, including the safety margin.
  - Consecutive starts are at least min_interval apart.
  - Serial, FIFO execution under concurrent submission.
  - A failing task does not block the tasks behind it.
  - pending / is_ready bookkeeping.
"""

from __future__ import annotations

import asyncio
import time

import pytest

from genroute.engine.queue import ThrottledQueue, min_interval_for


class TestMinInterval:
    def test_fifteen_rpm_is_4400ms(self):
        assert min_interval_for(15) == pytest.approx(4.4)

    def test_ten_rpm_is_6600ms(self):
        assert min_interval_for(10) == pytest.approx(6.6)

    def test_rounds_up_to_whole_milliseconds(self):
        # 60000 / 7 * 1.1 = 9428.57...
        assert min_interval_for(7) == pytest.approx(9.429)

    def test_custom_margin(self):
        assert min_interval_for(60, safety_margin=1.0) == pytest.approx(1.0)

    def test_non_positive_rpm_rejected(self):
        with pytest.raises(ValueError):
            min_interval_for(0)


@pytest.mark.asyncio
class TestThrottledQueue:
    async def test_first_task_starts_immediately(self):
        queue = ThrottledQueue("t", min_interval=5.0)
        t0 = time.monotonic()
        result = await queue.submit(lambda: asyncio.sleep(0, result="ok"))
        assert result == "ok"
        assert time.monotonic() - t0 < 1.0

    async def test_consecutive_starts_are_spaced(self):
        queue = ThrottledQueue("t", min_interval=0.05)
        starts: list[float] = []

        async def task():
            starts.append(time.monotonic())

        await asyncio.gather(*(queue.submit(task) for _ in range(4)))
        gaps = [b - a for a, b in zip(starts, starts[1:])]
        assert len(gaps) == 3
        assert all(gap >= 0.045 for gap in gaps)

    async def test_tasks_run_in_submission_order(self):
        queue = ThrottledQueue("t", min_interval=0.01)
        order: list[int] = []

        def make(i: int):
            async def task():
                order.append(i)
                return i

            return task

        results = await asyncio.gather(*(queue.submit(make(i)) for i in range(5)))
        assert order == [0, 1, 2, 3, 4]
        assert results == [0, 1, 2, 3, 4]

    async def test_tasks_never_overlap(self):
        queue = ThrottledQueue("t", min_interval=0.0)
        running = 0
        peak = 0

        async def task():
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1

        await asyncio.gather(*(queue.submit(task) for _ in range(5)))
        assert peak == 1

    async def test_failure_does_not_block_queue(self):
        queue = ThrottledQueue("t", min_interval=0.01)

        async def boom():
            raise RuntimeError("boom")

        async def fine():
            return "fine"

        results = await asyncio.gather(
            queue.submit(boom), queue.submit(fine), return_exceptions=True
        )
        assert isinstance(results[0], RuntimeError)
        assert results[1] == "fine"
        assert queue.pending == 0

    async def test_pending_counts_waiting_and_running(self):
        queue = ThrottledQueue("t", min_interval=0.0)
        gate = asyncio.Event()

        async def blocked():
            await gate.wait()

        tasks = [asyncio.create_task(queue.submit(blocked)) for _ in range(3)]
        await asyncio.sleep(0)
        assert queue.pending == 3
        assert not queue.is_ready()

        gate.set()
        await asyncio.gather(*tasks)
        assert queue.pending == 0

    async def test_is_ready_respects_interval(self):
        now = [100.0]
        queue = ThrottledQueue("t", min_interval=2.0, clock=lambda: now[0])
        assert queue.is_ready()

        await queue.submit(lambda: asyncio.sleep(0))
        assert queue.last_start == 100.0
        assert not queue.is_ready()
        assert queue.delay() == pytest.approx(2.0)

        now[0] = 102.0
        assert queue.is_ready()
