"""Tests for bounded batch execution."""

import asyncio

import pytest

from strata.batch import Failed, Ok, run_bounded


class TestRunBounded:
    @pytest.mark.asyncio
    async def test_collects_values_in_order(self):
        async def unit(i: int) -> int:
            await asyncio.sleep(0.001 * (5 - i))
            return i * 2

        outcomes = await run_bounded([lambda i=i: unit(i) for i in range(5)], limit=2)
        assert outcomes == [Ok(0), Ok(2), Ok(4), Ok(6), Ok(8)]

    @pytest.mark.asyncio
    async def test_failure_does_not_abort_batch(self):
        async def boom() -> int:
            raise OSError("too many open files")

        async def fine() -> int:
            return 1

        outcomes = await run_bounded([fine, boom, fine, boom, fine], limit=2)
        assert [type(o) for o in outcomes] == [Ok, Failed, Ok, Failed, Ok]
        assert isinstance(outcomes[1].error, OSError)

    @pytest.mark.asyncio
    async def test_synchronous_raise_is_a_failure(self):
        def broken():
            raise ValueError("bad unit")

        outcomes = await run_bounded([broken], limit=1)
        assert isinstance(outcomes[0], Failed)
        assert isinstance(outcomes[0].error, ValueError)

    @pytest.mark.asyncio
    async def test_concurrency_never_exceeds_limit(self):
        in_flight = 0
        peak = 0

        async def unit() -> None:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.001)
            in_flight -= 1

        await run_bounded([unit] * 25, limit=10)
        assert peak == 10

    @pytest.mark.asyncio
    async def test_next_chunk_waits_for_whole_chunk(self):
        events: list[str] = []

        async def slow() -> None:
            await asyncio.sleep(0.02)
            events.append("slow-done")

        async def fast() -> None:
            events.append("fast-start")

        await run_bounded([slow, fast], limit=1)
        assert events == ["slow-done", "fast-start"]

    @pytest.mark.asyncio
    async def test_empty(self):
        assert await run_bounded([], limit=10) == []

    @pytest.mark.asyncio
    async def test_invalid_limit(self):
        with pytest.raises(ValueError):
            await run_bounded([], limit=0)
