"""
Unit tests for the bounded chunk channel.
"""

import asyncio
import pytest

from pcanalys.services.recommendation.channel import ChunkChannel


def run(coro):
    return asyncio.run(coro)


class TestChunkChannel:

    def test_chunks_arrive_in_order(self):
        async def scenario():
            channel = ChunkChannel(capacity=3)
            for chunk in ("a", "b", "c"):
                assert await channel.send(chunk)
            channel.finish()
            return [await channel.receive() for _ in range(4)]

        assert run(scenario()) == ["a", "b", "c", None]

    def test_receive_after_finish_keeps_returning_none(self):
        async def scenario():
            channel = ChunkChannel()
            channel.finish()
            channel.finish()
            return await channel.receive(), await channel.receive()

        assert run(scenario()) == (None, None)

    def test_send_waits_for_free_slot(self):
        async def scenario():
            channel = ChunkChannel(capacity=1)
            assert await channel.send("first")
            pending = asyncio.ensure_future(channel.send("second"))
            await asyncio.sleep(0.01)
            assert not pending.done()

            assert await channel.receive() == "first"
            assert await asyncio.wait_for(pending, timeout=1) is True
            assert await channel.receive() == "second"

        run(scenario())

    def test_close_releases_blocked_sender(self):
        async def scenario():
            channel = ChunkChannel(capacity=1)
            await channel.send("first")
            pending = asyncio.ensure_future(channel.send("second"))
            await asyncio.sleep(0.01)
            channel.close()
            return await asyncio.wait_for(pending, timeout=1)

        assert run(scenario()) is False

    def test_send_after_close_is_refused(self):
        async def scenario():
            channel = ChunkChannel()
            channel.close()
            return channel.closed, await channel.send("late")

        assert run(scenario()) == (True, False)

    def test_finish_never_blocks_on_full_channel(self):
        async def scenario():
            channel = ChunkChannel(capacity=1)
            await channel.send("only")
            channel.finish()
            assert channel.finished
            assert not await channel.send("after finish")
            return await channel.receive(), await channel.receive()

        assert run(scenario()) == ("only", None)

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            ChunkChannel(capacity=0)
