# tests/test_channel.py

import asyncio

import pytest

from discovery.channel import ChannelClosed, KeyChannel


async def test_get_returns_keys_in_order_then_closed():
    channel = KeyChannel()
    await channel.put("a")
    channel.put_nowait("b")
    channel.close()

    assert await channel.get() == "a"
    assert await channel.get() == "b"
    with pytest.raises(ChannelClosed):
        await channel.get()
    # Stays closed
    with pytest.raises(ChannelClosed):
        await channel.get()


async def test_put_after_close_raises():
    channel = KeyChannel()
    channel.close()
    channel.close()
    assert channel.closed
    with pytest.raises(ChannelClosed):
        await channel.put("a")


async def test_get_waits_for_a_key():
    channel = KeyChannel()
    getter = asyncio.create_task(channel.get())
    await asyncio.sleep(0.01)
    assert not getter.done()

    channel.put_nowait("late")
    assert await asyncio.wait_for(getter, timeout=1) == "late"

