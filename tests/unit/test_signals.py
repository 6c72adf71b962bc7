from __future__ import annotations

import pytest
import pytest_asyncio

from tests.conftest import build_harness, settle


@pytest_asyncio.fixture
async def active():
    h = build_harness()
    assert await h.session.select_room(42) is True
    return h


@pytest.mark.asyncio
async def test_typing_auto_clears_after_idle(active):
    h = active

    assert await h.session.send_typing(True) is True
    h.scheduler.advance(3.0)
    await settle()

    assert [f["is_typing"] for f in h.connector.last.frames("typing")] == [True, False]


@pytest.mark.asyncio
async def test_repeated_typing_rearms_idle_timer(active):
    h = active

    await h.session.send_typing(True)
    h.scheduler.advance(2.0)
    await h.session.send_typing(True)
    h.scheduler.advance(2.0)
    await settle()

    assert [f["is_typing"] for f in h.connector.last.frames("typing")] == [True, True]

    h.scheduler.advance(1.0)
    await settle()

    assert [f["is_typing"] for f in h.connector.last.frames("typing")] == [True, True, False]


@pytest.mark.asyncio
async def test_explicit_stop_cancels_auto_clear(active):
    h = active

    await h.session.send_typing(True)
    await h.session.send_typing(False)
    h.scheduler.advance(10.0)
    await settle()

    assert [f["is_typing"] for f in h.connector.last.frames("typing")] == [True, False]
    assert h.scheduler.armed == []


@pytest.mark.asyncio
async def test_typing_without_socket_is_not_sent():
    h = build_harness()

    assert await h.session.send_typing(True) is False
    assert h.scheduler.armed == []


@pytest.mark.asyncio
async def test_read_receipt_frame(active):
    h = active

    assert await h.session.send_read_receipt(101) is True

    assert h.connector.last.frames("read_receipt") == [
        {"type": "read_receipt", "message_id": 101, "sender_id": "u1"}
    ]


@pytest.mark.asyncio
async def test_read_receipt_requires_user(active):
    h = active
    h.auth.user_id = None

    assert await h.session.send_read_receipt(101) is False
    assert h.connector.last.frames("read_receipt") == []


@pytest.mark.asyncio
async def test_room_switch_cancels_typing_timer(active):
    h = active
    await h.session.send_typing(True)
    first = h.connector.last

    await h.session.select_room(43)
    h.scheduler.advance(5.0)
    await settle()

    assert [f["is_typing"] for f in first.frames("typing")] == [True]
    assert h.connector.last.frames("typing") == []
