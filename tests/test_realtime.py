from __future__ import annotations

import asyncio

import pytest
from fastapi import WebSocketDisconnect, status

from pustak_api.api.v1.endpoints.realtime import notifications_socket
from pustak_api.services.notifications import ConnectionManager, get_connection_manager


class FakeWebSocket:
    def __init__(self, headers: dict[str, str] | None = None, *, broken: bool = False) -> None:
        self.headers = headers or {}
        self.accepted = False
        self.close_code: int | None = None
        self.frames: list[dict] = []
        self.broken = broken
        self._inbox: asyncio.Queue[str | None] = asyncio.Queue()

    async def accept(self) -> None:
        self.accepted = True

    async def close(self, code: int = 1000) -> None:
        self.close_code = code

    async def send_json(self, data) -> None:
        if self.broken:
            raise RuntimeError("connection closed")
        self.frames.append(data)

    async def receive_text(self) -> str:
        message = await self._inbox.get()
        if message is None:
            raise WebSocketDisconnect(code=1000)
        return message

    def disconnect(self) -> None:
        self._inbox.put_nowait(None)


async def _wait_for_connections(manager: ConnectionManager, member_id: str, expected: int) -> None:
    for _ in range(100):
        if manager.connection_count(member_id) == expected:
            return
        await asyncio.sleep(0.01)
    raise AssertionError(f"expected {expected} connection(s) for {member_id}")


@pytest.mark.asyncio
async def test_send_to_member_fans_out_and_drops_broken_sockets() -> None:
    manager = ConnectionManager()
    healthy = FakeWebSocket()
    second = FakeWebSocket()
    broken = FakeWebSocket(broken=True)
    manager.register("m1", healthy)
    manager.register("m1", second)
    manager.register("m1", broken)
    manager.register("m2", FakeWebSocket())

    delivered = await manager.send_to_member("m1", {"message": "hi"})

    assert delivered == 2
    assert healthy.frames == [{"message": "hi"}]
    assert second.frames == [{"message": "hi"}]
    assert manager.connection_count("m1") == 2
    assert manager.connection_count() == 3
    assert await manager.send_to_member("nobody", {"message": "hi"}) == 0


def test_unregister_is_idempotent() -> None:
    manager = ConnectionManager()
    socket = FakeWebSocket()
    manager.register("m1", socket)

    manager.unregister("m1", socket)
    manager.unregister("m1", socket)

    assert manager.connection_count("m1") == 0


@pytest.mark.asyncio
async def test_socket_registers_member_until_disconnect(session_factory, seed) -> None:
    member = await seed.user()
    member_id = str(member.id)
    manager = get_connection_manager()
    websocket = FakeWebSocket({"x-session-user": member_id})

    async with session_factory() as session:
        task = asyncio.create_task(notifications_socket(websocket, member=None, db=session))
        await _wait_for_connections(manager, member_id, 1)

        assert websocket.accepted is True
        assert await manager.send_to_member(member_id, {"type": "Discount Alert"}) == 1

        websocket.disconnect()
        await task

    assert websocket.frames == [{"type": "Discount Alert"}]
    assert manager.connection_count(member_id) == 0


@pytest.mark.asyncio
async def test_socket_accepts_member_query_parameter(session_factory, seed) -> None:
    member = await seed.user()
    manager = get_connection_manager()
    websocket = FakeWebSocket()

    async with session_factory() as session:
        task = asyncio.create_task(notifications_socket(websocket, member=str(member.id), db=session))
        await _wait_for_connections(manager, str(member.id), 1)
        websocket.disconnect()
        await task

    assert websocket.accepted is True


@pytest.mark.asyncio
async def test_socket_rejects_unknown_identity(session_factory) -> None:
    websocket = FakeWebSocket({"x-session-user": "not-a-user"})

    async with session_factory() as session:
        await notifications_socket(websocket, member=None, db=session)

    assert websocket.accepted is False
    assert websocket.close_code == status.WS_1008_POLICY_VIOLATION
    assert get_connection_manager().connection_count() == 0
