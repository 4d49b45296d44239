from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest
from sqlalchemy import select

from pustak_api.models.notification import Notification
from pustak_api.observability.fulfillment import get_fulfillment_store
from pustak_api.services.notifications import (
    InMemoryPushBackend,
    NotificationService,
    WebSocketPushBackend,
    get_connection_manager,
    serialize_notification,
)


class ExplodingBackend:
    async def send_push(self, recipient, title, body, *, metadata=None) -> int:
        raise ConnectionError("socket reset")


class SlowBackend:
    async def send_push(self, recipient, title, body, *, metadata=None) -> int:
        await asyncio.sleep(5)
        return 1


class FakeSocket:
    def __init__(self) -> None:
        self.frames: list[dict] = []

    async def send_json(self, data) -> None:
        self.frames.append(data)


@pytest.mark.asyncio
async def test_emit_persists_and_pushes(session_factory, seed) -> None:
    member = await seed.user()
    backend = InMemoryPushBackend()

    async with session_factory() as session:
        service = NotificationService(session, backend=backend)
        notification = await service.emit(member.id, "Your order is ready", notification_type="Order Update")

    async with session_factory() as session:
        stored = (await session.execute(select(Notification))).scalars().one()

    assert stored.id == notification.id
    assert stored.is_read is False
    assert stored.created_at is not None
    assert backend.sent_messages[0]["body"] == "Your order is ready"
    assert backend.sent_messages[0]["metadata"]["id"] == str(notification.id)
    assert len(service.sent_events) == 1
    assert get_fulfillment_store().snapshot().pushes == {"delivered": 1}


@pytest.mark.asyncio
async def test_emit_without_live_connection_still_persists(session_factory, seed) -> None:
    member = await seed.user()

    async with session_factory() as session:
        service = NotificationService(session, backend=InMemoryPushBackend(connected=False))
        await service.emit(member.id, "Discount unlocked", notification_type="Discount Alert")
        assert service.sent_events == []

    async with session_factory() as session:
        stored = list((await session.execute(select(Notification))).scalars())

    assert len(stored) == 1
    assert get_fulfillment_store().snapshot().pushes == {"no_connection": 1}


@pytest.mark.asyncio
@pytest.mark.parametrize("backend", [ExplodingBackend(), SlowBackend()])
async def test_push_failures_are_swallowed(session_factory, seed, backend) -> None:
    member = await seed.user()

    async with session_factory() as session:
        service = NotificationService(session, backend=backend, push_timeout_seconds=0.05)
        notification = await service.record(member.id, "Hello", notification_type="Discount Alert")
        await session.commit()
        delivered = await service.deliver(notification)

    assert delivered is False
    assert get_fulfillment_store().snapshot().pushes == {"failed": 1}

    async with session_factory() as session:
        assert len(list((await session.execute(select(Notification))).scalars())) == 1


@pytest.mark.asyncio
async def test_websocket_backend_reaches_registered_socket(session_factory, seed) -> None:
    member = await seed.user()
    socket = FakeSocket()
    manager = get_connection_manager()
    manager.register(str(member.id), socket)

    async with session_factory() as session:
        service = NotificationService(session, backend=WebSocketPushBackend(manager))
        notification = await service.emit(member.id, "Congratulations!", notification_type="Discount Alert")

    assert socket.frames == [serialize_notification(notification)]
    assert set(socket.frames[0]) == {"id", "orderId", "message", "type", "createdAt", "isRead"}


@pytest.mark.asyncio
async def test_list_and_mark_read(session_factory, seed) -> None:
    member = await seed.user()
    other = await seed.user()

    async with session_factory() as session:
        service = NotificationService(session, backend=InMemoryPushBackend())
        first = await service.record(member.id, "First", notification_type="Discount Alert")
        second = await service.record(member.id, "Second", notification_type="Discount Alert")
        await session.commit()

    async with session_factory() as session:
        service = NotificationService(session, backend=InMemoryPushBackend())
        inbox = await service.list_for_member(member.id)
        assert [item.message for item in inbox] == ["Second", "First"]

        assert await service.mark_read(other.id, first.id) is None
        acknowledged = await service.mark_read(member.id, first.id)
        assert acknowledged is not None and acknowledged.is_read is True
        assert acknowledged.read_at is not None

        unread = await service.list_for_member(member.id, unread_only=True)
        assert [item.id for item in unread] == [second.id]

    async with session_factory() as session:
        service = NotificationService(session, backend=InMemoryPushBackend())
        assert await service.mark_read(member.id, uuid4()) is None
