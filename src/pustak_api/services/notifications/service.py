"""Member notification persistence and best-effort live delivery."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pustak_api.core.settings import settings
from pustak_api.models.notification import Notification
from pustak_api.observability.fulfillment import get_fulfillment_store

from .backend import InMemoryPushBackend, PushBackend, WebSocketPushBackend
from .realtime import get_connection_manager


@dataclass
class NotificationEvent:
    """Representation of a notification that reached at least one live connection."""

    recipient: str
    notification_type: str
    message: str
    connections: int
    metadata: dict[str, Any]


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """JSON shape shared by the inbox endpoint and the live push channel."""

    return {
        "id": str(notification.id),
        "orderId": str(notification.order_id) if notification.order_id else None,
        "message": notification.message,
        "type": notification.notification_type,
        "createdAt": notification.created_at.isoformat() if notification.created_at else None,
        "isRead": bool(notification.is_read),
    }


class NotificationService:
    """Persists member notifications and pushes them to live connections."""

    def __init__(
        self,
        db_session: AsyncSession,
        backend: Optional[PushBackend] = None,
        *,
        push_timeout_seconds: float | None = None,
    ) -> None:
        self._db = db_session
        self._backend = backend if backend is not None else self._build_default_backend()
        self._push_timeout = (
            push_timeout_seconds if push_timeout_seconds is not None else settings.realtime_push_timeout_seconds
        )
        self._events: list[NotificationEvent] = []

    @property
    def sent_events(self) -> list[NotificationEvent]:
        """Expose delivered events (useful for tests when using in-memory backend)."""
        return self._events

    def use_in_memory_backend(self) -> InMemoryPushBackend:
        backend = InMemoryPushBackend()
        self._backend = backend
        return backend

    async def record(
        self,
        member_id: UUID,
        message: str,
        *,
        notification_type: str,
        order_id: UUID | None = None,
    ) -> Notification:
        """Add an unread notification to the current transaction (flushed, not committed)."""

        notification = Notification(
            member_id=member_id,
            order_id=order_id,
            notification_type=notification_type,
            message=message,
            is_read=False,
            created_at=datetime.now(timezone.utc),
        )
        self._db.add(notification)
        await self._db.flush()
        logger.info(
            "Recorded member notification",
            member_id=str(member_id),
            order_id=str(order_id) if order_id else None,
            notification_type=notification_type,
            notification_id=str(notification.id),
        )
        return notification

    async def deliver(self, notification: Notification) -> bool:
        """Try to push a persisted notification; never raises."""

        store = get_fulfillment_store()
        if self._backend is None:
            store.record_push("disabled")
            return False

        payload = serialize_notification(notification)
        metadata = {key: value for key, value in payload.items() if key not in {"type", "message"}}
        recipient = str(notification.member_id)
        try:
            connections = await asyncio.wait_for(
                self._backend.send_push(
                    recipient,
                    notification.notification_type,
                    notification.message,
                    metadata=metadata,
                ),
                timeout=self._push_timeout,
            )
        except Exception as exc:  # noqa: BLE001 - push is best effort
            store.record_push("failed")
            logger.warning(
                "Live notification push failed",
                member_id=recipient,
                notification_id=payload["id"],
                error=str(exc) or exc.__class__.__name__,
            )
            return False

        if not connections:
            store.record_push("no_connection")
            logger.info(
                "No live connection for notification",
                member_id=recipient,
                notification_id=payload["id"],
            )
            return False

        store.record_push("delivered")
        self._events.append(
            NotificationEvent(
                recipient=recipient,
                notification_type=notification.notification_type,
                message=notification.message,
                connections=connections,
                metadata=metadata,
            )
        )
        return True

    async def emit(
        self,
        member_id: UUID,
        message: str,
        *,
        notification_type: str,
        order_id: UUID | None = None,
    ) -> Notification:
        """Persist and commit a notification, then attempt live delivery."""

        notification = await self.record(
            member_id,
            message,
            notification_type=notification_type,
            order_id=order_id,
        )
        await self._db.commit()
        await self.deliver(notification)
        return notification

    async def list_for_member(self, member_id: UUID, *, unread_only: bool = False) -> list[Notification]:
        stmt = select(Notification).where(Notification.member_id == member_id)
        if unread_only:
            stmt = stmt.where(Notification.is_read.is_(False))
        stmt = stmt.order_by(Notification.created_at.desc())
        result = await self._db.execute(stmt)
        return list(result.scalars())

    async def mark_read(self, member_id: UUID, notification_id: UUID) -> Notification | None:
        """Acknowledge a notification owned by ``member_id``; returns ``None`` if not theirs."""

        stmt = select(Notification).where(
            Notification.id == notification_id,
            Notification.member_id == member_id,
        )
        result = await self._db.execute(stmt)
        notification = result.scalar_one_or_none()
        if notification is None:
            return None
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(timezone.utc)
            await self._db.commit()
        return notification

    def _build_default_backend(self) -> Optional[PushBackend]:
        if not settings.realtime_push_enabled:
            return None
        return WebSocketPushBackend(get_connection_manager())
