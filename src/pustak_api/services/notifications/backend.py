"""Live push backends for member notifications."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Protocol

from .realtime import ConnectionManager


class PushBackend(Protocol):
    """Protocol for live notification connectors.

    Implementations return how many live connections received the message;
    ``0`` means the member had nobody listening.
    """

    async def send_push(
        self,
        recipient: str,
        title: str,
        body: str,
        *,
        metadata: Optional[dict[str, Any]] = None,
    ) -> int:
        ...


class WebSocketPushBackend:
    """Pushes notifications to the member's open WebSocket connections."""

    def __init__(self, manager: ConnectionManager) -> None:
        self._manager = manager

    async def send_push(
        self,
        recipient: str,
        title: str,
        body: str,
        *,
        metadata: Optional[dict[str, Any]] = None,
    ) -> int:
        payload: dict[str, Any] = {"type": title, "message": body}
        payload.update(metadata or {})
        return await self._manager.send_to_member(recipient, payload)


@dataclass
class InMemoryPushBackend:
    """In-memory push dispatcher for validation."""

    sent_messages: List[dict[str, Any]]

    def __init__(self, *, connected: bool = True) -> None:
        self.sent_messages = []
        self.connected = connected

    async def send_push(
        self,
        recipient: str,
        title: str,
        body: str,
        *,
        metadata: Optional[dict[str, Any]] = None,
    ) -> int:
        if not self.connected:
            return 0
        self.sent_messages.append(
            {
                "recipient": recipient,
                "title": title,
                "body": body,
                "metadata": metadata or {},
            }
        )
        return 1
