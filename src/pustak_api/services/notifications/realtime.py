"""Registry of live member WebSocket connections."""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Protocol

from loguru import logger


class LiveConnection(Protocol):
    async def send_json(self, data: Any) -> None:
        ...


class ConnectionManager:
    """Tracks open connections per member and fans messages out to them.

    All bookkeeping happens between awaits on the event loop thread, so the
    registry needs no lock.
    """

    def __init__(self) -> None:
        self._connections: dict[str, set[LiveConnection]] = defaultdict(set)

    def register(self, member_id: str, connection: LiveConnection) -> None:
        self._connections[member_id].add(connection)
        logger.info("Live notification connection opened", member_id=member_id)

    def unregister(self, member_id: str, connection: LiveConnection) -> None:
        bucket = self._connections.get(member_id)
        if bucket is None or connection not in bucket:
            return
        bucket.discard(connection)
        if not bucket:
            del self._connections[member_id]
        logger.info("Live notification connection closed", member_id=member_id)

    def connection_count(self, member_id: str | None = None) -> int:
        if member_id is not None:
            return len(self._connections.get(member_id, ()))
        return sum(len(bucket) for bucket in self._connections.values())

    async def send_to_member(self, member_id: str, payload: dict[str, Any]) -> int:
        """Send ``payload`` to every connection of ``member_id``; broken sockets are dropped."""

        targets = list(self._connections.get(member_id, ()))
        delivered = 0
        for connection in targets:
            try:
                await connection.send_json(payload)
            except Exception as exc:  # noqa: BLE001 - socket may have gone away mid-send
                logger.warning(
                    "Dropping broken notification connection",
                    member_id=member_id,
                    error=str(exc),
                )
                self.unregister(member_id, connection)
                continue
            delivered += 1
        return delivered

    def reset(self) -> None:
        self._connections.clear()


_MANAGER = ConnectionManager()


def get_connection_manager() -> ConnectionManager:
    return _MANAGER


__all__ = ["ConnectionManager", "LiveConnection", "get_connection_manager"]
