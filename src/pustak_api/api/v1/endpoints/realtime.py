"""Live notification channel for signed-in members."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from pustak_api.api.dependencies.session import resolve_session_user
from pustak_api.db.session import get_session
from pustak_api.services.notifications import get_connection_manager


router = APIRouter(tags=["Realtime"])


@router.websocket("/ws/notifications")
async def notifications_socket(
    websocket: WebSocket,
    member: Optional[str] = Query(None, description="Member id when the session header cannot be forwarded"),
    db: AsyncSession = Depends(get_session),
) -> None:
    """Register the socket for pushes to the caller; inbound frames are treated as keep-alives."""
    user = await resolve_session_user(db, websocket.headers.get("x-session-user") or member)
    member_id = str(user.id) if user is not None else None
    # Release the connection; the socket may stay open for hours.
    await db.close()

    if member_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    manager = get_connection_manager()
    await websocket.accept()
    manager.register(member_id, websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect as exc:
        logger.debug("Notification socket disconnected", member_id=member_id, code=exc.code)
    finally:
        manager.unregister(member_id, websocket)
