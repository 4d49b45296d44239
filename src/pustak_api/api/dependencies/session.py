"""Session-aware dependencies resolving the caller from forwarded gateway headers."""

from __future__ import annotations

from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pustak_api.db.session import get_session
from pustak_api.models.user import User, UserRoleEnum

_STAFF_ROLES = {UserRoleEnum.STAFF.value, UserRoleEnum.ADMIN.value}


async def resolve_session_user(db: AsyncSession, session_user: str | None) -> User | None:
    """Look up the user named by a session header value; ``None`` when absent or unknown."""

    if not session_user:
        return None
    try:
        user_id = UUID(session_user)
    except ValueError:
        return None

    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def require_session_user(
    session_user: str | None = Header(None, alias="X-Session-User"),
    db: AsyncSession = Depends(get_session),
) -> User:
    """Resolve the authenticated user from forwarded session headers."""

    if not session_user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing session user context",
        )

    user = await resolve_session_user(db, session_user)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown session user",
        )
    return user


async def require_staff(user: User = Depends(require_session_user)) -> User:
    if user.role not in _STAFF_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Staff access required",
        )
    return user


async def require_member(user: User = Depends(require_session_user)) -> User:
    if user.role != UserRoleEnum.MEMBER.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Member access required",
        )
    return user
