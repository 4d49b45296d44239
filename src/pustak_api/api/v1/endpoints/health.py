from __future__ import annotations

from typing import Dict, Literal

from fastapi import APIRouter, Depends
from loguru import logger
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from pustak_api.core.settings import settings
from pustak_api.db.session import get_session
from pustak_api.services.notifications import get_connection_manager


router = APIRouter()


class ComponentStatus(BaseModel):
    status: Literal["ready", "disabled", "error"]
    detail: str | None = Field(default=None, description="Human readable status detail")


class ReadinessPayload(BaseModel):
    status: Literal["ready", "degraded", "error"]
    components: Dict[str, ComponentStatus]


@router.get("/healthz", summary="Service health check")
async def service_health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz", summary="Service readiness", response_model=ReadinessPayload)
async def service_readiness(session: AsyncSession = Depends(get_session)) -> ReadinessPayload:
    components: Dict[str, ComponentStatus] = {}
    status: Literal["ready", "degraded", "error"] = "ready"

    try:
        await session.execute(text("SELECT 1"))
    except Exception as exc:  # noqa: BLE001 - reported in the payload
        logger.warning("Database readiness probe failed", error=str(exc))
        components["database"] = ComponentStatus(status="error", detail=str(exc))
        status = "error"
    else:
        components["database"] = ComponentStatus(status="ready")

    if settings.realtime_push_enabled:
        connections = get_connection_manager().connection_count()
        components["realtime_push"] = ComponentStatus(
            status="ready",
            detail=f"{connections} live connection(s)",
        )
    else:
        components["realtime_push"] = ComponentStatus(
            status="disabled",
            detail="Realtime push disabled via settings (notifications are stored only)",
        )

    return ReadinessPayload(status=status, components=components)
