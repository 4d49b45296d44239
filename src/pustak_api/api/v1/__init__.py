from fastapi import APIRouter

from .endpoints import (
    health,
    member,
    observability,
    realtime,
    staff,
)

router = APIRouter()
router.include_router(health.router, tags=["Health"])
router.include_router(staff.router)
router.include_router(member.router)
router.include_router(observability.router)

# Not versioned: clients open /ws/notifications directly.
realtime_router = realtime.router
