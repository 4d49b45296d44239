"""Observability endpoints for fulfillment counters and Prometheus metrics."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from pustak_api.api.dependencies.session import require_staff
from pustak_api.observability.fulfillment import get_fulfillment_store


router = APIRouter(prefix="/observability", tags=["Observability"])


@router.get(
    "/fulfillment",
    dependencies=[Depends(require_staff)],
    summary="Fulfillment observability snapshot",
)
async def get_fulfillment_snapshot() -> dict[str, object]:
    """Claim outcomes, overrides, milestone issuance and push delivery counters."""
    return get_fulfillment_store().snapshot().as_dict()


def _format_family(name: str, description: str, label: str, counts: dict[str, int]) -> list[str]:
    lines = [
        f"# HELP {name} {description}",
        f"# TYPE {name} counter",
    ]
    for label_value, value in sorted(counts.items()):
        lines.append(f'{name}{{{label}="{label_value}"}} {value}')
    return lines


_METRIC_FAMILIES = (
    ("claims", "pustak_order_claims_total", "Pickup claim attempts grouped by outcome", "outcome"),
    ("overrides", "pustak_order_status_overrides_total", "Staff status overrides grouped by target status", "status"),
    ("milestones", "pustak_milestone_discounts_total", "Milestone discount evaluations grouped by outcome", "outcome"),
    ("pushes", "pustak_notification_pushes_total", "Live notification pushes grouped by outcome", "outcome"),
)


@router.get(
    "/prometheus",
    dependencies=[Depends(require_staff)],
    summary="Prometheus-formatted observability metrics",
    response_class=PlainTextResponse,
)
async def get_prometheus_metrics() -> PlainTextResponse:
    snapshot = get_fulfillment_store().snapshot().as_dict()

    lines: list[str] = []
    for key, name, description, label in _METRIC_FAMILIES:
        counts: dict[str, int] = snapshot.get(key, {})  # type: ignore[assignment]
        if counts:
            lines.extend(_format_family(name, description, label, counts))

    return PlainTextResponse("\n".join(lines) + "\n")
