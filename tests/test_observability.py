from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from pustak_api.models.user import UserRoleEnum
from pustak_api.observability.fulfillment import get_fulfillment_store


def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


def test_store_snapshot_and_reset() -> None:
    store = get_fulfillment_store()
    store.record_claim("confirmed", order_id="o-1")
    store.record_claim("invalid_code", order_id="o-2")
    store.record_milestone("issued", member_id="m-1")
    store.record_push("no_connection")
    store.record_override("Cancelled")
    store.record_failure("boom")

    payload = store.snapshot().as_dict()
    assert payload["claims"] == {"confirmed": 1, "invalid_code": 1}
    assert payload["milestones"] == {"issued": 1}
    assert payload["pushes"] == {"no_connection": 1}
    assert payload["overrides"] == {"Cancelled": 1}
    assert payload["events"]["last_confirmed_order"] == "o-1"
    assert payload["events"]["last_milestone_member"] == "m-1"
    assert payload["events"]["last_failure_message"] == "boom"
    assert payload["events"]["last_confirmed_at"] is not None

    store.reset()
    assert store.snapshot().as_dict()["claims"] == {}


@pytest.mark.asyncio
async def test_fulfillment_snapshot_endpoint_reflects_pickups(app_with_db, seed, auth_headers) -> None:
    app, _ = app_with_db
    member = await seed.user()
    staff = await seed.user(UserRoleEnum.STAFF)
    order = await seed.order(member.id, claim_code="ABCD12")

    async with _client(app) as client:
        await client.put(
            f"/api/v1/staff/orders/{order.id}/process",
            json={"claimCode": "WRONG1"},
            headers=auth_headers(staff),
        )
        await client.put(
            f"/api/v1/staff/orders/{order.id}/process",
            json={"claimCode": "ABCD12"},
            headers=auth_headers(staff),
        )
        snapshot = await client.get("/api/v1/observability/fulfillment", headers=auth_headers(staff))
        forbidden = await client.get("/api/v1/observability/fulfillment", headers=auth_headers(member))

    assert snapshot.status_code == 200
    assert snapshot.json()["claims"] == {"invalid_code": 1, "confirmed": 1}
    assert forbidden.status_code == 403


@pytest.mark.asyncio
async def test_prometheus_metrics_render_counters(app_with_db, seed, auth_headers) -> None:
    app, _ = app_with_db
    staff = await seed.user(UserRoleEnum.STAFF)
    store = get_fulfillment_store()
    store.record_claim("confirmed")
    store.record_push("delivered")

    async with _client(app) as client:
        response = await client.get("/api/v1/observability/prometheus", headers=auth_headers(staff))

    assert response.status_code == 200
    assert 'pustak_order_claims_total{outcome="confirmed"} 1' in response.text
    assert 'pustak_notification_pushes_total{outcome="delivered"} 1' in response.text


@pytest.mark.asyncio
async def test_prometheus_metrics_declare_each_family_once(app_with_db, seed, auth_headers) -> None:
    app, _ = app_with_db
    staff = await seed.user(UserRoleEnum.STAFF)
    store = get_fulfillment_store()
    store.record_claim("confirmed")
    store.record_claim("invalid_code")
    store.record_claim("not_found")

    async with _client(app) as client:
        response = await client.get("/api/v1/observability/prometheus", headers=auth_headers(staff))

    lines = response.text.splitlines()
    assert lines.count("# TYPE pustak_order_claims_total counter") == 1
    assert sum(line.startswith("# HELP pustak_order_claims_total ") for line in lines) == 1
    assert [line for line in lines if line.startswith("pustak_order_claims_total{")] == [
        'pustak_order_claims_total{outcome="confirmed"} 1',
        'pustak_order_claims_total{outcome="invalid_code"} 1',
        'pustak_order_claims_total{outcome="not_found"} 1',
    ]
    assert not any(line.startswith("# TYPE pustak_order_status_overrides_total") for line in lines)
