#!/usr/bin/env python3
"""Smoke test for the pickup fulfillment flow.

Usage (HTTP):
    python tooling/scripts/smoke_fulfillment.py --base-url http://localhost:8000

Usage (in-process, no network sockets required):
    python tooling/scripts/smoke_fulfillment.py --in-process

Requires the development data from ``tooling/seed_dev_data.py``. The script:
1. checks API health (`/healthz`)
2. places an order as the seeded member (`POST /api/v1/member/orders`)
3. confirms a wrong claim code is rejected (`PUT /api/v1/staff/orders/{id}/process`)
4. processes the order with the real claim code
5. reads the fulfillment observability snapshot
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

import httpx
from httpx import ASGITransport, Response

DEFAULT_MEMBER_ID = "6f1d0c1e-0000-4000-8000-000000000001"
DEFAULT_STAFF_ID = "6f1d0c1e-0000-4000-8000-000000000002"
DEFAULT_BOOK_ID = "6f1d0c1e-0000-4000-8000-0000000000b1"


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Pustak fulfillment smoke test")
    parser.add_argument(
        "--base-url",
        default="http://localhost:8000",
        help="Base URL of the FastAPI service (ignored with --in-process)",
    )
    parser.add_argument("--member-id", default=DEFAULT_MEMBER_ID, help="Member placing the order")
    parser.add_argument("--staff-id", default=DEFAULT_STAFF_ID, help="Staff user processing the order")
    parser.add_argument("--book-id", default=DEFAULT_BOOK_ID, help="Book to order")
    parser.add_argument(
        "--timeout",
        type=float,
        default=10.0,
        help="Request timeout in seconds",
    )
    parser.add_argument(
        "--in-process",
        action="store_true",
        help="Run requests directly against the ASGI app without binding network sockets.",
    )
    return parser.parse_args()


def _expect(response: Response, status_code: int) -> dict:
    if response.status_code != status_code:
        raise RuntimeError(
            f"{response.request.method} {response.request.url} returned {response.status_code}: {response.text}"
        )
    return response.json()


async def _run_flow(client: httpx.AsyncClient, args: argparse.Namespace) -> None:
    body = _expect(await client.get("/healthz"), 200)
    if body.get("status") != "ok":
        raise RuntimeError(f"Unexpected health status: {body}")

    member_headers = {"X-Session-User": args.member_id}
    staff_headers = {"X-Session-User": args.staff_id}

    placed = _expect(
        await client.post(
            "/api/v1/member/orders",
            json={"items": [{"bookId": args.book_id, "quantity": 1}]},
            headers=member_headers,
        ),
        201,
    )
    order_id = placed["order"]["id"]
    claim_code = placed["claimCode"]

    rejected = await client.put(
        f"/api/v1/staff/orders/{order_id}/process",
        json={"claimCode": "WRONG1"},
        headers=staff_headers,
    )
    if rejected.status_code != 400 or rejected.json().get("detail") != "Invalid claim code":
        raise RuntimeError(f"Wrong claim code was not rejected: {rejected.status_code} {rejected.text}")

    processed = _expect(
        await client.put(
            f"/api/v1/staff/orders/{order_id}/process",
            json={"claimCode": claim_code},
            headers=staff_headers,
        ),
        200,
    )
    if processed["order"]["status"] != "Confirmed":
        raise RuntimeError(f"Order not confirmed: {processed}")

    snapshot = _expect(await client.get("/api/v1/observability/fulfillment", headers=staff_headers), 200)
    expected_keys = {"claims", "overrides", "milestones", "pushes", "events"}
    if not expected_keys.issubset(snapshot.keys()):
        raise RuntimeError(f"Fulfillment observability payload missing keys: {snapshot}")
    if snapshot["claims"].get("confirmed", 0) < 1:
        raise RuntimeError(f"Confirmed pickup not counted: {snapshot}")


async def run_http(args: argparse.Namespace) -> None:
    async with httpx.AsyncClient(base_url=args.base_url, timeout=args.timeout) as client:
        await _run_flow(client, args)


async def run_in_process(args: argparse.Namespace) -> None:
    repo_root = Path(__file__).resolve().parents[2]
    api_src = repo_root / "src"
    if str(api_src) not in sys.path:
        sys.path.insert(0, str(api_src))

    from pustak_api.app import create_app  # type: ignore import-position

    app = create_app()
    lifespan = app.router.lifespan_context(app)
    await lifespan.__aenter__()
    try:
        transport = ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver", timeout=args.timeout) as client:
            await _run_flow(client, args)
    finally:
        await lifespan.__aexit__(None, None, None)


def main() -> int:
    args = parse_args()
    if args.in_process:
        asyncio.run(run_in_process(args))
    else:
        asyncio.run(run_http(args))
    print("Fulfillment smoke test passed ✅")
    return 0


if __name__ == "__main__":
    sys.exit(main())
