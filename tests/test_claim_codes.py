from __future__ import annotations

import re
from uuid import uuid4

import pytest

from pustak_api.services.orders.claim_codes import (
    claim_code_matches,
    generate_claim_code,
    verify_claim_code,
)
from pustak_api.services.orders.errors import InvalidClaimCodeError, OrderNotFoundError


def test_generate_claim_code_is_short_lowercase_hex() -> None:
    codes = {generate_claim_code() for _ in range(50)}

    assert all(re.fullmatch(r"[0-9a-f]{8}", code) for code in codes)
    assert len(codes) > 1


def test_generate_claim_code_honours_length() -> None:
    assert len(generate_claim_code(12)) == 12


@pytest.mark.parametrize(
    ("stored", "submitted", "expected"),
    [
        ("ABCD12", "ABCD12", True),
        ("ABCD12", "abcd12", False),
        ("ABCD12", "WRONG1", False),
        ("ABCD12", " ABCD12", False),
        ("ABCD12", "", False),
        ("ABCD12", None, False),
        (None, "ABCD12", False),
    ],
)
def test_claim_code_matches_is_exact(stored, submitted, expected) -> None:
    assert claim_code_matches(stored, submitted) is expected


@pytest.mark.asyncio
async def test_verify_claim_code_returns_order(session_factory, seed) -> None:
    member = await seed.user()
    order = await seed.order(member.id, claim_code="ABCD12")

    async with session_factory() as session:
        verified = await verify_claim_code(session, order.id, "ABCD12")
        assert verified.id == order.id


@pytest.mark.asyncio
async def test_verify_claim_code_rejects_mismatch(session_factory, seed) -> None:
    member = await seed.user()
    order = await seed.order(member.id, claim_code="ABCD12")

    async with session_factory() as session:
        with pytest.raises(InvalidClaimCodeError) as excinfo:
            await verify_claim_code(session, order.id, "WRONG1")

    assert str(excinfo.value) == "Invalid claim code"


@pytest.mark.asyncio
async def test_verify_claim_code_missing_order(session_factory) -> None:
    async with session_factory() as session:
        with pytest.raises(OrderNotFoundError):
            await verify_claim_code(session, uuid4(), "ABCD12")
