from __future__ import annotations

import logging

from loguru import logger

from pustak_api.core.logging import InterceptHandler, build_log_payload


def test_stdlib_records_are_routed_into_loguru() -> None:
    captured: list[dict] = []
    sink_id = logger.add(lambda message: captured.append(message.record), level="DEBUG")
    stdlib_logger = logging.getLogger("pustak.tests.bridge")
    handler = InterceptHandler()
    stdlib_logger.addHandler(handler)
    stdlib_logger.propagate = False
    stdlib_logger.setLevel(logging.INFO)
    try:
        stdlib_logger.warning("pool {size} ready in %sms", 12)
    finally:
        stdlib_logger.removeHandler(handler)
        logger.remove(sink_id)

    assert len(captured) == 1
    record = captured[0]
    assert record["message"] == "pool {size} ready in 12ms"
    assert record["level"].name == "WARNING"
    assert record["extra"]["stdlib_logger"] == "pustak.tests.bridge"
    assert record["function"] == "test_stdlib_records_are_routed_into_loguru"


def test_log_payload_carries_service_metadata_and_extra_fields() -> None:
    captured: list[dict] = []
    sink_id = logger.add(lambda message: captured.append(message.record), level="DEBUG")
    try:
        logger.bind(order_id="o-1").info("Order processed")
    finally:
        logger.remove(sink_id)

    payload = build_log_payload(
        captured[0],
        {"service_name": "pustak-api", "environment": "development", "version": "0.1.0"},
    )

    assert payload["message"] == "Order processed"
    assert payload["level"] == "info"
    assert payload["service"] == "pustak-api"
    assert payload["order_id"] == "o-1"
    assert "trace_id" not in payload
    assert "exception" not in payload
