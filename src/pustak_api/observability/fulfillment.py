"""In-memory fulfillment observability store for runtime metrics."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Dict


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class FulfillmentEventLog:
    """Stores details about noteworthy fulfillment events."""

    last_confirmed_at: datetime | None = None
    last_confirmed_order: str | None = None
    last_milestone_at: datetime | None = None
    last_milestone_member: str | None = None
    last_failure_at: datetime | None = None
    last_failure_message: str | None = None


@dataclass
class FulfillmentMetricsSnapshot:
    """Serializable snapshot returned to API consumers."""

    claims: Dict[str, int]
    overrides: Dict[str, int]
    milestones: Dict[str, int]
    pushes: Dict[str, int]
    events: FulfillmentEventLog

    def as_dict(self) -> Dict[str, object]:
        return {
            "claims": self.claims,
            "overrides": self.overrides,
            "milestones": self.milestones,
            "pushes": self.pushes,
            "events": {
                "last_confirmed_at": _iso(self.events.last_confirmed_at),
                "last_confirmed_order": self.events.last_confirmed_order,
                "last_milestone_at": _iso(self.events.last_milestone_at),
                "last_milestone_member": self.events.last_milestone_member,
                "last_failure_at": _iso(self.events.last_failure_at),
                "last_failure_message": self.events.last_failure_message,
            },
        }


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass
class FulfillmentObservabilityStore:
    """Tracks claim verification, status override, milestone and push counters."""

    _lock: Lock = field(default_factory=Lock)
    _claims: Counter = field(default_factory=Counter)
    _overrides: Counter = field(default_factory=Counter)
    _milestones: Counter = field(default_factory=Counter)
    _pushes: Counter = field(default_factory=Counter)
    _events: FulfillmentEventLog = field(default_factory=FulfillmentEventLog)

    def record_claim(self, outcome: str, order_id: str | None = None) -> None:
        with self._lock:
            self._claims[outcome] += 1
            if outcome == "confirmed":
                self._events.last_confirmed_at = _utcnow()
                self._events.last_confirmed_order = order_id

    def record_override(self, target_status: str) -> None:
        with self._lock:
            self._overrides[target_status] += 1

    def record_milestone(self, outcome: str, member_id: str | None = None) -> None:
        with self._lock:
            self._milestones[outcome] += 1
            if outcome == "issued":
                self._events.last_milestone_at = _utcnow()
                self._events.last_milestone_member = member_id

    def record_push(self, outcome: str) -> None:
        with self._lock:
            self._pushes[outcome] += 1

    def record_failure(self, error_message: str) -> None:
        with self._lock:
            self._events.last_failure_at = _utcnow()
            self._events.last_failure_message = error_message

    def snapshot(self) -> FulfillmentMetricsSnapshot:
        with self._lock:
            events_copy = FulfillmentEventLog(
                last_confirmed_at=self._events.last_confirmed_at,
                last_confirmed_order=self._events.last_confirmed_order,
                last_milestone_at=self._events.last_milestone_at,
                last_milestone_member=self._events.last_milestone_member,
                last_failure_at=self._events.last_failure_at,
                last_failure_message=self._events.last_failure_message,
            )
            return FulfillmentMetricsSnapshot(
                claims=dict(self._claims),
                overrides=dict(self._overrides),
                milestones=dict(self._milestones),
                pushes=dict(self._pushes),
                events=events_copy,
            )

    def reset(self) -> None:
        with self._lock:
            self._claims.clear()
            self._overrides.clear()
            self._milestones.clear()
            self._pushes.clear()
            self._events = FulfillmentEventLog()


_FULFILLMENT_STORE = FulfillmentObservabilityStore()


def get_fulfillment_store() -> FulfillmentObservabilityStore:
    return _FULFILLMENT_STORE
