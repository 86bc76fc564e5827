"""Notification lifecycle tests driven by a fake clock."""

from __future__ import annotations

import pytest

from app.services.notifications import NotificationPhase, NotificationService, Severity


class FakeClock:
    def __init__(self) -> None:
        self.elapsed_ms = 0

    def __call__(self) -> float:
        return self.elapsed_ms / 1_000

    def advance_ms(self, milliseconds: int) -> None:
        self.elapsed_ms += milliseconds


def test_notification_lifecycle() -> None:
    clock = FakeClock()
    service = NotificationService(clock=clock)
    notification = service.notify("Success", "Queued", "success")

    clock.advance_ms(4_999)
    assert notification.phase(clock()) is NotificationPhase.VISIBLE
    assert service.active() == [notification]

    clock.advance_ms(1)
    assert notification.phase(clock()) is NotificationPhase.EXITING
    assert service.to_payload()[0]["phase"] == "exiting"

    clock.advance_ms(499)
    assert service.active() == [notification]

    clock.advance_ms(1)
    assert notification.phase(clock()) is NotificationPhase.REMOVED
    assert service.active() == []


def test_multiple_notifications_stack_oldest_first() -> None:
    clock = FakeClock()
    service = NotificationService(clock=clock)
    first = service.notify("Error", "one", Severity.ERROR)
    clock.advance_ms(1_000)
    second = service.notify("Error", "one", Severity.ERROR)

    assert service.active() == [first, second]
    clock.advance_ms(4_600)
    assert service.active() == [second]


def test_limit_evicts_oldest_entries() -> None:
    clock = FakeClock()
    service = NotificationService(limit=3, clock=clock)
    created = [service.notify("Info", str(index)) for index in range(5)]

    assert [entry.message for entry in service.active()] == ["2", "3", "4"]
    assert created[-1].severity is Severity.INFO


def test_expired_entries_pruned_before_eviction() -> None:
    clock = FakeClock()
    service = NotificationService(limit=2, clock=clock)
    service.notify("Info", "old")
    clock.advance_ms(6_000)
    service.notify("Info", "a")
    service.notify("Info", "b")

    assert [entry.message for entry in service.active()] == ["a", "b"]


def test_payload_shape() -> None:
    service = NotificationService(clock=FakeClock())
    service.notify("Success", "Done", Severity.SUCCESS)

    assert service.to_payload() == [
        {
            "id": 1,
            "title": "Success",
            "message": "Done",
            "type": "success",
            "phase": "visible",
        }
    ]


def test_invalid_limit_rejected() -> None:
    with pytest.raises(ValueError):
        NotificationService(limit=0)
    service = NotificationService()
    with pytest.raises(ValueError):
        service.limit = 0
