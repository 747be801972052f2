from __future__ import annotations

from datetime import datetime, timedelta

from uptime_monitor.services.transitions import evaluate_transition, next_run_delay

NOW = datetime(2026, 3, 1, 12, 0, 0)
EARLIER = NOW - timedelta(hours=3)


def test_first_failure_is_a_transition() -> None:
    t = evaluate_transition(previous_status=None, new_status=500, now=NOW)
    assert t.changed is True
    assert t.went_down is True
    assert t.was_up is None
    assert t.status_changed_at == NOW
    assert t.last_incident_at == NOW


def test_first_success_is_not_a_transition_but_backfills_changed_at() -> None:
    t = evaluate_transition(previous_status=None, new_status=200, now=NOW)
    assert t.changed is False
    assert t.status_changed_at == NOW
    assert t.last_incident_at is None


def test_first_success_keeps_existing_changed_at() -> None:
    t = evaluate_transition(previous_status=None, new_status=204, now=NOW, status_changed_at=EARLIER)
    assert t.changed is False
    assert t.status_changed_at == EARLIER


def test_up_to_down_sets_incident() -> None:
    t = evaluate_transition(
        previous_status=200,
        new_status=503,
        now=NOW,
        status_changed_at=EARLIER,
        last_incident_at=EARLIER - timedelta(days=1),
    )
    assert t.changed is True
    assert t.status_changed_at == NOW
    assert t.last_incident_at == NOW


def test_down_to_up_keeps_last_incident() -> None:
    t = evaluate_transition(previous_status=0, new_status=200, now=NOW, status_changed_at=EARLIER, last_incident_at=EARLIER)
    assert t.changed is True
    assert t.recovered is True
    assert t.status_changed_at == NOW
    assert t.last_incident_at == EARLIER


def test_down_to_other_down_code_is_not_a_transition() -> None:
    t = evaluate_transition(previous_status=500, new_status=0, now=NOW, status_changed_at=EARLIER, last_incident_at=EARLIER)
    assert t.changed is False
    assert t.status_changed_at == EARLIER
    assert t.last_incident_at == EARLIER


def test_redirect_status_counts_as_down() -> None:
    t = evaluate_transition(previous_status=200, new_status=301, now=NOW, status_changed_at=EARLIER)
    assert t.changed is True
    assert t.is_up is False


def test_repeated_up_never_changes_and_schedule_advances() -> None:
    now = NOW
    changed_at = EARLIER
    previous_next = None
    for _ in range(5):
        t = evaluate_transition(previous_status=200, new_status=200, now=now, check_interval=120, status_changed_at=changed_at)
        assert t.changed is False
        assert t.status_changed_at == changed_at
        assert t.next_run_at == now + timedelta(seconds=115)
        if previous_next is not None:
            assert t.next_run_at > previous_next
        previous_next = t.next_run_at
        now = t.next_run_at


def test_next_run_delay_has_a_floor() -> None:
    assert next_run_delay(60) == timedelta(seconds=55)
    assert next_run_delay(12) == timedelta(seconds=10)
    assert next_run_delay(5) == timedelta(seconds=10)
    assert next_run_delay(None) == timedelta(seconds=55)
