"""Transition evaluator - the up/down state machine for a site.

States are derived from the last recorded status code:

- Unknown: never checked (``last_status`` is NULL)
- Up: 2xx
- Down: anything else, including 0 for transport failures

A first observation that is down counts as a transition so that the
incident gets recorded; a first observation that is up does not.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from .prober import is_up

DEFAULT_CHECK_INTERVAL = 60

# Seconds subtracted from the interval so a site is due slightly before
# the next scheduler tick reaches it
SCHEDULE_BUFFER_SECONDS = 5
MIN_SCHEDULE_SECONDS = 10


@dataclass
class Transition:
    """Derived site fields after one probe."""
    changed: bool
    is_up: bool
    was_up: Optional[bool]  # None when the site had never been checked
    status_changed_at: datetime
    last_incident_at: Optional[datetime]
    next_run_at: datetime

    @property
    def recovered(self) -> bool:
        return self.changed and self.is_up

    @property
    def went_down(self) -> bool:
        return self.changed and not self.is_up


def next_run_delay(check_interval: Optional[int]) -> timedelta:
    """Delay until the next check: ``max(10, interval - 5)`` seconds."""
    interval = check_interval or DEFAULT_CHECK_INTERVAL
    return timedelta(seconds=max(MIN_SCHEDULE_SECONDS, interval - SCHEDULE_BUFFER_SECONDS))


def evaluate_transition(
    previous_status: Optional[int],
    new_status: int,
    now: datetime,
    check_interval: Optional[int] = None,
    status_changed_at: Optional[datetime] = None,
    last_incident_at: Optional[datetime] = None,
) -> Transition:
    """Compare the previous recorded status with a new probe status."""
    new_up = is_up(new_status)

    if previous_status is None:
        was_up = None
        changed = not new_up
    else:
        was_up = is_up(previous_status)
        changed = new_up != was_up

    if changed:
        status_changed_at = now
        if not new_up:
            last_incident_at = now
    elif status_changed_at is None:
        # Back-fill for sites that predate this column or were first seen up
        status_changed_at = now

    return Transition(
        changed=changed,
        is_up=new_up,
        was_up=was_up,
        status_changed_at=status_changed_at,
        last_incident_at=last_incident_at,
        next_run_at=now + next_run_delay(check_interval),
    )
