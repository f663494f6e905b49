"""Waiting-on detection: derive a thread's reply-pending state from its emails.

A thread is "waiting on" someone when the owner sent the most recent
message and nobody has replied since. Only the last email matters: an
inbound message at the end of the thread clears the state no matter what
came before it.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from src.core.models.enums import EmailDirection

SECONDS_PER_DAY = 24 * 60 * 60


class ClassifiableEmail(Protocol):
    direction: EmailDirection
    received_at: datetime
    to_emails: list | None


@dataclass(frozen=True)
class WaitingStatus:
    waiting: bool
    waiting_since: datetime | None = None
    waiting_on_email: str | None = None


NOT_WAITING = WaitingStatus(waiting=False)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def primary_recipient(email: ClassifiableEmail) -> str | None:
    """First address the email was sent to, lower-cased."""
    for address in email.to_emails or []:
        if isinstance(address, str) and address.strip():
            return address.strip().lower()
    return None


def classify_thread(emails: Iterable[ClassifiableEmail]) -> WaitingStatus:
    """Return the waiting-on status for a thread's emails."""
    ordered = sorted(emails, key=lambda e: as_utc(e.received_at))
    if not ordered:
        return NOT_WAITING

    latest = ordered[-1]
    if latest.direction != EmailDirection.outbound:
        return NOT_WAITING

    return WaitingStatus(
        waiting=True,
        waiting_since=latest.received_at,
        waiting_on_email=primary_recipient(latest),
    )


def days_waiting(waiting_since: datetime | None, now: datetime) -> int:
    """Whole days elapsed since *waiting_since*, floored."""
    if waiting_since is None:
        return 0
    elapsed = (as_utc(now) - as_utc(waiting_since)).total_seconds()
    return math.floor(elapsed / SECONDS_PER_DAY)
