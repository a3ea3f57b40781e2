"""Scheduled maintenance reminders (infusion set, sensor, reservoir and so on)."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

REMINDER_TYPES = (
    "Infusion Set Change",
    "CGM Sensor Change",
    "Reservoir Change",
    "Pump Battery Change",
    "Custom Reminder",
)

DUE_SOON_WINDOW = timedelta(hours=24)


class ReminderStatus(Enum):
    """How a reminder stands relative to the current time."""

    ACKNOWLEDGED = "acknowledged"
    OVERDUE = "overdue"
    DUE_SOON = "due_soon"
    FUTURE = "future"


def format_reminder_time(value: datetime) -> str:
    """Format as ``YYYY-MM-DD hh:mm AM/PM`` with a 12-hour clock."""
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{value:%Y-%m-%d} {hour:02d}:{value:%M} {suffix}"


@dataclass
class Reminder:
    """A reminder of a given kind due at a given time."""

    kind: str
    time: datetime
    acknowledged: bool = False

    def status(self, now: Optional[datetime] = None) -> ReminderStatus:
        """Acknowledged, overdue, due within 24 hours, or further in the future."""
        now = now if now is not None else datetime.now()
        if self.acknowledged:
            return ReminderStatus.ACKNOWLEDGED
        if self.time <= now:
            return ReminderStatus.OVERDUE
        if self.time - DUE_SOON_WINDOW <= now:
            return ReminderStatus.DUE_SOON
        return ReminderStatus.FUTURE

    def display_text(self) -> str:
        return f"{self.kind} - {format_reminder_time(self.time)}"


class ReminderSchedule:
    """Reminders kept in order of due time."""

    def __init__(self, reminders: Iterable[Reminder] = ()):
        self._reminders: list[Reminder] = sorted(reminders, key=lambda r: r.time)

    def add(self, kind: str, time: datetime, now: Optional[datetime] = None) -> Optional[str]:
        """Schedule a reminder.

        Raises ValueError for a time in the past. Returns the alert text to
        raise when the reminder is already due, otherwise None.
        """
        now = now if now is not None else datetime.now()
        if time < now:
            raise ValueError("Please select a future time for the reminder.")
        self._reminders.append(Reminder(kind, time))
        self._reminders.sort(key=lambda r: r.time)
        if time <= now:
            return f"Reminder: {kind}"
        return None

    def remove(self, index: int) -> Reminder:
        """Remove and return the reminder at ``index`` in due-time order."""
        if not 0 <= index < len(self._reminders):
            raise IndexError(f"no reminder at index {index}")
        return self._reminders.pop(index)

    def __iter__(self) -> Iterator[Reminder]:
        return iter(self._reminders)

    def __len__(self) -> int:
        return len(self._reminders)