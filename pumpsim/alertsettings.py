"""Alert thresholds, saved alert preferences and alert history rows."""

from __future__ import annotations

import json
import operator
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

from pumpsim.datastorage import LogEvent, _format_time, _parse_time
from pumpsim.reminders import Reminder, ReminderSchedule

PathLike = Union[str, Path]
Color = tuple[int, int, int]

# Accepted range for each threshold; values outside are clamped.
_RANGES: dict[str, tuple[float, float]] = {
    "low_glucose": (3.0, 5.0),
    "urgent_low_glucose": (2.2, 3.5),
    "high_glucose": (7.0, 15.0),
    "urgent_high_glucose": (10.0, 22.0),
    "low_insulin": (20.0, 100.0),
    "critical_insulin": (5.0, 30.0),
    "low_battery": (10, 40),
    "critical_battery": (2, 15),
}
_INTEGER_FIELDS = {"low_battery", "critical_battery"}

# After a field changes: (other field, condition on (new, other), new value for other)
_Rule = tuple[str, Callable[[float, float], bool], float]
_RULES: dict[str, _Rule] = {
    "low_glucose": ("urgent_low_glucose", operator.le, -0.1),
    "urgent_low_glucose": ("low_glucose", operator.ge, 0.1),
    "high_glucose": ("urgent_high_glucose", operator.ge, 0.1),
    "urgent_high_glucose": ("high_glucose", operator.le, -0.1),
    "low_insulin": ("critical_insulin", operator.le, -5.0),
    "critical_insulin": ("low_insulin", operator.ge, 5.0),
    "low_battery": ("critical_battery", operator.le, -5),
    "critical_battery": ("low_battery", operator.ge, 5),
}

# Settings keys in the order they are applied when loading.
_SETTING_KEYS = (
    ("low_glucose", "LowGlucoseThreshold"),
    ("high_glucose", "HighGlucoseThreshold"),
    ("urgent_low_glucose", "UrgentLowGlucoseThreshold"),
    ("urgent_high_glucose", "UrgentHighGlucoseThreshold"),
    ("low_insulin", "LowInsulinThreshold"),
    ("critical_insulin", "CriticalInsulinThreshold"),
    ("low_battery", "LowBatteryThreshold"),
    ("critical_battery", "CriticalBatteryThreshold"),
)


@dataclass
class AlertThresholds:
    """Alert thresholds that keep each warning level on the right side of its urgent level.

    Setting a value clamps it to its allowed range; if it then crosses its
    partner threshold, the partner is moved past it.
    """

    low_glucose: float = 3.9
    urgent_low_glucose: float = 3.1
    high_glucose: float = 10.0
    urgent_high_glucose: float = 13.9
    low_insulin: float = 50.0
    critical_insulin: float = 10.0
    low_battery: int = 20
    critical_battery: int = 5

    def _assign(self, name: str, value: float) -> None:
        low, high = _RANGES[name]
        value = min(max(value, low), high)
        value = int(round(value)) if name in _INTEGER_FIELDS else round(float(value), 2)
        if value == getattr(self, name):
            return
        setattr(self, name, value)
        other, crosses, delta = _RULES[name]
        if crosses(value, getattr(self, other)):
            self._assign(other, value + delta)

    def set_low_glucose(self, value: float) -> None:
        self._assign("low_glucose", value)

    def set_urgent_low_glucose(self, value: float) -> None:
        self._assign("urgent_low_glucose", value)

    def set_high_glucose(self, value: float) -> None:
        self._assign("high_glucose", value)

    def set_urgent_high_glucose(self, value: float) -> None:
        self._assign("urgent_high_glucose", value)

    def set_low_insulin(self, value: float) -> None:
        self._assign("low_insulin", value)

    def set_critical_insulin(self, value: float) -> None:
        self._assign("critical_insulin", value)

    def set_low_battery(self, value: int) -> None:
        self._assign("low_battery", value)

    def set_critical_battery(self, value: int) -> None:
        self._assign("critical_battery", value)


def _number(value: Any, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return value


@dataclass
class AlertSettings:
    """Whether alerts are on, their thresholds, and scheduled reminders."""

    enabled: bool = True
    thresholds: AlertThresholds = field(default_factory=AlertThresholds)
    reminders: ReminderSchedule = field(default_factory=ReminderSchedule)

    def save(self, path: PathLike) -> None:
        """Write the settings as JSON, creating parent directories."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        alerts: dict[str, Any] = {"AlertsEnabled": self.enabled}
        for attribute, key in _SETTING_KEYS:
            alerts[key] = getattr(self.thresholds, attribute)
        alerts["Reminders"] = [
            {
                "Type": reminder.kind,
                "Time": _format_time(reminder.time),
                "Acknowledged": reminder.acknowledged,
            }
            for reminder in self.reminders
        ]
        target.write_text(json.dumps({"Alerts": alerts}, indent=4) + "\n", encoding="utf-8")

    @classmethod
    def load(cls, path: PathLike, now: Optional[datetime] = None) -> "AlertSettings":
        """Read settings; missing or unreadable values fall back to defaults.

        Reminders that are acknowledged and no longer in the future are
        dropped, as are reminders without a valid time.
        """
        now = now if now is not None else datetime.now()
        try:
            document = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError):
            document = {}
        alerts = document.get("Alerts") if isinstance(document, dict) else None
        if not isinstance(alerts, dict):
            alerts = {}

        enabled = alerts.get("AlertsEnabled", True)
        thresholds = AlertThresholds()
        defaults = AlertThresholds()
        for attribute, key in _SETTING_KEYS:
            value = _number(alerts.get(key), getattr(defaults, attribute))
            getattr(thresholds, f"set_{attribute}")(value)

        reminders = []
        entries = alerts.get("Reminders")
        for entry in entries if isinstance(entries, list) else []:
            if not isinstance(entry, dict):
                continue
            time = _parse_time(entry.get("Time"))
            if time is None:
                continue
            kind = entry.get("Type")
            acknowledged = entry.get("Acknowledged", False)
            reminder = Reminder(
                kind if isinstance(kind, str) else "",
                time,
                acknowledged if isinstance(acknowledged, bool) else False,
            )
            if reminder.time > now or not reminder.acknowledged:
                reminders.append(reminder)

        return cls(
            enabled=enabled if isinstance(enabled, bool) else True,
            thresholds=thresholds,
            reminders=ReminderSchedule(reminders),
        )


_LEVEL_DISPLAY: dict[int, tuple[str, Color]] = {
    0: ("Info", (0, 122, 255)),
    1: ("Warning", (255, 149, 0)),
    2: ("Error", (255, 59, 48)),
    3: ("Critical", (255, 0, 0)),
}
_UNKNOWN_LEVEL: tuple[str, Color] = ("Unknown", (255, 255, 255))


@dataclass(frozen=True)
class AlertHistoryRow:
    """One row of the alert history table."""

    time: str
    message: str
    level: str
    color: Color


def alert_history_rows(events: Iterable[LogEvent]) -> list[AlertHistoryRow]:
    """Rows for logged alerts, newest first."""
    rows = []
    for event in events:
        label, color = _LEVEL_DISPLAY.get(event.level, _UNKNOWN_LEVEL)
        time = event.timestamp.strftime("%Y-%m-%d %H:%M:%S") if event.timestamp else ""
        rows.append(AlertHistoryRow(time, event.message, label, color))
    return sorted(rows, key=lambda row: row.time, reverse=True)