"""JSON persistence for pump history, plus simple glucose statistics."""

from __future__ import annotations

import json
from collections import defaultdict
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

PathLike = Union[str, Path]
Reading = tuple[datetime, float]
Listener = Callable[[str, int], None]

MAX_LOG_EVENTS = 1000
DEFAULT_EVENT_LOG_PATH = Path.home() / ".tslimx2simulator" / "event_log.json"


@dataclass
class BolusRecord:
    """One bolus delivery."""

    timestamp: Optional[datetime] = None
    units: float = 0.0
    reason: str = ""
    extended: bool = False
    duration: int = 0
    completed: bool = False


@dataclass
class BasalRecord:
    """One basal segment."""

    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    rate: float = 0.0
    profile_name: str = ""
    automatic: bool = False


@dataclass
class ProfileRecord:
    """A stored personal profile."""

    name: str = ""
    basal_rate: float = 0.0
    carb_ratio: float = 0.0
    correction_factor: float = 0.0
    target_glucose: float = 0.0


@dataclass
class LogEvent:
    """One entry in the event log; level 0=info, 1=warning, 2=error, 3=critical."""

    timestamp: Optional[datetime] = None
    message: str = ""
    level: int = 0


def _format_time(value: Optional[datetime]) -> str:
    return value.isoformat(timespec="seconds") if value is not None else ""


def _parse_time(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def _as_float(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def _as_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float) and not value.is_integer():
        return 0
    return int(value)


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _as_bool(value: Any) -> bool:
    return value if isinstance(value, bool) else False


def _write_json(document: dict, filename: PathLike) -> None:
    path = Path(filename)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document, indent=4) + "\n", encoding="utf-8")


def _read_array(filename: PathLike, key: str) -> list[dict]:
    """Return the objects stored under ``key``; empty when the file is unusable."""
    try:
        raw = Path(filename).read_text(encoding="utf-8")
        document = json.loads(raw)
    except (OSError, ValueError):
        return []
    if not isinstance(document, dict):
        return []
    array = document.get(key)
    if not isinstance(array, list):
        return []
    return [item if isinstance(item, dict) else {} for item in array]


def _save_readings(data: Iterable[Reading], filename: PathLike, key: str, field: str) -> None:
    entries = [{"timestamp": _format_time(ts), field: value} for ts, value in data]
    _write_json({key: entries}, filename)


def _load_readings(filename: PathLike, key: str, field: str) -> list[tuple[Optional[datetime], float]]:
    return [
        (_parse_time(obj.get("timestamp")), _as_float(obj.get(field)))
        for obj in _read_array(filename, key)
    ]


class DataStorage:
    """Saves and loads pump data as JSON and keeps a bounded in-memory event log."""

    def __init__(self, event_log_path: PathLike = DEFAULT_EVENT_LOG_PATH):
        self.event_log_path = Path(event_log_path)
        self.events: list[LogEvent] = []
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        """Call ``listener(message, level)`` whenever an event is logged via add_event_log."""
        self._listeners.append(listener)

    def save_glucose_data(self, data: Iterable[Reading], filename: PathLike) -> None:
        _save_readings(data, filename, "glucoseReadings", "value")

    def load_glucose_data(self, filename: PathLike) -> list[tuple[Optional[datetime], float]]:
        return _load_readings(filename, "glucoseReadings", "value")

    def save_insulin_data(self, data: Iterable[Reading], filename: PathLike) -> None:
        _save_readings(data, filename, "insulinDeliveries", "units")

    def load_insulin_data(self, filename: PathLike) -> list[tuple[Optional[datetime], float]]:
        return _load_readings(filename, "insulinDeliveries", "units")

    def save_bolus_history(self, history: Iterable[BolusRecord], filename: PathLike) -> None:
        entries = [
            {
                "timestamp": _format_time(b.timestamp),
                "units": b.units,
                "reason": b.reason,
                "extended": b.extended,
                "duration": b.duration,
                "completed": b.completed,
            }
            for b in history
        ]
        _write_json({"bolusHistory": entries}, filename)

    def load_bolus_history(self, filename: PathLike) -> list[BolusRecord]:
        return [
            BolusRecord(
                timestamp=_parse_time(obj.get("timestamp")),
                units=_as_float(obj.get("units")),
                reason=_as_str(obj.get("reason")),
                extended=_as_bool(obj.get("extended")),
                duration=_as_int(obj.get("duration")),
                completed=_as_bool(obj.get("completed")),
            )
            for obj in _read_array(filename, "bolusHistory")
        ]

    def save_basal_history(self, history: Iterable[BasalRecord], filename: PathLike) -> None:
        entries = [
            {
                "startTime": _format_time(b.start_time),
                "endTime": _format_time(b.end_time),
                "rate": b.rate,
                "profileName": b.profile_name,
                "automatic": b.automatic,
            }
            for b in history
        ]
        _write_json({"basalHistory": entries}, filename)

    def load_basal_history(self, filename: PathLike) -> list[BasalRecord]:
        return [
            BasalRecord(
                start_time=_parse_time(obj.get("startTime")),
                end_time=_parse_time(obj.get("endTime")),
                rate=_as_float(obj.get("rate")),
                profile_name=_as_str(obj.get("profileName")),
                automatic=_as_bool(obj.get("automatic")),
            )
            for obj in _read_array(filename, "basalHistory")
        ]

    def save_profiles(self, profiles: Iterable[ProfileRecord], filename: PathLike) -> None:
        entries = [
            {
                "name": p.name,
                "basalRate": p.basal_rate,
                "carbRatio": p.carb_ratio,
                "correctionFactor": p.correction_factor,
                "targetGlucose": p.target_glucose,
            }
            for p in profiles
        ]
        _write_json({"profiles": entries}, filename)

    def load_profiles(self, filename: PathLike) -> list[ProfileRecord]:
        return [
            ProfileRecord(
                name=_as_str(obj.get("name")),
                basal_rate=_as_float(obj.get("basalRate")),
                carb_ratio=_as_float(obj.get("carbRatio")),
                correction_factor=_as_float(obj.get("correctionFactor")),
                target_glucose=_as_float(obj.get("targetGlucose")),
            )
            for obj in _read_array(filename, "profiles")
        ]

    def save_event_log(self, events: Iterable[LogEvent], filename: PathLike) -> None:
        entries = [
            {"timestamp": _format_time(e.timestamp), "message": e.message, "level": e.level}
            for e in events
        ]
        _write_json({"events": entries}, filename)

    def load_event_log(self, filename: PathLike) -> list[LogEvent]:
        return [
            LogEvent(
                timestamp=_parse_time(obj.get("timestamp")),
                message=_as_str(obj.get("message")),
                level=_as_int(obj.get("level")),
            )
            for obj in _read_array(filename, "events")
        ]

    def _append_event(self, message: str, level: int) -> None:
        self.events.append(LogEvent(datetime.now(), message, level))
        del self.events[:-MAX_LOG_EVENTS]

    def add_log_event(self, message: str, level: int = 0) -> None:
        """Record an event in memory, keeping only the newest entries."""
        self._append_event(message, level)

    def add_event_log(self, message: str, level: int) -> None:
        """Record an event, persist the log and notify subscribers."""
        self._append_event(message, level)
        self.save_event_log(self.events, self.event_log_path)
        for listener in self._listeners:
            listener(message, level)


def _in_range(readings: Iterable[Reading], start: datetime, end: datetime):
    return ((ts, value) for ts, value in readings if ts is not None and start <= ts <= end)


def calculate_daily_statistics(
    start: datetime, end: datetime, glucose_data: Iterable[Reading]
) -> list[tuple[str, float]]:
    """Average glucose per calendar day within [start, end], ordered by day."""
    daily: dict[str, list[float]] = defaultdict(list)
    for ts, value in _in_range(glucose_data, start, end):
        daily[ts.strftime("%Y-%m-%d")].append(value)
    return [(day, sum(values) / len(values)) for day, values in sorted(daily.items())]


def calculate_hourly_averages(
    start: datetime, end: datetime, glucose_data: Iterable[Reading]
) -> list[tuple[int, float]]:
    """Average glucose for each hour of the day 0-23; hours with no data give 0.0."""
    hourly: dict[int, list[float]] = defaultdict(list)
    for ts, value in _in_range(glucose_data, start, end):
        hourly[ts.hour].append(value)
    return [
        (hour, sum(hourly[hour]) / len(hourly[hour]) if hourly[hour] else 0.0)
        for hour in range(24)
    ]


def generate_csv_report(
    start: datetime,
    end: datetime,
    glucose_data: Sequence[Reading],
    insulin_data: Sequence[Reading],
) -> str:
    """Merge glucose and insulin readings by timestamp into CSV text."""
    combined: dict[datetime, list[float]] = defaultdict(lambda: [0.0, 0.0])
    for ts, value in _in_range(glucose_data, start, end):
        combined[ts][0] = value
    for ts, value in _in_range(insulin_data, start, end):
        combined[ts][1] = value
    lines = ["Timestamp,Glucose (mmol/L),Insulin (units)\n"]
    lines.extend(
        f"{_format_time(ts)},{glucose:.1f},{insulin:.2f}\n"
        for ts, (glucose, insulin) in sorted(combined.items())
    )
    return "".join(lines)