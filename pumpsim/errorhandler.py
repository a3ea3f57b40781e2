"""Error and alert log for the pump, with acknowledgement and recovery rules."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import IntEnum
from pathlib import Path
from typing import Any, Optional, Union

from pumpsim.datastorage import (
    DataStorage,
    _as_bool,
    _as_int,
    _as_str,
    _format_time,
    _parse_time,
)

PathLike = Union[str, Path]
Listener = Callable[[str, Any], None]

MAX_ERRORS = 1000
DEFAULT_ERROR_LOG_PATH = Path.home() / ".tslimx2simulator" / "error_log.json"
NO_INSTRUCTIONS = "No recovery instructions available."

_log = logging.getLogger(__name__)


class ErrorLevel(IntEnum):
    """Severity of a logged error."""

    INFO = 0
    WARNING = 1
    ERROR = 2
    CRITICAL = 3

    @property
    def label(self) -> str:
        return self.name


@dataclass
class ErrorRecord:
    """One logged error."""

    message: str = ""
    source: str = ""
    level: ErrorLevel = ErrorLevel.WARNING
    timestamp: Optional[datetime] = field(default_factory=datetime.now)
    acknowledged: bool = False


# Known recoverable / non-recoverable conditions: (source, message fragment) -> recoverable
_KNOWN_CONDITIONS = (
    ("GlucoseModel", "CGM connection lost", True,
     "Check CGM sensor connection and move pump closer to sensor."),
    ("PumpModel", "Occlusion detected", False,
     "Check infusion set for kinks or blockages. Replace infusion set if necessary."),
    ("InsulinModel", "Bolus interrupted", True,
     "Restart bolus delivery if needed. Check insulin reservoir."),
    ("BatteryModel", "Low battery", False,
     "Connect pump to charger immediately."),
)

_LEVEL_INSTRUCTIONS = {
    ErrorLevel.INFO: "No action required.",
    ErrorLevel.WARNING: "Acknowledge the warning and monitor the situation.",
    ErrorLevel.ERROR: "Review pump settings and status. Contact support if problem persists.",
    ErrorLevel.CRITICAL: "Stop using the pump and contact support immediately.",
}

_GUIDANCE = (
    ("OCCLUSION", "Check your infusion site for blockages. Remove and replace infusion set if needed."),
    ("BATTERY", "Connect pump to charger immediately. If problem persists, contact support."),
    ("INSULIN", "Replace insulin cartridge soon. Ensure you have backup supplies available."),
    ("CGM", "Check CGM sensor connection. Move pump closer to sensor or replace sensor if needed."),
    ("GLUCOSE", "Check blood glucose with finger stick. Take corrective action according to treatment plan."),
)
_DEFAULT_GUIDANCE = "If issue persists, contact Tandem Diabetes support for assistance."


def _known_condition(record: ErrorRecord):
    for source, fragment, recoverable, instructions in _KNOWN_CONDITIONS:
        if record.source == source and fragment in record.message:
            return recoverable, instructions
    return None


def _parse_level(value: Any) -> ErrorLevel:
    try:
        return ErrorLevel(_as_int(value))
    except ValueError:
        return ErrorLevel.INFO


class ErrorHandler:
    """Keeps a bounded error log, persists it and notifies listeners.

    Listeners are called as ``listener(event, payload)`` where event is one of
    ``"logged"`` (payload: ErrorRecord), ``"critical"`` (payload: message),
    ``"acknowledged"`` (payload: index), ``"all_acknowledged"`` (payload: None)
    and ``"recovered"`` (payload: index).
    """

    def __init__(
        self,
        log_path: PathLike = DEFAULT_ERROR_LOG_PATH,
        history: Optional[DataStorage] = None,
    ):
        self.log_path = Path(log_path)
        self.history = history
        self._errors: list[ErrorRecord] = []
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _emit(self, event: str, payload: Any = None) -> None:
        for listener in self._listeners:
            listener(event, payload)

    def _record(self, index: int) -> ErrorRecord:
        if not 0 <= index < len(self._errors):
            raise IndexError(f"no error at index {index}")
        return self._errors[index]

    def log_error(self, message: str, source: str = "", level: ErrorLevel = ErrorLevel.WARNING) -> None:
        """Add an error, notify listeners, save the log and forward it to history."""
        level = ErrorLevel(level)
        record = ErrorRecord(message=message, source=source, level=level)
        self._errors.append(record)
        self._emit("logged", record)
        if level is ErrorLevel.CRITICAL:
            self._emit("critical", message)
        del self._errors[:-MAX_ERRORS]
        _log.debug("[%s] %s: %s", level.label, source, message)
        self.save_error_log(self.log_path)
        if self.history is not None:
            self.history.add_event_log(message, int(level))

    def acknowledge_error(self, index: int) -> None:
        self._record(index).acknowledged = True
        self._emit("acknowledged", index)

    def acknowledge_all_errors(self) -> None:
        for record in self._errors:
            record.acknowledged = True
        self._emit("all_acknowledged")

    def low_battery_alert(self, battery_level: int) -> None:
        if battery_level <= 5:
            self.log_error(f"BATTERY CRITICALLY LOW: {battery_level}% remaining",
                           "BatteryManager", ErrorLevel.CRITICAL)
        elif battery_level <= 20:
            self.log_error(f"Battery low: {battery_level}% remaining",
                           "BatteryManager", ErrorLevel.WARNING)

    def low_insulin_alert(self, insulin_units: float) -> None:
        if insulin_units <= 10.0:
            self.log_error(f"INSULIN CRITICALLY LOW: {insulin_units:.1f} units remaining",
                           "InsulinManager", ErrorLevel.CRITICAL)
        elif insulin_units <= 50.0:
            self.log_error(f"Insulin low: {insulin_units:.1f} units remaining",
                           "InsulinManager", ErrorLevel.WARNING)

    def cgm_disconnected_alert(self, minutes_since_last_reading: int) -> None:
        self.log_error(f"CGM data gap: No readings for {minutes_since_last_reading} minutes",
                       "GlucoseModel", ErrorLevel.WARNING)

    def occlusion_alert(self) -> None:
        self.log_error("OCCLUSION DETECTED: Check infusion set for blockages",
                       "PumpModel", ErrorLevel.CRITICAL)

    def high_glucose_alert(self, glucose_value: float) -> None:
        if glucose_value >= 13.9:
            self.log_error(f"URGENT HIGH GLUCOSE: {glucose_value:.1f} mmol/L",
                           "GlucoseModel", ErrorLevel.CRITICAL)
        elif glucose_value > 10.0:
            self.log_error(f"High glucose: {glucose_value:.1f} mmol/L",
                           "GlucoseModel", ErrorLevel.WARNING)

    def low_glucose_alert(self, glucose_value: float) -> None:
        if glucose_value <= 3.1:
            self.log_error(f"URGENT LOW GLUCOSE: {glucose_value:.1f} mmol/L",
                           "GlucoseModel", ErrorLevel.CRITICAL)
        elif glucose_value < 3.9:
            self.log_error(f"Low glucose: {glucose_value:.1f} mmol/L",
                           "GlucoseModel", ErrorLevel.WARNING)

    def provide_troubleshooting_guidance(self, error_code: str) -> str:
        """Log and return guidance matching the error code."""
        upper = error_code.upper()
        guidance = next((text for key, text in _GUIDANCE if key in upper), _DEFAULT_GUIDANCE)
        self.log_error(f"GUIDANCE: {guidance}", "SupportSystem", ErrorLevel.INFO)
        return guidance

    def contact_support_prompt(self, error_code: str) -> None:
        self.log_error(
            f"Critical error {error_code} detected. Please contact Tandem Diabetes support at 1-[phone]",
            "SupportSystem",
            ErrorLevel.CRITICAL,
        )

    def all_errors(self) -> list[ErrorRecord]:
        return [replace(record) for record in self._errors]

    def active_errors(self) -> list[ErrorRecord]:
        return [replace(record) for record in self._errors if not record.acknowledged]

    def errors_of_level(self, level: ErrorLevel) -> list[ErrorRecord]:
        return [replace(record) for record in self._errors if record.level == level]

    def error_count(self) -> int:
        return len(self._errors)

    def active_error_count(self) -> int:
        return sum(not record.acknowledged for record in self._errors)

    def has_critical_errors(self) -> bool:
        return any(
            record.level is ErrorLevel.CRITICAL and not record.acknowledged
            for record in self._errors
        )

    def clear_all_errors(self) -> None:
        self._errors.clear()

    def can_recover(self, index: int) -> bool:
        if not 0 <= index < len(self._errors):
            return False
        record = self._errors[index]
        if record.level is ErrorLevel.CRITICAL:
            return False
        known = _known_condition(record)
        return known[0] if known is not None else True

    def attempt_recovery(self, index: int) -> bool:
        """Acknowledge the error if it can be recovered automatically."""
        self._record(index)
        if not self.can_recover(index):
            return False
        self._errors[index].acknowledged = True
        self._emit("recovered", index)
        return True

    def recovery_instructions(self, index: int) -> str:
        if not 0 <= index < len(self._errors):
            return NO_INSTRUCTIONS
        record = self._errors[index]
        known = _known_condition(record)
        if known is not None:
            return known[1]
        return _LEVEL_INSTRUCTIONS.get(record.level, NO_INSTRUCTIONS)

    def generate_error_report(self) -> str:
        lines = [
            f"ERROR REPORT - {_format_time(datetime.now())}\n",
            "================================================\n\n",
        ]
        for index, record in enumerate(self._errors):
            status = "Acknowledged" if record.acknowledged else "Active"
            lines.append(
                f"{index}. [{record.level.label}] {_format_time(record.timestamp)}\n"
                f"   Source: {record.source}\n"
                f"   Message: {record.message}\n"
                f"   Status: {status}\n\n"
            )
        return "".join(lines)

    def save_error_log(self, filename: PathLike) -> None:
        path = Path(filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        entries = [
            {
                "timestamp": _format_time(record.timestamp),
                "message": record.message,
                "source": record.source,
                "level": int(record.level),
                "acknowledged": record.acknowledged,
            }
            for record in self._errors
        ]
        path.write_text(json.dumps({"errors": entries}, indent=4) + "\n", encoding="utf-8")

    def load_error_log(self, filename: PathLike) -> None:
        """Replace the log with the file's contents; raises OSError or ValueError on bad input."""
        document = json.loads(Path(filename).read_text(encoding="utf-8"))
        if not isinstance(document, dict):
            raise ValueError("error log must be a JSON object")
        array = document.get("errors")
        items = array if isinstance(array, list) else []
        self._errors = []
        for item in items:
            obj = item if isinstance(item, dict) else {}
            self._errors.append(
                ErrorRecord(
                    message=_as_str(obj.get("message")),
                    source=_as_str(obj.get("source")),
                    level=_parse_level(obj.get("level")),
                    timestamp=_parse_time(obj.get("timestamp")),
                    acknowledged=_as_bool(obj.get("acknowledged")),
                )
            )