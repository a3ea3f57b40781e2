import json
from datetime import datetime, timedelta

import pytest

from pumpsim.alertsettings import (
    AlertHistoryRow,
    AlertSettings,
    AlertThresholds,
    alert_history_rows,
)
from pumpsim.datastorage import LogEvent
from pumpsim.reminders import Reminder, ReminderSchedule

NOW = datetime(2024, 5, 1, 12, 0, 0)


def test_default_thresholds_match_source():
    t = AlertThresholds()
    assert (t.low_glucose, t.urgent_low_glucose) == (3.9, 3.1)
    assert (t.high_glucose, t.urgent_high_glucose) == (10.0, 13.9)
    assert (t.low_insulin, t.critical_insulin) == (50.0, 10.0)
    assert (t.low_battery, t.critical_battery) == (20, 5)


def test_values_are_clamped_to_range():
    t = AlertThresholds()
    t.set_low_glucose(10.0)
    assert t.low_glucose == 5.0
    t.set_urgent_high_glucose(100.0)
    assert t.urgent_high_glucose == 22.0
    t.set_low_battery(1)
    assert t.low_battery == 10


def test_low_glucose_pushes_urgent_low_down():
    t = AlertThresholds()
    t.set_urgent_low_glucose(3.5)
    t.set_low_glucose(3.0)
    assert t.low_glucose == 3.0
    assert t.urgent_low_glucose < t.low_glucose


def test_urgent_low_pushes_low_up():
    t = AlertThresholds()
    t.set_low_glucose(3.0)
    t.set_urgent_low_glucose(3.5)
    assert t.urgent_low_glucose == 3.5
    assert t.low_glucose > t.urgent_low_glucose


def test_high_glucose_pushes_urgent_high_up():
    t = AlertThresholds()
    t.set_urgent_high_glucose(10.0)
    t.set_high_glucose(12.0)
    assert t.high_glucose == 12.0
    assert t.urgent_high_glucose > t.high_glucose


def test_urgent_high_pushes_high_down():
    t = AlertThresholds()
    t.set_high_glucose(15.0)
    t.set_urgent_high_glucose(11.0)
    assert t.urgent_high_glucose == 11.0
    assert t.high_glucose < t.urgent_high_glucose


def test_insulin_thresholds_stay_ordered():
    t = AlertThresholds()
    t.set_critical_insulin(30.0)
    t.set_low_insulin(20.0)
    assert t.low_insulin == 20.0
    assert t.critical_insulin < t.low_insulin
    t.set_critical_insulin(30.0)
    assert t.low_insulin > t.critical_insulin


def test_battery_thresholds_stay_ordered_and_integral():
    t = AlertThresholds()
    t.set_critical_battery(15)
    t.set_low_battery(10)
    assert t.low_battery == 10
    assert t.critical_battery < t.low_battery
    assert isinstance(t.critical_battery, int)


def test_unrelated_change_leaves_partner_alone():
    t = AlertThresholds()
    t.set_low_glucose(4.5)
    assert t.urgent_low_glucose == 3.1


def test_save_load_round_trip(tmp_path):
    path = tmp_path / "cfg" / "alerts.json"
    thresholds = AlertThresholds()
    thresholds.set_high_glucose(12.0)
    thresholds.set_low_battery(30)
    reminder_time = NOW + timedelta(days=2)
    settings = AlertSettings(
        enabled=False,
        thresholds=thresholds,
        reminders=ReminderSchedule([Reminder("Reservoir Change", reminder_time)]),
    )
    settings.save(path)
    loaded = AlertSettings.load(path, now=NOW)
    assert loaded.enabled is False
    assert loaded.thresholds == thresholds
    assert list(loaded.reminders) == [Reminder("Reservoir Change", reminder_time)]


def test_load_missing_file_gives_defaults(tmp_path):
    loaded = AlertSettings.load(tmp_path / "absent.json", now=NOW)
    assert loaded.enabled is True
    assert loaded.thresholds == AlertThresholds()
    assert len(loaded.reminders) == 0


def test_load_corrupt_file_gives_defaults(tmp_path):
    path = tmp_path / "alerts.json"
    path.write_text("{not json", encoding="utf-8")
    loaded = AlertSettings.load(path, now=NOW)
    assert loaded.thresholds == AlertThresholds()


def test_load_filters_acknowledged_past_reminders(tmp_path):
    path = tmp_path / "alerts.json"
    past = NOW - timedelta(days=1)
    future = NOW + timedelta(days=1)
    settings = AlertSettings(
        reminders=ReminderSchedule(
            [
                Reminder("CGM Sensor Change", past, acknowledged=True),
                Reminder("Infusion Set Change", past, acknowledged=False),
                Reminder("Pump Battery Change", future, acknowledged=True),
            ]
        )
    )
    settings.save(path)
    kinds = [r.kind for r in AlertSettings.load(path, now=NOW).reminders]
    assert kinds == ["Infusion Set Change", "Pump Battery Change"]


def test_load_applies_consistency_rules(tmp_path):
    path = tmp_path / "alerts.json"
    path.write_text(
        json.dumps({"Alerts": {"LowGlucoseThreshold": 3.0, "UrgentLowGlucoseThreshold": 3.4}}),
        encoding="utf-8",
    )
    loaded = AlertSettings.load(path, now=NOW)
    assert loaded.thresholds.urgent_low_glucose == 3.4
    assert loaded.thresholds.low_glucose > loaded.thresholds.urgent_low_glucose


def test_history_rows_labels_and_colors():
    events = [
        LogEvent(datetime(2024, 1, 1, 8, 0, 0), "info", 0),
        LogEvent(datetime(2024, 1, 1, 9, 0, 0), "warn", 1),
        LogEvent(datetime(2024, 1, 1, 10, 0, 0), "err", 2),
        LogEvent(datetime(2024, 1, 1, 11, 0, 0), "crit", 3),
        LogEvent(datetime(2024, 1, 1, 12, 0, 0), "odd", 7),
    ]
    rows = {row.message: row for row in alert_history_rows(events)}
    assert rows["info"].level == "Info" and rows["info"].color == (0, 122, 255)
    assert rows["warn"].level == "Warning" and rows["warn"].color == (255, 149, 0)
    assert rows["err"].level == "Error" and rows["err"].color == (255, 59, 48)
    assert rows["crit"].level == "Critical" and rows["crit"].color == (255, 0, 0)
    assert rows["odd"].level == "Unknown" and rows["odd"].color == (255, 255, 255)


def test_history_rows_newest_first_and_formatted():
    events = [
        LogEvent(datetime(2024, 1, 1, 8, 0, 5), "first", 0),
        LogEvent(datetime(2024, 1, 2, 8, 0, 0), "last", 1),
    ]
    rows = alert_history_rows(events)
    assert [row.message for row in rows] == ["last", "first"]
    assert rows[1] == AlertHistoryRow("2024-01-01 08:00:05", "first", "Info", (0, 122, 255))


@pytest.mark.parametrize("count", [0, 3])
def test_history_rows_count_matches_events(count):
    events = [LogEvent(NOW + timedelta(minutes=i), f"m{i}", 1) for i in range(count)]
    assert len(alert_history_rows(events)) == count