import json
from datetime import datetime

import pytest

from pumpsim.datastorage import (
    BasalRecord,
    BolusRecord,
    DataStorage,
    LogEvent,
    ProfileRecord,
    calculate_daily_statistics,
    calculate_hourly_averages,
    generate_csv_report,
)

T1 = datetime(2024, 3, 1, 8, 0, 0)
T2 = datetime(2024, 3, 1, 9, 30, 0)
T3 = datetime(2024, 3, 2, 8, 15, 0)


@pytest.fixture
def storage(tmp_path):
    return DataStorage(tmp_path / "logs" / "event_log.json")


def test_glucose_round_trip(storage, tmp_path):
    data = [(T1, 5.5), (T2, 7.25)]
    path = tmp_path / "nested" / "glucose.json"
    storage.save_glucose_data(data, path)
    assert storage.load_glucose_data(path) == data


def test_glucose_file_layout(storage, tmp_path):
    path = tmp_path / "g.json"
    storage.save_glucose_data([(T1, 6.0)], path)
    document = json.loads(path.read_text())
    assert document == {"glucoseReadings": [{"timestamp": "2024-03-01T08:00:00", "value": 6.0}]}


def test_insulin_round_trip(storage, tmp_path):
    data = [(T1, 1.5), (T3, 0.25)]
    path = tmp_path / "insulin.json"
    storage.save_insulin_data(data, path)
    assert storage.load_insulin_data(path) == data
    assert "insulinDeliveries" in json.loads(path.read_text())


def test_bolus_round_trip(storage, tmp_path):
    history = [
        BolusRecord(T1, 4.2, "Meal", True, 120, False),
        BolusRecord(T2, 1.0, "Correction", False, 0, True),
    ]
    path = tmp_path / "bolus.json"
    storage.save_bolus_history(history, path)
    assert storage.load_bolus_history(path) == history


def test_basal_round_trip(storage, tmp_path):
    history = [BasalRecord(T1, T2, 0.8, "Default", True)]
    path = tmp_path / "basal.json"
    storage.save_basal_history(history, path)
    assert storage.load_basal_history(path) == history


def test_profiles_round_trip(storage, tmp_path):
    profiles = [ProfileRecord("Weekend", 0.9, 12.0, 2.5, 6.0)]
    path = tmp_path / "profiles.json"
    storage.save_profiles(profiles, path)
    assert storage.load_profiles(path) == profiles


def test_event_log_round_trip(storage, tmp_path):
    events = [LogEvent(T1, "Low battery", 1), LogEvent(T2, "Occlusion", 3)]
    path = tmp_path / "events.json"
    storage.save_event_log(events, path)
    assert storage.load_event_log(path) == events


def test_missing_file_loads_empty(storage, tmp_path):
    assert storage.load_profiles(tmp_path / "absent.json") == []


def test_invalid_json_loads_empty(storage, tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("not json at all")
    assert storage.load_glucose_data(path) == []


def test_non_object_document_loads_empty(storage, tmp_path):
    path = tmp_path / "array.json"
    path.write_text("[1, 2, 3]")
    assert storage.load_event_log(path) == []


def test_missing_fields_take_defaults(storage, tmp_path):
    path = tmp_path / "partial.json"
    path.write_text(json.dumps({"bolusHistory": [{"units": 2.0}, 7]}))
    loaded = storage.load_bolus_history(path)
    assert loaded == [BolusRecord(units=2.0), BolusRecord()]


def test_add_log_event_keeps_last_thousand(storage):
    for n in range(1005):
        storage.add_log_event(f"event {n}")
    assert len(storage.events) == 1000
    assert storage.events[0].message == "event 5"
    assert storage.events[-1].message == "event 1004"
    assert storage.events[-1].level == 0


def test_add_event_log_persists_and_notifies(storage):
    received = []
    storage.subscribe(lambda message, level: received.append((message, level)))
    storage.add_event_log("High glucose", 1)
    assert received == [("High glucose", 1)]
    loaded = storage.load_event_log(storage.event_log_path)
    assert [(e.message, e.level) for e in loaded] == [("High glucose", 1)]


def test_save_to_unwritable_path_raises(storage, tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    with pytest.raises(OSError):
        storage.save_profiles([], blocker / "profiles.json")


def test_daily_statistics_groups_and_orders():
    data = [(T3, 9.0), (T1, 6.0), (T2, 6.0), (datetime(2024, 4, 1), 20.0)]
    result = calculate_daily_statistics(T1, T3, data)
    assert result == [("2024-03-01", 6.0), ("2024-03-02", 9.0)]


def test_daily_statistics_bounds_inclusive():
    result = calculate_daily_statistics(T1, T1, [(T1, 4.4), (T2, 8.0)])
    assert result == [("2024-03-01", 4.4)]


def test_hourly_averages_cover_every_hour():
    data = [(T1, 7.0), (T3, 7.0), (T2, 5.0)]
    result = calculate_hourly_averages(T1, T3, data)
    assert [hour for hour, _ in result] == list(range(24))
    assert result[8] == (8, 7.0)
    assert result[9] == (9, 5.0)
    assert all(value == 0.0 for hour, value in result if hour not in (8, 9))


def test_csv_report_merges_by_timestamp():
    report = generate_csv_report(T1, T3, [(T2, 5.5), (T1, 6.0)], [(T1, 1.25)])
    lines = report.splitlines()
    assert lines[0] == "Timestamp,Glucose (mmol/L),Insulin (units)"
    assert lines[1] == "2024-03-01T08:00:00,6.0,1.25"
    assert lines[2].startswith("2024-03-01T09:30:00,5.5,")
    assert len(lines) == 3


def test_csv_report_excludes_out_of_range():
    report = generate_csv_report(T1, T2, [(T3, 5.0)], [(T3, 1.0)])
    assert report == "Timestamp,Glucose (mmol/L),Insulin (units)\n"