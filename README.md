# pumpsim

The non-graphical core of an insulin pump simulator. It is a plain Python library and needs only the standard library. It does not talk to any device, and it is not a medical tool. It is meant for teaching and for trying out ideas.

## Modules

### `pumpsim.datastorage`

- `DataStorage` saves and loads data as JSON files. It handles:
  - glucose readings and insulin deliveries, as `(datetime, float)` pairs;
  - `BolusRecord`, `BasalRecord` and `ProfileRecord` lists;
  - the `LogEvent` event log.
- Loading a missing or malformed file gives an empty list.
- `add_log_event` keeps events in memory, up to the newest 1000.
- `add_event_log` keeps the event in the same way. It then writes the log to `event_log_path`, which defaults to `~/.tslimx2simulator/event_log.json`. Last, it calls every listener registered with `subscribe` as `listener(message, level)`.
- `calculate_daily_statistics` gives the average glucose per day within a time range.
- `calculate_hourly_averages` gives the average glucose for each of the 24 hours of the day. An hour with no readings gives `0.0`.
- `generate_csv_report` merges glucose and insulin readings by timestamp into CSV text.

### `pumpsim.errorhandler`

`ErrorHandler` keeps an error log of up to 1000 `ErrorRecord` entries, each with an `ErrorLevel`: `INFO`, `WARNING`, `ERROR` or `CRITICAL`.

Each time `log_error` is called, it does four things:
- notifies listeners;
- writes the whole log to `log_path`, which defaults to `~/.tslimx2simulator/error_log.json`;
- forwards the message to an optional `DataStorage`;
- writes a debug message through `logging`.

Ready-made alerts:
- `low_battery_alert`
- `low_insulin_alert`
- `cgm_disconnected_alert`
- `occlusion_alert`
- `high_glucose_alert`
- `low_glucose_alert`
- `provide_troubleshooting_guidance`
- `contact_support_prompt`

Working with the log:
- Acknowledge entries with `acknowledge_error` and `acknowledge_all_errors`.
- Query it with `active_errors`, `errors_of_level` and `has_critical_errors`.
- `can_recover` and `attempt_recovery` apply the recovery rules, and `recovery_instructions` gives the matching advice.
- `generate_error_report` produces a text report.
- `save_error_log` and `load_error_log` write and read the log as JSON.

Listeners are called as `listener(event, payload)`. The event is one of `"logged"`, `"critical"`, `"acknowledged"`, `"all_acknowledged"` or `"recovered"`.

### `pumpsim.controliq`

- `ControlIQAlgorithm.calculate_basal_adjustment` returns the change to the current basal rate.
- The change depends on:
  - current glucose;
  - the trend, given as a `TrendDirection`;
  - the target range;
  - the activity mode: `"Normal"`, `"Sleep"` or `"Exercise"`;
  - aggressiveness, from 1 to 5;
  - hypo prevention.
- Setters ignore values outside their accepted range.

### `pumpsim.bolus`

- `BolusCalculator` suggests a bolus from carbohydrates and glucose, using a carb ratio, a correction factor and a target glucose.
- `validate_bolus` raises `InvalidBolusError` in three cases:
  - the amount is zero or below;
  - the amount is over 25 units;
  - it is an extended bolus shorter than 30 minutes.
- Otherwise `validate_bolus` returns whether the amount is far enough above the suggestion to need confirmation.
- `confirmation_message` builds the question put to the user.

### `pumpsim.reminders`

- `ReminderSchedule` keeps `Reminder` entries ordered by due time.
- `add` rejects a time in the past.
- `Reminder.status` returns a `ReminderStatus`: acknowledged, overdue, due within 24 hours, or further in the future.

### `pumpsim.alertsettings`

- `AlertThresholds` holds glucose, insulin and battery thresholds.
  - Each setter clamps the value to its allowed range.
  - If a setting would cross its partner threshold, the setter moves the partner past it.
- `AlertSettings` bundles the enabled flag, the thresholds and a `ReminderSchedule`.
  - It saves them as JSON with `save`.
  - It reads them back with `AlertSettings.load`. Missing values fall back to defaults, and past acknowledged reminders are dropped.
- `alert_history_rows` turns `LogEvent` entries into `AlertHistoryRow` items with a label and colour, newest first.

## What it does not do

The package has no screens or other user interface, and no command to run. It has no models of the pump, glucose sensor or insulin delivery that would produce data over time. The modules only compute, validate, store and load. Joining them into a running simulation is left to the caller.

## Installation

```
pip install .
```

## Example

```python
from pumpsim.bolus import BolusCalculator, validate_bolus
from pumpsim.controliq import ControlIQAlgorithm, TrendDirection

calc = BolusCalculator()
units = calc.suggested_bolus(carbs=45.0, glucose=9.5)
needs_confirmation = validate_bolus(units, units, False, 0)

algo = ControlIQAlgorithm()
delta = algo.calculate_basal_adjustment(6.2, TrendDirection.RISING, 1.0, 6.0, 0.0)
```

## Tests

```
pip install .[test]
pytest
```