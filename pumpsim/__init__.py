"""Insulin pump simulator core: storage, error log, basal adjustment, bolus, reminders, alert settings."""

__version__ = "1.0.0"
__all__ = ["alertsettings", "bolus", "controliq", "datastorage", "errorhandler", "reminders"]