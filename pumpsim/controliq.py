"""Closed-loop basal adjustment rules for the simulated pump."""

from __future__ import annotations

from enum import Enum

NORMAL = "Normal"
SLEEP = "Sleep"
EXERCISE = "Exercise"
ACTIVITY_MODES = (NORMAL, SLEEP, EXERCISE)

SUSPEND_THRESHOLD = 3.9


class TrendDirection(Enum):
    """Direction in which glucose is moving."""

    RISING_QUICKLY = "rising_quickly"
    RISING = "rising"
    STEADY = "steady"
    FALLING = "falling"
    FALLING_QUICKLY = "falling_quickly"


_TREND_FACTORS = {
    TrendDirection.RISING_QUICKLY: 0.2,
    TrendDirection.RISING: 0.1,
    TrendDirection.FALLING_QUICKLY: -0.2,
    TrendDirection.FALLING: -0.1,
}


class ControlIQAlgorithm:
    """Computes basal rate adjustments from glucose, trend and settings.

    Setters ignore values outside their accepted range and keep the
    previous setting.
    """

    def __init__(self):
        self.target_low = 5.5
        self.target_high = 7.0
        self.hypo_prevention_enabled = True
        self.aggressiveness = 3
        self.activity_mode = NORMAL
        self.max_basal_rate = 3.0
        self.sleep_mode_active = False
        self.exercise_mode_active = False

    def calculate_basal_adjustment(
        self,
        current_glucose: float,
        trend: TrendDirection,
        current_basal_rate: float,
        target_glucose: float = 0.0,
        insulin_on_board: float = 0.0,
    ) -> float:
        """Return the change to apply to the current basal rate (units/hour)."""
        if current_glucose < SUSPEND_THRESHOLD:
            return -current_basal_rate
        if current_glucose < self.target_low:
            return -0.5 * current_basal_rate
        if current_glucose > self.target_high:
            excess = current_glucose - self.target_high
            if excess > 5.0:
                return 0.5 * current_basal_rate
            if excess > 2.5:
                return 0.3 * current_basal_rate
            return 0.15 * current_basal_rate

        adjustment = 0.0
        if self.sleep_mode_active:
            adjustment -= 0.05 * current_basal_rate
        if self.exercise_mode_active:
            adjustment -= 0.2 * current_basal_rate
        adjustment += _TREND_FACTORS.get(trend, 0.0) * current_basal_rate

        adjustment *= 0.6 + self.aggressiveness * 0.2
        if self.hypo_prevention_enabled and adjustment < 0:
            adjustment *= 0.7
        return adjustment

    def set_target_range(self, target_low: float, target_high: float) -> None:
        self.target_low = target_low
        self.target_high = target_high

    def set_aggressiveness(self, level: int) -> None:
        """Set aggressiveness on a 1-5 scale."""
        if 1 <= level <= 5:
            self.aggressiveness = level

    def set_activity_mode(self, mode: str) -> None:
        """Switch to "Normal", "Sleep" or "Exercise"."""
        if mode in ACTIVITY_MODES:
            self.activity_mode = mode
            self.sleep_mode_active = mode == SLEEP
            self.exercise_mode_active = mode == EXERCISE

    def set_max_basal_rate(self, max_rate: float) -> None:
        if max_rate > 0.0:
            self.max_basal_rate = max_rate

    def set_sleep_setting(self, enabled: bool) -> None:
        self.sleep_mode_active = enabled
        if enabled:
            self.activity_mode = SLEEP
            self.exercise_mode_active = False
        elif not self.exercise_mode_active:
            self.activity_mode = NORMAL

    def set_exercise_setting(self, enabled: bool) -> None:
        self.exercise_mode_active = enabled
        if enabled:
            self.activity_mode = EXERCISE
            self.sleep_mode_active = False
        elif not self.sleep_mode_active:
            self.activity_mode = NORMAL