"""Bolus calculation and validation."""

from __future__ import annotations

from dataclasses import dataclass

MAX_BOLUS_UNITS = 25.0
MIN_EXTENDED_DURATION = 30


class InvalidBolusError(ValueError):
    """Raised when a requested bolus is not allowed."""


@dataclass
class BolusCalculator:
    """Suggests a bolus from carbohydrates and current glucose.

    carb_ratio is grams of carbohydrate per unit; correction_factor is
    mmol/L lowered per unit; target_glucose is in mmol/L.
    """

    carb_ratio: float = 10.0
    correction_factor: float = 2.0
    target_glucose: float = 5.5

    def carb_bolus(self, carbs: float) -> float:
        if self.carb_ratio <= 0.0:
            return 0.0
        return carbs / self.carb_ratio

    def correction_bolus(self, glucose: float) -> float:
        if glucose <= self.target_glucose or self.correction_factor <= 0.0:
            return 0.0
        return (glucose - self.target_glucose) / self.correction_factor

    def suggested_bolus(self, carbs: float, glucose: float) -> float:
        """Carb plus correction bolus, never negative."""
        return max(0.0, self.carb_bolus(carbs) + self.correction_bolus(glucose))


def validate_bolus(units: float, suggested: float, extended: bool = False, duration: int = 0) -> bool:
    """Check a bolus request.

    Raises InvalidBolusError for a bolus that may not be delivered. Returns
    True when the amount is far above the suggestion (compared at the one
    decimal place shown to the user) and needs explicit confirmation.
    """
    if units <= 0.0:
        raise InvalidBolusError("Bolus amount must be greater than 0.")
    if units > MAX_BOLUS_UNITS:
        raise InvalidBolusError(
            "Bolus amount exceeds the maximum safe limit of 25 units."
        )
    shown = round(suggested, 1)
    needs_confirmation = units > shown * 2.0 and units > shown + 5.0
    if extended and duration < MIN_EXTENDED_DURATION:
        raise InvalidBolusError("Extended bolus duration must be at least 30 minutes.")
    return needs_confirmation


def confirmation_message(units: float, extended: bool = False, duration: int = 0) -> str:
    """The question put to the user before delivery."""
    suffix = f" over {duration} minutes" if extended else ""
    return f"Deliver {units:.1f} units{suffix}?"