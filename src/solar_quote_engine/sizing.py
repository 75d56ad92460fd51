from __future__ import annotations

import math
from typing import Sequence

from .dictionaries import (
    AC_CABLE_BRACKETS,
    AC_CABLE_FALLBACK_MM2,
    AC_CABLE_LENGTH_FACTOR,
    BATTERY_MAX_KWH,
    BATTERY_MIN_KWH,
    BATTERY_STEP_KWH,
    CONTRACTED_POWER_OPTIONS,
    DC_AC_RATIO,
    DC_CABLE_BRACKETS,
    DC_CABLE_FALLBACK_MM2,
    DC_CABLE_LENGTH_FACTOR,
    DEFAULT_ELECTRICITY_RATE,
    DEFAULT_PANEL_WATTAGE,
    DEFAULT_SHADING_FACTOR,
    EVENING_CONSUMPTION_RATIO,
    FEED_IN_TARIFF,
    INVERTER_CONTRACT_RATIO,
    SELF_CONSUMPTION_SHARE,
    SOLAR_YIELD_KWH_PER_KWP,
    AcCableBracket,
    DcCableBracket,
)
from .models.sizing import ContractedPowerOption, SizingInput, SizingResult


def panels_for_kwp(kwp: float, panel_wattage: float) -> int:
    # Rounded first so 8.000000000001 panels stays 8.
    return math.ceil(round(kwp * 1000 / panel_wattage, 9))


class SizingCalculator:
    """Turns consumption and site data into a hardware specification.

    Pure and deterministic. Callers must only size positive consumption.
    """

    def __init__(
        self,
        *,
        solar_yield: float = SOLAR_YIELD_KWH_PER_KWP,
        dc_ac_ratio: float = DC_AC_RATIO,
        panel_wattage: int = DEFAULT_PANEL_WATTAGE,
        default_shading: float = DEFAULT_SHADING_FACTOR,
        dc_brackets: Sequence[DcCableBracket] = DC_CABLE_BRACKETS,
        ac_brackets: Sequence[AcCableBracket] = AC_CABLE_BRACKETS,
    ) -> None:
        self._solar_yield = solar_yield
        self._dc_ac_ratio = dc_ac_ratio
        self._panel_wattage = panel_wattage
        self._default_shading = default_shading
        self._dc_brackets = tuple(dc_brackets)
        self._ac_brackets = tuple(ac_brackets)

    def size(self, sizing_input: SizingInput) -> SizingResult:
        shading = sizing_input.shading_factor or self._default_shading

        max_inverter_kw = sizing_input.contracted_power_kva * INVERTER_CONTRACT_RATIO
        ideal_kwp = sizing_input.annual_consumption_kwh / self._solar_yield
        adjusted_kwp = ideal_kwp / shading
        max_kwp_by_inverter = max_inverter_kw * self._dc_ac_ratio
        target_kwp = min(adjusted_kwp, max_kwp_by_inverter)

        panel_count = panels_for_kwp(target_kwp, self._panel_wattage)
        actual_kwp = panel_count * self._panel_wattage / 1000

        distance = sizing_input.cable_distance_m
        battery_kwh = (
            self._battery_size(sizing_input.annual_consumption_kwh)
            if sizing_input.include_battery
            else None
        )

        return SizingResult(
            recommended_kwp=round(actual_kwp, 2),
            max_inverter_kw=round(max_inverter_kw, 2),
            panel_count=panel_count,
            panel_wattage=self._panel_wattage,
            cable_size_dc_mm2=self.dc_cable_size(actual_kwp, distance),
            cable_size_ac_mm2=self.ac_cable_size(max_inverter_kw),
            cable_length_dc_m=math.ceil(round(distance * DC_CABLE_LENGTH_FACTOR, 9)),
            cable_length_ac_m=math.ceil(round(distance * AC_CABLE_LENGTH_FACTOR, 9)),
            battery_kwh=battery_kwh,
            estimated_annual_production_kwh=round(actual_kwp * self._solar_yield * shading),
        )

    def dc_cable_size(self, system_kwp: float, distance_m: float) -> float:
        for bracket in self._dc_brackets:
            if system_kwp <= bracket.max_kwp and distance_m <= bracket.max_distance_m:
                return bracket.size_mm2
        return DC_CABLE_FALLBACK_MM2

    def ac_cable_size(self, inverter_kw: float) -> float:
        for bracket in self._ac_brackets:
            if inverter_kw <= bracket.max_inverter_kw:
                return bracket.size_mm2
        return AC_CABLE_FALLBACK_MM2

    def _battery_size(self, annual_consumption_kwh: float) -> int:
        evening_kwh = annual_consumption_kwh / 365 * EVENING_CONSUMPTION_RATIO
        stepped = math.ceil(evening_kwh / BATTERY_STEP_KWH) * BATTERY_STEP_KWH
        return max(BATTERY_MIN_KWH, min(stepped, BATTERY_MAX_KWH))


def contracted_power_options() -> list[ContractedPowerOption]:
    return list(CONTRACTED_POWER_OPTIONS)


def estimate_annual_savings(
    annual_production_kwh: float, electricity_rate: float = DEFAULT_ELECTRICITY_RATE
) -> int:
    """Savings from self-consumed energy plus income from exported surplus."""
    self_consumed = annual_production_kwh * SELF_CONSUMPTION_SHARE * electricity_rate
    exported = annual_production_kwh * (1 - SELF_CONSUMPTION_SHARE) * FEED_IN_TARIFF
    return round(self_consumed + exported)


def estimate_payback_years(total_investment: float, annual_savings: float) -> float:
    if annual_savings <= 0:
        return math.inf
    return round(total_investment / annual_savings, 1)


__all__ = [
    "SizingCalculator",
    "panels_for_kwp",
    "contracted_power_options",
    "estimate_annual_savings",
    "estimate_payback_years",
]
