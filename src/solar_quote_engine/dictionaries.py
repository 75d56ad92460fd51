from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Mapping, Sequence

from .models.quote import SectionKind
from .models.sizing import ContractedPowerOption

# Portugal-calibrated sizing constants
SOLAR_YIELD_KWH_PER_KWP = 1500.0
DC_AC_RATIO = 1.2
INVERTER_CONTRACT_RATIO = 0.9
DEFAULT_SHADING_FACTOR = 0.85
DEFAULT_PANEL_WATTAGE = 550
EVENING_CONSUMPTION_RATIO = 0.3
BATTERY_STEP_KWH = 5
BATTERY_MIN_KWH = 5
BATTERY_MAX_KWH = 20
DC_CABLE_LENGTH_FACTOR = 2.2
AC_CABLE_LENGTH_FACTOR = 1.1

# Savings model
DEFAULT_ELECTRICITY_RATE = 0.16
SELF_CONSUMPTION_SHARE = 0.7
FEED_IN_TARIFF = 0.06

QUOTE_VALIDITY_DAYS = 30
DEFAULT_CURRENCY = "EUR"
CURRENCY_SYMBOLS: Mapping[str, str] = {"EUR": "€", "USD": "$", "GBP": "£"}


@dataclass(frozen=True)
class DcCableBracket:
    max_kwp: float
    max_distance_m: float
    size_mm2: float


@dataclass(frozen=True)
class AcCableBracket:
    max_inverter_kw: float
    size_mm2: float


DC_CABLE_BRACKETS: Sequence[DcCableBracket] = (
    DcCableBracket(max_kwp=3, max_distance_m=15, size_mm2=4),
    DcCableBracket(max_kwp=6, max_distance_m=20, size_mm2=4),
    DcCableBracket(max_kwp=6, max_distance_m=30, size_mm2=6),
    DcCableBracket(max_kwp=10, max_distance_m=20, size_mm2=6),
    DcCableBracket(max_kwp=10, max_distance_m=40, size_mm2=10),
    DcCableBracket(max_kwp=15, max_distance_m=30, size_mm2=10),
)
DC_CABLE_FALLBACK_MM2 = 16.0

AC_CABLE_BRACKETS: Sequence[AcCableBracket] = (
    AcCableBracket(max_inverter_kw=3, size_mm2=2.5),
    AcCableBracket(max_inverter_kw=5, size_mm2=4),
    AcCableBracket(max_inverter_kw=8, size_mm2=6),
    AcCableBracket(max_inverter_kw=12, size_mm2=10),
)
AC_CABLE_FALLBACK_MM2 = 16.0

CONTRACTED_POWER_OPTIONS: Sequence[ContractedPowerOption] = tuple(
    ContractedPowerOption(value=value, label=f"{value} kVA")
    for value in (3.45, 6.9, 10.35, 13.8, 20.7, 27.6, 34.5, 41.4)
)


@dataclass(frozen=True)
class SectionDefinition:
    kind: SectionKind
    label: str
    sort_order: int


DEFAULT_SECTIONS: Mapping[SectionKind, SectionDefinition] = {
    SectionKind.equipment: SectionDefinition(SectionKind.equipment, "Equipment", 0),
    SectionKind.installation: SectionDefinition(SectionKind.installation, "Installation", 1),
    SectionKind.accessories: SectionDefinition(SectionKind.accessories, "Accessories", 2),
}

# Labor throughput assumptions for residential jobs
PANELS_PER_INSTALL_DAY = 8
INSTALL_HOURS_PER_PANEL = 1.2
INSTALL_KEYWORD = "INSTALL"
PANEL_UNIT_MARKERS: Sequence[str] = ("panel", "un")


@dataclass
class GenerationContext:
    today: date


def default_generation_context() -> GenerationContext:
    return GenerationContext(today=date.today())


__all__ = [
    "SOLAR_YIELD_KWH_PER_KWP",
    "DC_AC_RATIO",
    "DEFAULT_SHADING_FACTOR",
    "DEFAULT_PANEL_WATTAGE",
    "DC_CABLE_BRACKETS",
    "AC_CABLE_BRACKETS",
    "CONTRACTED_POWER_OPTIONS",
    "DEFAULT_SECTIONS",
    "SectionDefinition",
    "DcCableBracket",
    "AcCableBracket",
    "GenerationContext",
    "default_generation_context",
]
