from __future__ import annotations

import math
from functools import cmp_to_key
from typing import Sequence

from .cable_matcher import CableMatcher, KeywordCableMatcher
from .dictionaries import (
    INSTALL_HOURS_PER_PANEL,
    INSTALL_KEYWORD,
    PANEL_UNIT_MARKERS,
    PANELS_PER_INSTALL_DAY,
)
from .models.catalog import CatalogItem, ProductCategory
from .models.quote import CategoryToggles, SectionKind, Selection, SelectionResult
from .models.sizing import RoofType, SizingResult

PANEL_TIE_WINDOW_W = 50
INVERTER_UNDERSIZE_TOLERANCE = 0.9


class CatalogMatcher:
    """Matches a sizing result against a snapshot of the product catalog.

    Each enabled category is resolved independently. A category that cannot
    be satisfied adds a warning and is skipped, so a partial selection is a
    normal outcome.
    """

    def __init__(self, *, cable_matcher: CableMatcher | None = None) -> None:
        self._cable_matcher = cable_matcher or KeywordCableMatcher()

    def select(
        self,
        sizing: SizingResult,
        catalog: Sequence[CatalogItem],
        roof_type: RoofType = RoofType.tile,
        categories: CategoryToggles | None = None,
    ) -> SelectionResult:
        categories = categories or CategoryToggles()
        selections: list[Selection] = []
        warnings: list[str] = []

        def active(category: ProductCategory) -> list[CatalogItem]:
            return [item for item in catalog if item.category == category and item.is_active]

        def add(item: CatalogItem, quantity: int, section: SectionKind) -> None:
            if quantity < 1:
                warnings.append(f"Computed quantity for {item.name} is 0; item not added")
                return
            selections.append(Selection(product=item, quantity=quantity, section=section))

        if categories.panels:
            panel = select_panel(active(ProductCategory.solar_panel), sizing.panel_wattage)
            if panel:
                add(panel, sizing.panel_count, SectionKind.equipment)
            else:
                warnings.append("No suitable solar panel found in catalog")

        if categories.inverter:
            inverter = select_inverter(active(ProductCategory.inverter), sizing.max_inverter_kw)
            if inverter:
                add(inverter, 1, SectionKind.equipment)
            else:
                warnings.append("No suitable inverter found in catalog")

        if categories.battery and sizing.battery_kwh:
            battery = select_battery(active(ProductCategory.battery), sizing.battery_kwh)
            if battery:
                capacity = battery.specs.capacity_kwh or sizing.battery_kwh
                add(battery, math.ceil(sizing.battery_kwh / capacity), SectionKind.equipment)
            else:
                warnings.append("No suitable battery found in catalog")

        if categories.mounting:
            mounting = select_mounting(active(ProductCategory.mounting), roof_type)
            if mounting:
                add(mounting, sizing.panel_count, SectionKind.equipment)
            else:
                warnings.append(f"No mounting system found for {RoofType(roof_type).value} roof type")

        accessories = active(ProductCategory.accessory)
        if categories.dc_cable:
            cable = self._cable_matcher.find(accessories, "DC", sizing.cable_size_dc_mm2)
            if cable:
                add(cable, sizing.cable_length_dc_m, SectionKind.accessories)
            else:
                warnings.append(f"No {sizing.cable_size_dc_mm2:g}mm² DC cable found in catalog")

        if categories.ac_cable:
            cable = self._cable_matcher.find(accessories, "AC", sizing.cable_size_ac_mm2)
            if cable:
                add(cable, sizing.cable_length_ac_m, SectionKind.accessories)
            else:
                warnings.append(f"No {sizing.cable_size_ac_mm2:g}mm² AC cable found in catalog")

        if categories.labor:
            labor = select_labor(active(ProductCategory.labor))
            if labor:
                quantity = labor_quantity(labor, sizing.panel_count, sizing.recommended_kwp)
                add(labor, quantity, SectionKind.installation)
            else:
                warnings.append("No installation labor found in catalog")

        return SelectionResult(selections=selections, warnings=warnings)


def select_panel(panels: Sequence[CatalogItem], target_wattage: float) -> CatalogItem | None:
    if not panels:
        return None

    def compare(a: CatalogItem, b: CatalogItem) -> float:
        a_wattage = a.specs.wattage or 0
        b_wattage = b.specs.wattage or 0
        a_diff = abs(a_wattage - target_wattage)
        b_diff = abs(b_wattage - target_wattage)
        if abs(a_diff - b_diff) < PANEL_TIE_WINDOW_W:
            return b_wattage - a_wattage
        return a_diff - b_diff

    return sorted(panels, key=cmp_to_key(compare))[0]


def select_inverter(inverters: Sequence[CatalogItem], target_kw: float) -> CatalogItem | None:
    if not inverters:
        return None
    suitable = [
        item
        for item in inverters
        if item.specs.power_rating_kw and item.specs.power_rating_kw >= target_kw * INVERTER_UNDERSIZE_TOLERANCE
    ]
    if not suitable:
        return max(inverters, key=lambda item: item.specs.power_rating_kw or 0)
    return min(suitable, key=lambda item: item.specs.power_rating_kw)


def select_battery(batteries: Sequence[CatalogItem], target_kwh: float) -> CatalogItem | None:
    if not batteries:
        return None
    return min(batteries, key=lambda item: abs((item.specs.capacity_kwh or 0) - target_kwh))


def select_mounting(mounting: Sequence[CatalogItem], roof_type: RoofType) -> CatalogItem | None:
    if not mounting:
        return None
    matching = [item for item in mounting if item.specs.roof_type == roof_type]
    if matching:
        return min(matching, key=lambda item: item.unit_price)
    return mounting[0]


def _is_panel_unit(unit: str) -> bool:
    unit = unit.lower()
    return any(marker in unit for marker in PANEL_UNIT_MARKERS)


def select_labor(labor: Sequence[CatalogItem]) -> CatalogItem | None:
    if not labor:
        return None
    installs = [item for item in labor if INSTALL_KEYWORD in item.name.upper()]
    for item in installs:
        if _is_panel_unit(item.unit):
            return item
    if installs:
        return installs[0]
    return labor[0]


def labor_quantity(labor: CatalogItem, panel_count: int, system_kwp: float) -> int:
    unit = labor.unit.lower()
    if _is_panel_unit(unit):
        return panel_count
    if "kw" in unit:
        return math.ceil(system_kwp)
    if "day" in unit:
        return math.ceil(panel_count / PANELS_PER_INSTALL_DAY)
    if "hour" in unit:
        return math.ceil(round(panel_count * INSTALL_HOURS_PER_PANEL, 9))
    return 1


__all__ = [
    "CatalogMatcher",
    "select_panel",
    "select_inverter",
    "select_battery",
    "select_mounting",
    "select_labor",
    "labor_quantity",
]
