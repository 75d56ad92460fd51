from solar_quote_engine.catalog_matcher import CatalogMatcher, labor_quantity, select_labor
from solar_quote_engine.models.catalog import CatalogItem
from solar_quote_engine.models.quote import CategoryToggles, SectionKind
from solar_quote_engine.models.sizing import RoofType, SizingResult


def sizing(**overrides) -> SizingResult:
    params = dict(
        recommended_kwp=4.95,
        max_inverter_kw=6.21,
        panel_count=9,
        panel_wattage=550,
        cable_size_dc_mm2=4,
        cable_size_ac_mm2=6,
        cable_length_dc_m=33,
        cable_length_ac_m=17,
        battery_kwh=None,
        estimated_annual_production_kwh=6311,
    )
    params.update(overrides)
    return SizingResult(**params)


def panel(item_id, wattage, price=150.0, active=True):
    return CatalogItem(
        id=item_id,
        name=f"Panel {wattage}W",
        category="solar_panel",
        unit_price=price,
        is_active=active,
        specs={"kind": "solar_panel", "wattage": wattage},
    )


def inverter(item_id, kw, price=1000.0):
    return CatalogItem(
        id=item_id,
        name=f"Inverter {kw}kW",
        category="inverter",
        unit_price=price,
        specs={"kind": "inverter", "power_rating_kw": kw},
    )


def battery(item_id, kwh, price=2000.0):
    return CatalogItem(
        id=item_id,
        name=f"Battery {kwh}kWh",
        category="battery",
        unit_price=price,
        specs={"kind": "battery", "capacity_kwh": kwh},
    )


def mounting(item_id, roof, price):
    return CatalogItem(
        id=item_id,
        name=f"Mount {roof}",
        category="mounting",
        unit_price=price,
        specs={"kind": "mounting", "roof_type": roof},
    )


def accessory(item_id, name, description=None):
    return CatalogItem(
        id=item_id,
        name=name,
        description=description,
        category="accessory",
        unit_price=2.0,
        unit="m",
    )


def labor(item_id, name, unit):
    return CatalogItem(id=item_id, name=name, category="labor", unit_price=50.0, unit=unit, specs={"kind": "labor"})


def full_catalog():
    return [
        panel("p550", 550),
        inverter("i6", 6),
        battery("b5", 5),
        mounting("m-tile", "tile", 40),
        accessory("dc4", "Solar cable 4mm²", "H1Z2Z2-K, red/black"),
        accessory("ac6", "AC main cable 6 mm²"),
        labor("l1", "Installation", "panel"),
    ]


def by_id(result):
    return {selection.product.id: selection for selection in result.selections}


def test_full_catalog_selects_every_category():
    result = CatalogMatcher().select(sizing(battery_kwh=10), full_catalog(), RoofType.tile)
    chosen = by_id(result)

    assert result.warnings == []
    assert [selection.product.id for selection in result.selections] == ["p550", "i6", "b5", "m-tile", "dc4", "ac6", "l1"]
    assert chosen["p550"].quantity == 9
    assert chosen["i6"].quantity == 1
    assert chosen["b5"].quantity == 2
    assert chosen["m-tile"].quantity == 9
    assert chosen["dc4"].quantity == 33
    assert chosen["dc4"].section == SectionKind.accessories
    assert chosen["ac6"].quantity == 17
    assert chosen["l1"].section == SectionKind.installation


def test_missing_inverter_category_only_warns():
    catalog = [item for item in full_catalog() if item.category.value != "inverter"]

    result = CatalogMatcher().select(sizing(battery_kwh=5), catalog, RoofType.tile)

    assert len(result.warnings) == 1
    assert "inverter" in result.warnings[0]
    assert {"p550", "b5", "m-tile", "dc4", "ac6", "l1"} == set(by_id(result))


def test_panel_near_ties_prefer_higher_wattage():
    catalog = [panel("p400", 400), panel("p545", 545), panel("p580", 580)]
    assert by_id(CatalogMatcher().select(sizing(), catalog)).keys() == {"p580"}

    catalog = [panel("p550", 550), panel("p700", 700)]
    assert by_id(CatalogMatcher().select(sizing(), catalog)).keys() == {"p550"}


def test_inactive_items_are_ignored():
    catalog = [panel("old", 550, active=False)]

    result = CatalogMatcher().select(sizing(), catalog, categories=CategoryToggles(
        inverter=False, battery=False, mounting=False, dc_cable=False, ac_cable=False, labor=False
    ))

    assert result.selections == []
    assert result.warnings == ["No suitable solar panel found in catalog"]


def test_inverter_prefers_smallest_qualifying_rating():
    catalog = [inverter("i10", 10), inverter("i5", 5), inverter("i6", 6)]
    # 5 kW is below 90% of 6.21 kW, so 6 kW is the smallest that qualifies
    assert "i6" in by_id(CatalogMatcher().select(sizing(), catalog))


def test_inverter_falls_back_to_largest_available():
    catalog = [inverter("i3", 3), inverter("i4", 4)]
    result = CatalogMatcher().select(sizing(), catalog, categories=CategoryToggles(
        panels=False, battery=False, mounting=False, dc_cable=False, ac_cable=False, labor=False
    ))

    assert [selection.product.id for selection in result.selections] == ["i4"]
    assert result.warnings == []


def test_battery_closest_capacity_and_count_cover_target():
    catalog = [battery("b5", 5), battery("b13", 13)]
    chosen = by_id(CatalogMatcher().select(sizing(battery_kwh=10), catalog))
    assert chosen["b13"].quantity == 1

    chosen = by_id(CatalogMatcher().select(sizing(battery_kwh=15), [battery("b5", 5)]))
    assert chosen["b5"].quantity == 3


def test_battery_skipped_without_target():
    result = CatalogMatcher().select(sizing(battery_kwh=None), [battery("b5", 5)])
    assert "b5" not in by_id(result)
    assert not any("battery" in warning for warning in result.warnings)


def test_mounting_picks_cheapest_roof_match_else_first():
    catalog = [mounting("tile", "tile", 30), mounting("flat-a", "flat", 70), mounting("flat-b", "flat", 55)]

    assert "flat-b" in by_id(CatalogMatcher().select(sizing(), catalog, RoofType.flat))
    assert "tile" in by_id(CatalogMatcher().select(sizing(), catalog, RoofType.metal))


def test_missing_mounting_names_roof_type():
    result = CatalogMatcher().select(sizing(), [], RoofType.ground)
    assert "No mounting system found for ground roof type" in result.warnings


def test_cable_falls_back_to_generic_cable_of_same_gauge():
    catalog = [accessory("generic", "Cable 10MM² black")]

    result = CatalogMatcher().select(sizing(cable_size_dc_mm2=10), catalog)

    assert by_id(result)["generic"].quantity == 33
    assert "No 6mm² AC cable found in catalog" in result.warnings


def test_missing_cable_gauge_warns():
    catalog = [accessory("dc4", "Solar cable 4mm²")]

    result = CatalogMatcher().select(sizing(cable_size_dc_mm2=16, cable_size_ac_mm2=2.5), catalog)

    assert "No 16mm² DC cable found in catalog" in result.warnings
    assert "No 2.5mm² AC cable found in catalog" in result.warnings


def test_zero_cable_run_is_not_added():
    result = CatalogMatcher().select(sizing(cable_length_dc_m=0, cable_length_ac_m=0), full_catalog())

    assert "dc4" not in by_id(result)
    assert "ac6" not in by_id(result)
    assert sum("is 0" in warning for warning in result.warnings) == 2


def test_labor_preference_order():
    items = [labor("inspect", "Electrical inspection", "job"), labor("hourly", "Installation crew", "hour"),
             labor("per-panel", "Install panels", "panel")]
    assert select_labor(items).id == "per-panel"
    assert select_labor(items[:2]).id == "hourly"
    assert select_labor(items[:1]).id == "inspect"
    assert select_labor([]) is None


def test_labor_quantity_follows_unit():
    assert labor_quantity(labor("a", "Install", "panel"), 9, 4.95) == 9
    assert labor_quantity(labor("b", "Install", "kW"), 9, 4.95) == 5
    assert labor_quantity(labor("c", "Install", "day"), 9, 4.95) == 2
    assert labor_quantity(labor("d", "Install", "hour"), 9, 4.95) == 11
    assert labor_quantity(labor("e", "Install", "job"), 9, 4.95) == 1


def test_disabled_categories_produce_nothing():
    toggles = CategoryToggles(
        panels=False, inverter=False, battery=False, mounting=False, dc_cable=False, ac_cable=False, labor=False
    )
    result = CatalogMatcher().select(sizing(battery_kwh=5), full_catalog(), categories=toggles)
    assert result.selections == []
    assert result.warnings == []


def test_custom_cable_matcher_is_used():
    class FirstAccessory:
        def find(self, accessories, conductor, size_mm2):
            return accessories[0] if accessories else None

    catalog = [accessory("any", "Connector kit")]
    result = CatalogMatcher(cable_matcher=FirstAccessory()).select(sizing(), catalog)
    assert [selection.product.id for selection in result.selections] == ["any", "any"]
