import pytest

from solar_quote_engine.models.catalog import CatalogItem
from solar_quote_engine.models.quote import LineItemDiscount
from solar_quote_engine.pricing import calculate_quote_totals
from solar_quote_engine.quote_builder import QuoteBuilder


def assert_consistent(builder: QuoteBuilder) -> None:
    draft = builder.draft
    fresh = calculate_quote_totals(draft.sections)
    assert draft.total == pytest.approx(fresh.total)
    assert draft.total == pytest.approx(draft.subtotal - draft.total_discount + draft.tax_amount)
    for section in draft.sections:
        assert section.subtotal == pytest.approx(sum(item.subtotal for item in section.items))


def test_every_edit_keeps_totals_consistent():
    builder = QuoteBuilder()
    equipment = builder.add_section("Equipment")
    installation = builder.add_section("Installation")
    assert_consistent(builder)

    panels = builder.add_line_item(equipment.id, name="Panel 550W", quantity=10, unit_price=180, tax_rate=23)
    assert_consistent(builder)
    labor = builder.add_line_item(installation.id, name="Installation", quantity=10, unit_price=60, tax_rate=6)
    assert_consistent(builder)

    builder.update_line_item(equipment.id, panels.id, discount={"type": "percentage", "value": 10})
    assert_consistent(builder)
    assert builder.draft.total_discount == pytest.approx(180)

    builder.update_line_item(equipment.id, panels.id, quantity=12)
    assert_consistent(builder)
    assert builder.draft.total_discount == pytest.approx(216)

    builder.remove_line_item(installation.id, labor.id)
    assert_consistent(builder)
    assert builder.draft.sections[1].subtotal == 0

    builder.remove_section(installation.id)
    assert_consistent(builder)
    assert [section.name for section in builder.draft.sections] == ["Equipment"]
    assert builder.draft.total == pytest.approx(12 * 180 * 0.9 * 1.23)


def test_repeated_discount_edits_do_not_compound():
    builder = QuoteBuilder()
    section = builder.add_section("Equipment")
    item = builder.add_line_item(
        section.id,
        name="Inverter",
        quantity=1,
        unit_price=1000,
        discount=LineItemDiscount(type="percentage", value=10),
    )

    for _ in range(3):
        item = builder.update_line_item(section.id, item.id, unit_price=1000)

    assert item.discount.amount == pytest.approx(100)
    assert builder.draft.subtotal - builder.draft.total_discount == pytest.approx(900)


def test_derived_fields_cannot_be_edited():
    builder = QuoteBuilder()
    section = builder.add_section("Equipment")
    item = builder.add_line_item(section.id, name="Panel", quantity=1, unit_price=100)

    with pytest.raises(ValueError):
        builder.update_line_item(section.id, item.id, total=1.0)


def test_only_editable_fields_can_be_changed():
    builder = QuoteBuilder()
    section = builder.add_section("Equipment")
    item = builder.add_line_item(section.id, name="Panel", quantity=1, unit_price=100)

    with pytest.raises(ValueError):
        builder.update_line_item(section.id, item.id, id="other")
    with pytest.raises(ValueError):
        builder.update_line_item(section.id, item.id, quantiy=3)

    assert builder.draft.sections[0].items[0].id == item.id
    assert builder.draft.total == 100


def test_add_product_copies_catalog_price_and_tax():
    product = CatalogItem(
        id="bat", name="Battery 5kWh", category="battery", unit_price=2400, tax_rate=23,
        specs={"kind": "battery", "capacity_kwh": 5},
    )
    builder = QuoteBuilder()
    section = builder.add_section("Equipment")

    item = builder.add_product(section.id, product, quantity=2)

    assert item.product_id == "bat"
    assert item.specs == {"kind": "battery", "capacity_kwh": 5}
    assert item.subtotal == 4800
    assert builder.draft.tax_amount == pytest.approx(1104)


def test_unknown_ids_raise_key_error():
    builder = QuoteBuilder()
    section = builder.add_section("Equipment")
    with pytest.raises(KeyError):
        builder.remove_line_item(section.id, "missing")
    with pytest.raises(KeyError):
        builder.add_line_item("missing", name="x", quantity=1, unit_price=1)
