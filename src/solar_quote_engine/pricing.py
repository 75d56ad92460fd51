from __future__ import annotations

import math
import uuid
from typing import Any, Iterable, Mapping, Sequence

from .dictionaries import CURRENCY_SYMBOLS, DEFAULT_CURRENCY, DEFAULT_SECTIONS, SectionDefinition
from .errors import QuoteTotalsMismatchError
from .models.catalog import CatalogItem
from .models.quote import (
    LineItem,
    QuoteDraft,
    QuoteTotals,
    Section,
    SectionKind,
    Selection,
)


def generate_id() -> str:
    return uuid.uuid4().hex[:12]


def calculate_line_item(item: LineItem) -> LineItem:
    """Derive discount amount, subtotal, tax and total for a line.

    Always works from quantity, unit price and the discount's original
    ``value``; a previously derived ``discount.amount`` is ignored. No
    rounding happens here.
    """
    base = item.quantity * item.unit_price
    discount_amount = 0.0
    if item.discount is not None:
        if item.discount.type == "percentage":
            discount_amount = base * item.discount.value / 100
        else:
            discount_amount = item.discount.value

    # Not clamped: a discount larger than the base yields a negative subtotal.
    subtotal = base - discount_amount
    tax_amount = subtotal * item.tax_rate / 100

    discount = (
        item.discount.model_copy(update={"amount": discount_amount}) if item.discount is not None else None
    )
    return item.model_copy(
        update={
            "discount": discount,
            "subtotal": subtotal,
            "tax_amount": tax_amount,
            "total": subtotal + tax_amount,
        }
    )


def calculate_section(section: Section) -> Section:
    items = [calculate_line_item(item) for item in section.items]
    return section.model_copy(update={"items": items, "subtotal": sum(item.subtotal for item in items)})


def calculate_quote_totals(sections: Iterable[Section]) -> QuoteTotals:
    """Re-sum every line item; section subtotals are never reused."""
    subtotal = 0.0
    total_discount = 0.0
    tax_amount = 0.0
    for section in sections:
        for item in section.items:
            line = calculate_line_item(item)
            subtotal += line.base_amount
            if line.discount is not None:
                total_discount += line.discount.amount
            tax_amount += line.tax_amount
    return QuoteTotals(
        subtotal=subtotal,
        total_discount=total_discount,
        tax_amount=tax_amount,
        total=subtotal - total_discount + tax_amount,
    )


def apply_totals(draft: QuoteDraft) -> QuoteDraft:
    """Recompute every line, section and quote total of a draft."""
    sections = [calculate_section(section) for section in draft.sections]
    totals = calculate_quote_totals(sections)
    return draft.model_copy(update={"sections": sections, **totals.model_dump()})


def _matches(stored: float, expected: float) -> bool:
    return math.isclose(stored, expected, rel_tol=1e-9, abs_tol=1e-9)


def verify_totals(draft: QuoteDraft) -> None:
    """Raise if any stored derived figure disagrees with a fresh recomputation."""
    fresh = apply_totals(draft)
    for stored_section, fresh_section in zip(draft.sections, fresh.sections):
        for stored, expected in zip(stored_section.items, fresh_section.items):
            if not all(
                _matches(getattr(stored, field), getattr(expected, field))
                for field in ("subtotal", "tax_amount", "total")
            ):
                raise QuoteTotalsMismatchError(f"Line item {stored.id} carries stale totals")
        if not _matches(stored_section.subtotal, fresh_section.subtotal):
            raise QuoteTotalsMismatchError(f"Section {stored_section.name} subtotal is stale")
    for field in ("subtotal", "total_discount", "tax_amount", "total"):
        stored = getattr(draft, field)
        expected = getattr(fresh, field)
        if not _matches(stored, expected):
            raise QuoteTotalsMismatchError(f"Quote {field} {stored} does not match recomputed {expected}")


def product_specs(product: CatalogItem) -> dict[str, Any]:
    return product.specs.model_dump(mode="json", exclude_none=True)


def line_item_from_selection(selection: Selection) -> LineItem:
    product = selection.product
    return calculate_line_item(
        LineItem(
            id=generate_id(),
            product_id=product.id,
            name=product.name,
            description=product.description,
            quantity=selection.quantity,
            unit=product.unit,
            unit_price=product.unit_price,
            tax_rate=product.tax_rate,
            specs=product_specs(product),
        )
    )


def build_sections(
    selections: Sequence[Selection],
    definitions: Mapping[SectionKind, SectionDefinition] = DEFAULT_SECTIONS,
) -> list[Section]:
    """Group selections into the standard sections, dropping empty ones."""
    grouped: dict[SectionKind, list[LineItem]] = {kind: [] for kind in definitions}
    for selection in selections:
        grouped.setdefault(selection.section, []).append(line_item_from_selection(selection))

    sections: list[Section] = []
    for kind, definition in sorted(definitions.items(), key=lambda entry: entry[1].sort_order):
        items = grouped.get(kind) or []
        if not items:
            continue
        sections.append(
            calculate_section(
                Section(id=generate_id(), name=definition.label, sort_order=definition.sort_order, items=items)
            )
        )
    return sections


def format_currency(value: float, currency: str = DEFAULT_CURRENCY) -> str:
    """Display formatting; the only place amounts are rounded."""
    symbol = CURRENCY_SYMBOLS.get(currency, currency)
    return f"{value:,.2f} {symbol}"


__all__ = [
    "generate_id",
    "calculate_line_item",
    "calculate_section",
    "calculate_quote_totals",
    "apply_totals",
    "verify_totals",
    "product_specs",
    "line_item_from_selection",
    "build_sections",
    "format_currency",
]
