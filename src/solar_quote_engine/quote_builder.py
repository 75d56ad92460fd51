from __future__ import annotations

from typing import Any, Mapping

from .models.catalog import CatalogItem
from .models.quote import LineItem, LineItemDiscount, QuoteDraft, Section
from .pricing import apply_totals, calculate_line_item, generate_id, product_specs

DERIVED_FIELDS = frozenset({"subtotal", "tax_amount", "total"})
EDITABLE_FIELDS = frozenset(LineItem.model_fields) - DERIVED_FIELDS - {"id"}


class QuoteBuilder:
    """Manual quote editing.

    Every mutation recomputes the edited line, its section and the quote
    totals from scratch, so ``draft`` never carries stale figures.
    """

    def __init__(self, draft: QuoteDraft | None = None) -> None:
        self._draft = apply_totals(draft or QuoteDraft())

    @property
    def draft(self) -> QuoteDraft:
        return self._draft

    def add_section(self, name: str) -> Section:
        section = Section(id=generate_id(), name=name, sort_order=len(self._draft.sections))
        self._replace_sections([*self._draft.sections, section])
        return section

    def remove_section(self, section_id: str) -> None:
        self._section(section_id)
        remaining = [section for section in self._draft.sections if section.id != section_id]
        self._replace_sections(
            [section.model_copy(update={"sort_order": index}) for index, section in enumerate(remaining)]
        )

    def add_line_item(
        self,
        section_id: str,
        *,
        name: str,
        quantity: float,
        unit_price: float,
        tax_rate: float = 0.0,
        unit: str = "un",
        description: str | None = None,
        discount: LineItemDiscount | None = None,
        product_id: str | None = None,
        specs: Mapping[str, Any] | None = None,
    ) -> LineItem:
        item = calculate_line_item(
            LineItem(
                id=generate_id(),
                product_id=product_id,
                name=name,
                description=description,
                quantity=quantity,
                unit=unit,
                unit_price=unit_price,
                tax_rate=tax_rate,
                discount=discount,
                specs=specs,
            )
        )
        section = self._section(section_id)
        self._replace_section(section.model_copy(update={"items": [*section.items, item]}))
        return item

    def add_product(self, section_id: str, product: CatalogItem, quantity: float = 1) -> LineItem:
        return self.add_line_item(
            section_id,
            name=product.name,
            description=product.description,
            quantity=quantity,
            unit=product.unit,
            unit_price=product.unit_price,
            tax_rate=product.tax_rate,
            product_id=product.id,
            specs=product_specs(product),
        )

    def update_line_item(self, section_id: str, item_id: str, **changes: Any) -> LineItem:
        derived = DERIVED_FIELDS.intersection(changes)
        if derived:
            raise ValueError(f"Derived fields cannot be edited: {', '.join(sorted(derived))}")
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Line item fields cannot be edited: {', '.join(sorted(unknown))}")
        if isinstance(changes.get("discount"), dict):
            changes["discount"] = LineItemDiscount.model_validate(changes["discount"])

        section = self._section(section_id)
        current = self._item(section, item_id)
        # Validate the merged line before re-deriving it.
        updated = calculate_line_item(LineItem.model_validate({**current.model_dump(), **changes}))
        items = [updated if item.id == item_id else item for item in section.items]
        self._replace_section(section.model_copy(update={"items": items}))
        return updated

    def remove_line_item(self, section_id: str, item_id: str) -> None:
        section = self._section(section_id)
        self._item(section, item_id)
        items = [item for item in section.items if item.id != item_id]
        self._replace_section(section.model_copy(update={"items": items}))

    def _section(self, section_id: str) -> Section:
        for section in self._draft.sections:
            if section.id == section_id:
                return section
        raise KeyError(f"Unknown section: {section_id}")

    def _item(self, section: Section, item_id: str) -> LineItem:
        for item in section.items:
            if item.id == item_id:
                return item
        raise KeyError(f"Unknown line item: {item_id}")

    def _replace_section(self, replacement: Section) -> None:
        self._replace_sections(
            [replacement if section.id == replacement.id else section for section in self._draft.sections]
        )

    def _replace_sections(self, sections: list[Section]) -> None:
        self._draft = apply_totals(self._draft.model_copy(update={"sections": sections}))


__all__ = ["QuoteBuilder"]
