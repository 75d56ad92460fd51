from __future__ import annotations

from typing import Literal, Mapping, Protocol, Sequence

from .models.catalog import CatalogItem

Conductor = Literal["DC", "AC"]

TYPE_MARKERS: Mapping[Conductor, Sequence[str]] = {
    "DC": ("DC", "SOLAR"),
    "AC": ("AC", "MAIN"),
}
CABLE_KEYWORD = "CABLE"


class CableMatcher(Protocol):
    def find(
        self, accessories: Sequence[CatalogItem], conductor: Conductor, size_mm2: float
    ) -> CatalogItem | None:
        ...


def size_markers(size_mm2: float) -> tuple[str, ...]:
    gauge = f"{size_mm2:g}"
    return (f"{gauge}MM", f"{gauge} MM", f"{gauge}MM²", f"{gauge} MM²")


def _search_text(item: CatalogItem) -> str:
    return f"{item.name} {item.description or ''}".upper()


class KeywordCableMatcher:
    """Finds cables by type and gauge markers in product names and descriptions.

    A catalog without structured cable metadata only tells us what a cable is
    through its wording, e.g. "Solar cable 6mm²" or "AC main cable 10 mm".
    """

    def find(
        self, accessories: Sequence[CatalogItem], conductor: Conductor, size_mm2: float
    ) -> CatalogItem | None:
        markers = size_markers(size_mm2)
        type_markers = TYPE_MARKERS[conductor]

        for item in accessories:
            text = _search_text(item)
            has_type = any(marker in text for marker in type_markers)
            if has_type and any(marker in text for marker in markers):
                return item

        # Looser pass: any cable of the right gauge
        for item in accessories:
            text = _search_text(item)
            if CABLE_KEYWORD in text and any(marker in text for marker in markers):
                return item
        return None


__all__ = ["CableMatcher", "KeywordCableMatcher", "Conductor", "size_markers"]
