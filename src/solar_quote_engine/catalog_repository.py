from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol

from .models.catalog import CatalogItem


class CatalogRepository(Protocol):
    def list_active(self, org_id: str) -> list[CatalogItem]:
        ...


class LocalCatalogRepository:
    """Catalog snapshots stored as ``<base_path>/<org_id>.json`` lists."""

    def __init__(self, *, base_path: Path) -> None:
        self._base_path = base_path

    def list_active(self, org_id: str) -> list[CatalogItem]:
        file_path = self._base_path / f"{org_id}.json"
        if not file_path.exists():
            raise FileNotFoundError(f"Catalog not found: {file_path}")
        with file_path.open("r", encoding="utf-8") as fp:
            data = json.load(fp)
        items = [CatalogItem.model_validate(entry) for entry in data]
        return [item for item in items if item.is_active]


class StaticCatalogRepository:
    def __init__(self, items: list[CatalogItem]) -> None:
        self._items = list(items)

    def list_active(self, org_id: str) -> list[CatalogItem]:
        return [item for item in self._items if item.is_active]


__all__ = ["CatalogRepository", "LocalCatalogRepository", "StaticCatalogRepository"]
