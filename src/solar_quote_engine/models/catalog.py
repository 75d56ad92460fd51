from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .sizing import RoofType


class ProductCategory(str, Enum):
    solar_panel = "solar_panel"
    inverter = "inverter"
    battery = "battery"
    mounting = "mounting"
    labor = "labor"
    accessory = "accessory"
    other = "other"


class PanelSpecs(BaseModel):
    kind: Literal["solar_panel"] = "solar_panel"
    wattage: float | None = None
    efficiency: float | None = None
    cell_type: Literal["monocrystalline", "polycrystalline", "thin_film"] | None = None
    warranty_years: int | None = None


class InverterSpecs(BaseModel):
    kind: Literal["inverter"] = "inverter"
    power_rating_kw: float | None = None
    mppt_channels: int | None = None
    phases: Literal[1, 3] = 1
    inverter_type: Literal["string", "micro", "hybrid"] | None = None
    efficiency: float | None = None


class BatterySpecs(BaseModel):
    kind: Literal["battery"] = "battery"
    capacity_kwh: float | None = None
    usable_capacity_kwh: float | None = None
    chemistry: Literal["lithium_ion", "lfp", "lead_acid"] | None = None
    cycles: int | None = None


class MountingSpecs(BaseModel):
    kind: Literal["mounting"] = "mounting"
    roof_type: RoofType | None = None
    material: Literal["aluminum", "steel", "galvanized"] | None = None
    max_panels: int | None = None


class LaborSpecs(BaseModel):
    kind: Literal["labor"] = "labor"
    unit_type: Literal["hour", "day", "fixed", "per_panel", "per_kw"] | None = None
    requires_certification: bool = False


class GenericSpecs(BaseModel):
    kind: Literal["accessory", "other"]
    attributes: Mapping[str, Any] = Field(default_factory=dict)


ProductSpecs = Annotated[
    Union[PanelSpecs, InverterSpecs, BatterySpecs, MountingSpecs, LaborSpecs, GenericSpecs],
    Field(discriminator="kind"),
]


class CatalogItem(BaseModel):
    """A catalog product. ``specs.kind`` always equals ``category``."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    sku: str | None = None
    description: str | None = None
    category: ProductCategory
    unit_price: float
    unit: str = "un"
    tax_rate: float = 23.0
    is_active: bool = True
    manufacturer: str | None = None
    model: str | None = None
    specs: ProductSpecs

    @model_validator(mode="before")
    @classmethod
    def _default_specs_kind(cls, data: Any) -> Any:
        # Imported products may carry empty or missing specs.
        if not isinstance(data, dict):
            return data
        category = data.get("category")
        if isinstance(category, ProductCategory):
            category = category.value
        specs = data.get("specs")
        if specs is None:
            return {**data, "specs": {"kind": category}}
        if isinstance(specs, dict) and "kind" not in specs:
            return {**data, "specs": {**specs, "kind": category}}
        return data

    @model_validator(mode="after")
    def _specs_match_category(self) -> "CatalogItem":
        if self.specs.kind != self.category.value:
            raise ValueError(
                f"specs of kind {self.specs.kind!r} do not belong to category {self.category.value!r}"
            )
        return self


__all__ = [
    "ProductCategory",
    "PanelSpecs",
    "InverterSpecs",
    "BatterySpecs",
    "MountingSpecs",
    "LaborSpecs",
    "GenericSpecs",
    "ProductSpecs",
    "CatalogItem",
]
