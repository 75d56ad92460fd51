from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class RoofType(str, Enum):
    tile = "tile"
    flat = "flat"
    metal = "metal"
    ground = "ground"


class SizingInput(BaseModel):
    """Consumption and site data supplied by the operator.

    ``annual_consumption_kwh`` must be positive before sizing is attempted;
    the calculator itself does not check it.
    """

    model_config = ConfigDict(frozen=True)

    annual_consumption_kwh: float = Field(ge=0)
    contracted_power_kva: float = Field(gt=0)
    cable_distance_m: float = Field(default=0.0, ge=0)
    roof_type: RoofType = RoofType.tile
    shading_factor: float | None = Field(default=None, gt=0, le=1)
    include_battery: bool = False


class SizingResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    recommended_kwp: float
    max_inverter_kw: float
    panel_count: int = Field(ge=0)
    panel_wattage: int
    cable_size_dc_mm2: float
    cable_size_ac_mm2: float
    cable_length_dc_m: int
    cable_length_ac_m: int
    battery_kwh: int | None = None
    estimated_annual_production_kwh: int


class ContractedPowerOption(BaseModel):
    value: float
    label: str


__all__ = ["RoofType", "SizingInput", "SizingResult", "ContractedPowerOption"]
