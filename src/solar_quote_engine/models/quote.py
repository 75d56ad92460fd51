from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal, Mapping, Sequence

from pydantic import BaseModel, EmailStr, Field

from .catalog import CatalogItem
from .sizing import RoofType, SizingInput


class QuoteStatus(str, Enum):
    draft = "draft"
    pending_approval = "pending_approval"
    approved = "approved"
    sent = "sent"
    viewed = "viewed"
    accepted = "accepted"
    rejected = "rejected"
    expired = "expired"


class SectionKind(str, Enum):
    equipment = "equipment"
    installation = "installation"
    accessories = "accessories"


class CategoryToggles(BaseModel):
    panels: bool = True
    inverter: bool = True
    battery: bool = True
    mounting: bool = True
    dc_cable: bool = True
    ac_cable: bool = True
    labor: bool = True


class Selection(BaseModel):
    product: CatalogItem
    quantity: int = Field(ge=1)
    section: SectionKind

    @property
    def product_id(self) -> str:
        return self.product.id


class SelectionResult(BaseModel):
    selections: Sequence[Selection] = Field(default_factory=list)
    warnings: Sequence[str] = Field(default_factory=list)


class LineItemDiscount(BaseModel):
    type: Literal["percentage", "fixed"]
    value: float = Field(ge=0)
    # Derived by calculate_line_item; never read back as an input.
    amount: float = 0.0


class LineItem(BaseModel):
    id: str
    product_id: str | None = None
    name: str
    description: str | None = None
    quantity: float = Field(ge=0)
    unit: str = "un"
    unit_price: float
    tax_rate: float = 0.0
    discount: LineItemDiscount | None = None
    subtotal: float = 0.0
    tax_amount: float = 0.0
    total: float = 0.0
    # Product specs at selection time, for rendering.
    specs: Mapping[str, Any] | None = None

    @property
    def base_amount(self) -> float:
        return self.quantity * self.unit_price


class Section(BaseModel):
    id: str
    name: str
    sort_order: int = 0
    items: Sequence[LineItem] = Field(default_factory=list)
    subtotal: float = 0.0


class QuoteTotals(BaseModel):
    subtotal: float = 0.0
    total_discount: float = 0.0
    tax_amount: float = 0.0
    total: float = 0.0


class QuoteContactInfo(BaseModel):
    name: str
    email: EmailStr | None = None
    phone: str | None = None
    company: str | None = None


class QuoteSystemSummary(BaseModel):
    total_panels: int
    total_wattage: float
    total_kwp: float
    battery_capacity_kwh: float = 0.0
    inverter_capacity_kw: float
    estimated_annual_production_kwh: int | None = None
    estimated_savings_per_year: float | None = None
    payback_years: float | None = None


class QuickQuoteRequest(BaseModel):
    sizing_input: SizingInput
    categories: CategoryToggles = Field(default_factory=CategoryToggles)
    customer_id: str | None = None
    customer_name: str | None = None
    contact_info: QuoteContactInfo | None = None
    site_id: str | None = None
    site_name: str | None = None
    created_by: str | None = None
    created_by_name: str | None = None

    @property
    def roof_type(self) -> RoofType:
        return self.sizing_input.roof_type


class QuoteDraft(BaseModel):
    """Everything about a quote except what creation assigns."""

    customer_id: str | None = None
    customer_name: str | None = None
    contact_info: QuoteContactInfo | None = None
    site_id: str | None = None
    site_name: str | None = None
    status: QuoteStatus = QuoteStatus.draft
    valid_until: datetime | None = None
    sections: Sequence[Section] = Field(default_factory=list)
    subtotal: float = 0.0
    total_discount: float = 0.0
    tax_amount: float = 0.0
    total: float = 0.0
    currency: str = "EUR"
    notes: str | None = None
    internal_notes: str | None = None
    terms: str | None = None
    created_by: str | None = None
    created_by_name: str | None = None
    system_summary: QuoteSystemSummary | None = None


class Quote(QuoteDraft):
    id: str
    org_id: str
    number: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    approved_by: str | None = None
    approved_at: datetime | None = None
    sent_at: datetime | None = None
    viewed_at: datetime | None = None
    accepted_at: datetime | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    pdf_url: str | None = None


__all__ = [
    "QuoteStatus",
    "SectionKind",
    "CategoryToggles",
    "Selection",
    "SelectionResult",
    "LineItemDiscount",
    "LineItem",
    "Section",
    "QuoteTotals",
    "QuoteContactInfo",
    "QuoteSystemSummary",
    "QuickQuoteRequest",
    "QuoteDraft",
    "Quote",
]
