from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, time, timedelta

from .catalog_matcher import CatalogMatcher
from .catalog_repository import CatalogRepository
from .dictionaries import (
    DEFAULT_CURRENCY,
    QUOTE_VALIDITY_DAYS,
    GenerationContext,
    default_generation_context,
)
from .models.catalog import ProductCategory
from .models.quote import (
    QuickQuoteRequest,
    Quote,
    QuoteDraft,
    QuoteSystemSummary,
    SelectionResult,
)
from .models.sizing import SizingInput, SizingResult
from .pricing import apply_totals, build_sections
from .pubsub_client import QuoteEventPublisher
from .sequencer import QuoteSequencer
from .sizing import SizingCalculator, estimate_annual_savings, estimate_payback_years

logger = logging.getLogger(__name__)


@dataclass
class QuotePreview:
    draft: QuoteDraft
    sizing: SizingResult
    selection: SelectionResult

    @property
    def warnings(self) -> list[str]:
        return list(self.selection.warnings)


@dataclass
class GeneratedQuote:
    quote: Quote
    sizing: SizingResult
    selection: SelectionResult

    @property
    def warnings(self) -> list[str]:
        return list(self.selection.warnings)


class QuoteGenerator:
    """Automated path: size, match the catalog, price and number a quote."""

    def __init__(
        self,
        *,
        catalog: CatalogRepository,
        sequencer: QuoteSequencer,
        calculator: SizingCalculator | None = None,
        matcher: CatalogMatcher | None = None,
        publisher: QuoteEventPublisher | None = None,
        currency: str = DEFAULT_CURRENCY,
        validity_days: int = QUOTE_VALIDITY_DAYS,
        context_factory=default_generation_context,
    ) -> None:
        self._catalog = catalog
        self._sequencer = sequencer
        self._calculator = calculator or SizingCalculator()
        self._matcher = matcher or CatalogMatcher()
        self._publisher = publisher
        self._currency = currency
        self._validity_days = validity_days
        self._context_factory = context_factory

    def preview(self, org_id: str, request: QuickQuoteRequest) -> QuotePreview:
        context = self._context_factory()
        sizing = self._calculator.size(request.sizing_input)
        # One snapshot per generation; catalog edits show up on the next call.
        products = self._catalog.list_active(org_id)
        selection = self._matcher.select(sizing, products, request.roof_type, request.categories)
        draft = self._build_draft(request, sizing, selection, context)
        return QuotePreview(draft=draft, sizing=sizing, selection=selection)

    def generate(self, org_id: str, request: QuickQuoteRequest) -> GeneratedQuote:
        preview = self.preview(org_id, request)
        if preview.warnings:
            logger.warning(
                "Catalog matching incomplete",
                extra={"org_id": org_id, "warnings": preview.warnings},
            )

        quote = self._sequencer.create_quote(org_id, preview.draft)

        if self._publisher:
            try:
                self._publisher.publish_quote_created(quote)
            except Exception as exc:
                logger.warning(
                    "Publishing quote_created failed (non-fatal)",
                    exc_info=True,
                    extra={"org_id": org_id, "quote_id": quote.id, "error": str(exc)},
                )

        return GeneratedQuote(quote=quote, sizing=preview.sizing, selection=preview.selection)

    def _build_draft(
        self,
        request: QuickQuoteRequest,
        sizing: SizingResult,
        selection: SelectionResult,
        context: GenerationContext,
    ) -> QuoteDraft:
        sections = build_sections(selection.selections)
        draft = apply_totals(
            QuoteDraft(
                customer_id=request.customer_id,
                customer_name=request.customer_name,
                contact_info=request.contact_info,
                site_id=request.site_id,
                site_name=request.site_name,
                valid_until=datetime.combine(context.today + timedelta(days=self._validity_days), time()),
                sections=sections,
                currency=self._currency,
                notes=self._build_notes(sizing, request.sizing_input),
                internal_notes=self._build_internal_notes(request.sizing_input),
                created_by=request.created_by,
                created_by_name=request.created_by_name,
            )
        )
        summary = self._build_summary(sizing, selection, draft.total)
        return draft.model_copy(update={"system_summary": summary})

    def _build_summary(
        self, sizing: SizingResult, selection: SelectionResult, total: float
    ) -> QuoteSystemSummary:
        total_wattage = sizing.panel_count * sizing.panel_wattage
        panel_wattage = _selected_panel_wattage(selection)
        if panel_wattage:
            total_wattage = sizing.panel_count * panel_wattage

        savings = estimate_annual_savings(sizing.estimated_annual_production_kwh)
        payback = estimate_payback_years(total, savings)
        return QuoteSystemSummary(
            total_panels=sizing.panel_count,
            total_wattage=total_wattage,
            total_kwp=total_wattage / 1000,
            battery_capacity_kwh=sizing.battery_kwh or 0,
            inverter_capacity_kw=sizing.max_inverter_kw,
            estimated_annual_production_kwh=sizing.estimated_annual_production_kwh,
            estimated_savings_per_year=savings,
            payback_years=None if math.isinf(payback) else payback,
        )

    def _build_notes(self, sizing: SizingResult, sizing_input: SizingInput) -> str:
        lines = [
            f"System Size: {sizing.recommended_kwp:g} kWp",
            f"Number of Panels: {sizing.panel_count} x {sizing.panel_wattage}W",
            f"Estimated Annual Production: {sizing.estimated_annual_production_kwh:,} kWh",
        ]
        if sizing.battery_kwh:
            lines.append(f"Battery Storage: {sizing.battery_kwh} kWh")
        lines += [
            "",
            "This quote is based on the following assumptions:",
            f"- Annual electricity consumption: {sizing_input.annual_consumption_kwh:,.0f} kWh",
            f"- Contracted power: {sizing_input.contracted_power_kva:g} kVA",
            f"- Roof type: {sizing_input.roof_type.value}",
        ]
        return "\n".join(lines)

    def _build_internal_notes(self, sizing_input: SizingInput) -> str:
        return (
            "Generated via Quick Quote.\n"
            f"Annual consumption: {sizing_input.annual_consumption_kwh:.0f} kWh\n"
            f"Contracted power: {sizing_input.contracted_power_kva:g} kVA"
        )


def _selected_panel_wattage(selection: SelectionResult) -> float | None:
    for chosen in selection.selections:
        if chosen.product.category == ProductCategory.solar_panel:
            return chosen.product.specs.wattage
    return None


__all__ = ["QuoteGenerator", "QuotePreview", "GeneratedQuote"]
