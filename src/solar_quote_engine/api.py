from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Sequence

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .catalog_repository import CatalogRepository
from .errors import QuoteEngineError
from .generator import QuoteGenerator
from .logging_config import set_trace_id
from .models.quote import QuickQuoteRequest, Quote, QuoteDraft, QuoteStatus, Section
from .models.sizing import ContractedPowerOption, SizingInput, SizingResult
from .pubsub_client import QuoteEventPublisher
from .quote_service import QuoteService
from .quote_store import QuoteStore
from .sequencer import QuoteSequencer
from .sizing import SizingCalculator, contracted_power_options, estimate_annual_savings

logger = logging.getLogger(__name__)


class SizingResponse(BaseModel):
    sizing: SizingResult
    estimated_savings_per_year: int


class GenerateQuoteResponse(BaseModel):
    quote: Quote
    sizing: SizingResult
    warnings: list[str] = Field(default_factory=list)


class PreviewQuoteResponse(BaseModel):
    draft: QuoteDraft
    sizing: SizingResult
    warnings: list[str] = Field(default_factory=list)


class TransitionRequest(BaseModel):
    status: QuoteStatus
    actor: str | None = None
    reason: str | None = None


class UpdateSectionsRequest(BaseModel):
    sections: Sequence[Section]


def create_app(
    *,
    store: QuoteStore,
    catalog: CatalogRepository,
    publisher: QuoteEventPublisher | None = None,
) -> FastAPI:
    app = FastAPI(title="Solar Quote Engine API", version="0.1.0")

    calculator = SizingCalculator()
    sequencer = QuoteSequencer(store)
    generator = QuoteGenerator(catalog=catalog, sequencer=sequencer, calculator=calculator, publisher=publisher)
    service = QuoteService(store, sequencer=sequencer, publisher=publisher)

    @app.middleware("http")
    async def trace_context(request: Request, call_next):
        header = request.headers.get("X-Cloud-Trace-Context")
        set_trace_id(header.split("/")[0] if header else str(uuid.uuid4()))
        try:
            return await call_next(request)
        finally:
            set_trace_id(None)

    @app.exception_handler(QuoteEngineError)
    async def quote_engine_error(request: Request, exc: QuoteEngineError) -> JSONResponse:
        logger.warning(
            "Request failed",
            extra={"path": request.url.path, "status_code": exc.status_code, "error": exc.message},
        )
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(FileNotFoundError)
    async def catalog_missing(request: Request, exc: FileNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.post("/v1/sizing", response_model=SizingResponse)
    async def size_system(sizing_input: SizingInput) -> SizingResponse:
        sizing = calculator.size(sizing_input)
        return SizingResponse(
            sizing=sizing,
            estimated_savings_per_year=estimate_annual_savings(sizing.estimated_annual_production_kwh),
        )

    @app.get("/v1/sizing/contracted-power-options", response_model=list[ContractedPowerOption])
    async def list_contracted_power_options() -> list[ContractedPowerOption]:
        return contracted_power_options()

    @app.post("/v1/orgs/{org_id}/quotes:preview", response_model=PreviewQuoteResponse)
    async def preview_quote(org_id: str, request: QuickQuoteRequest) -> PreviewQuoteResponse:
        preview = await asyncio.to_thread(generator.preview, org_id, request)
        return PreviewQuoteResponse(draft=preview.draft, sizing=preview.sizing, warnings=preview.warnings)

    @app.post("/v1/orgs/{org_id}/quotes:generate", response_model=GenerateQuoteResponse)
    async def generate_quote(org_id: str, request: QuickQuoteRequest) -> GenerateQuoteResponse:
        generated = await asyncio.to_thread(generator.generate, org_id, request)
        return GenerateQuoteResponse(quote=generated.quote, sizing=generated.sizing, warnings=list(generated.warnings))

    @app.post("/v1/orgs/{org_id}/quotes", response_model=Quote)
    async def create_quote(org_id: str, draft: QuoteDraft) -> Quote:
        return await asyncio.to_thread(service.create_quote, org_id, draft)

    @app.get("/v1/orgs/{org_id}/quotes", response_model=list[Quote])
    async def list_quotes(org_id: str, status: QuoteStatus | None = None) -> list[Quote]:
        return await asyncio.to_thread(service.list_quotes, org_id, status=status)

    @app.get("/v1/orgs/{org_id}/quotes/{quote_id}", response_model=Quote)
    async def get_quote(org_id: str, quote_id: str) -> Quote:
        return await asyncio.to_thread(service.get_quote, org_id, quote_id)

    @app.put("/v1/orgs/{org_id}/quotes/{quote_id}/sections", response_model=Quote)
    async def update_sections(org_id: str, quote_id: str, request: UpdateSectionsRequest) -> Quote:
        return await asyncio.to_thread(service.update_sections, org_id, quote_id, request.sections)

    @app.post("/v1/orgs/{org_id}/quotes/{quote_id}:transition", response_model=Quote)
    async def transition_quote(org_id: str, quote_id: str, request: TransitionRequest) -> Quote:
        return await asyncio.to_thread(
            service.change_status,
            org_id,
            quote_id,
            request.status,
            actor=request.actor,
            reason=request.reason,
        )

    @app.get("/health")
    async def healthcheck() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    return app


__all__ = ["create_app"]
