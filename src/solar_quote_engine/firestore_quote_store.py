from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Iterable, Mapping, TypeVar

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from .errors import QuoteCreationError, TransactionConflictError
from .models.catalog import CatalogItem
from .models.quote import Quote, QuoteStatus
from .quote_store import DEFAULT_MAX_ATTEMPTS, QuoteTransaction, check_updatable_fields

logger = logging.getLogger(__name__)

T = TypeVar("T")

ORGANIZATIONS = "organizations"
QUOTES = "quotes"
PRODUCTS = "products"

# Catalog documents are written by the web app in camelCase.
PRODUCT_FIELDS: Mapping[str, str] = {
    "name": "name",
    "sku": "sku",
    "description": "description",
    "category": "category",
    "unitPrice": "unit_price",
    "unit": "unit",
    "taxRate": "tax_rate",
    "isActive": "is_active",
    "manufacturer": "manufacturer",
    "model": "model",
}
SPEC_FIELDS: Mapping[str, str] = {
    "wattage": "wattage",
    "efficiency": "efficiency",
    "cellType": "cell_type",
    "warrantyYears": "warranty_years",
    "powerRating": "power_rating_kw",
    "mpptChannels": "mppt_channels",
    "phases": "phases",
    "type": "inverter_type",
    "capacityKwh": "capacity_kwh",
    "usableCapacityKwh": "usable_capacity_kwh",
    "chemistry": "chemistry",
    "cycles": "cycles",
    "roofType": "roof_type",
    "material": "material",
    "maxPanels": "max_panels",
    "unitType": "unit_type",
    "requiresCertification": "requires_certification",
}


class _FirestoreTransaction:
    def __init__(self, db: firestore.Client, transaction: firestore.Transaction) -> None:
        self._db = db
        self._transaction = transaction

    def _org_ref(self, org_id: str) -> firestore.DocumentReference:
        return self._db.collection(ORGANIZATIONS).document(org_id)

    def get_organization(self, org_id: str) -> Mapping[str, Any] | None:
        snapshot = self._org_ref(org_id).get(transaction=self._transaction)
        if not snapshot.exists:
            return None
        return snapshot.to_dict()

    def update_organization(self, org_id: str, data: Mapping[str, Any]) -> None:
        self._transaction.update(self._org_ref(org_id), dict(data))

    def new_quote_id(self, org_id: str) -> str:
        return self._org_ref(org_id).collection(QUOTES).document().id

    def create_quote(self, quote: Quote) -> None:
        ref = self._org_ref(quote.org_id).collection(QUOTES).document(quote.id)
        self._transaction.set(ref, _quote_to_firestore_dict(quote))


class FirestoreQuoteStore:
    """Firestore-backed quote store for production use.

    Conflicting transactions are retried by the Firestore client itself,
    bounded by ``max_attempts``.
    """

    def __init__(
        self,
        project_id: str | None = None,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        client: firestore.Client | None = None,
    ) -> None:
        self._db = client or firestore.Client(project=project_id)
        self._max_attempts = max_attempts

    def _quotes(self, org_id: str) -> firestore.CollectionReference:
        return self._db.collection(ORGANIZATIONS).document(org_id).collection(QUOTES)

    def run_transaction(self, fn: Callable[[QuoteTransaction], T]) -> T:
        @firestore.transactional
        def run(transaction: firestore.Transaction) -> T:
            return fn(_FirestoreTransaction(self._db, transaction))

        try:
            return run(self._db.transaction(max_attempts=self._max_attempts))
        except gcp_exceptions.Aborted as exc:
            raise TransactionConflictError(str(exc)) from exc
        except ValueError as exc:
            # The client wraps the last Aborted in a ValueError once max_attempts is spent.
            if isinstance(exc.__cause__, gcp_exceptions.Aborted):
                raise TransactionConflictError(str(exc)) from exc
            raise
        except gcp_exceptions.GoogleAPICallError as exc:
            logger.error("Firestore transaction failed", exc_info=True, extra={"error": str(exc)})
            raise QuoteCreationError("Failed to create quote") from exc

    def get_quote(self, org_id: str, quote_id: str) -> Quote | None:
        doc = self._quotes(org_id).document(quote_id).get()
        if not doc.exists:
            return None
        return _quote_from_firestore_dict(doc.id, doc.to_dict())

    def update_quote(self, quote: Quote, fields: Iterable[str]) -> Quote:
        fields = check_updatable_fields(fields)
        data = _quote_to_firestore_dict(quote)
        changes = {field: data[field] for field in fields}
        changes["updated_at"] = datetime.utcnow()
        # Only the named fields are written; other fields keep their stored values.
        self._quotes(quote.org_id).document(quote.id).update(changes)

        logger.info(
            "Updated quote",
            extra={"org_id": quote.org_id, "quote_id": quote.id, "fields": sorted(fields)},
        )
        return self.get_quote(quote.org_id, quote.id)

    def list_quotes(self, org_id: str, *, status: QuoteStatus | None = None, limit: int = 100) -> list[Quote]:
        query = self._quotes(org_id)
        if status is not None:
            query = query.where(filter=FieldFilter("status", "==", status.value))
        query = query.order_by("created_at", direction=firestore.Query.DESCENDING).limit(limit)
        return [_quote_from_firestore_dict(doc.id, doc.to_dict()) for doc in query.stream()]


class FirestoreCatalogRepository:
    """Reads the active product catalog of an organization."""

    def __init__(self, project_id: str | None = None) -> None:
        self._db = firestore.Client(project=project_id)

    def list_active(self, org_id: str) -> list[CatalogItem]:
        query = (
            self._db.collection(ORGANIZATIONS)
            .document(org_id)
            .collection(PRODUCTS)
            .where(filter=FieldFilter("isActive", "==", True))
        )
        items: list[CatalogItem] = []
        for doc in query.stream():
            try:
                items.append(product_from_firestore_dict(doc.id, doc.to_dict()))
            except ValueError:
                logger.warning(
                    "Skipping malformed catalog item",
                    exc_info=True,
                    extra={"org_id": org_id, "product_id": doc.id},
                )
        logger.info("Loaded catalog snapshot", extra={"org_id": org_id, "items": len(items)})
        return items


def product_from_firestore_dict(product_id: str, data: Mapping[str, Any]) -> CatalogItem:
    """Convert a camelCase product document to a CatalogItem."""
    fields = {target: data[source] for source, target in PRODUCT_FIELDS.items() if source in data}
    category = fields.get("category")
    raw_specs = data.get("specs") or {}
    if category in {"accessory", "other"}:
        specs: dict[str, Any] = {"kind": category, "attributes": dict(raw_specs)}
    else:
        specs = {target: raw_specs[source] for source, target in SPEC_FIELDS.items() if source in raw_specs}
        specs["kind"] = category
    return CatalogItem.model_validate({**fields, "id": product_id, "specs": specs})


def _quote_to_firestore_dict(quote: Quote) -> dict:
    data = quote.model_dump(exclude={"id"})
    data["status"] = quote.status.value
    return data


def _quote_from_firestore_dict(quote_id: str, data: Mapping[str, Any]) -> Quote:
    return Quote.model_validate({**data, "id": quote_id})


__all__ = ["FirestoreQuoteStore", "FirestoreCatalogRepository", "product_from_firestore_dict"]
