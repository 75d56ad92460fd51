from __future__ import annotations

import os
from pathlib import Path

from solar_quote_engine.api import create_app
from solar_quote_engine.catalog_repository import LocalCatalogRepository
from solar_quote_engine.firestore_quote_store import FirestoreCatalogRepository, FirestoreQuoteStore
from solar_quote_engine.logging_config import setup_logging
from solar_quote_engine.pubsub_client import DEFAULT_QUOTE_EVENTS_TOPIC, QuoteEventPublisher
from solar_quote_engine.quote_store import DEFAULT_MAX_ATTEMPTS, InMemoryQuoteStore

# Environment configuration
ENVIRONMENT = os.getenv("ENVIRONMENT", "dev")
PROJECT_ID = os.getenv("PROJECT_ID")
QUOTE_EVENTS_TOPIC = os.getenv("QUOTE_EVENTS_TOPIC", DEFAULT_QUOTE_EVENTS_TOPIC)
CATALOG_PATH = os.getenv("CATALOG_PATH", "data/catalog")
TRANSACTION_MAX_ATTEMPTS = int(os.getenv("TRANSACTION_MAX_ATTEMPTS", str(DEFAULT_MAX_ATTEMPTS)))
DEV_ORG_ID = os.getenv("DEV_ORG_ID", "demo-org")

# Setup logging
setup_logging(environment=ENVIRONMENT, project_id=PROJECT_ID)

# Use Firestore in production, in-memory for dev
if ENVIRONMENT == "dev":
    store = InMemoryQuoteStore(max_attempts=TRANSACTION_MAX_ATTEMPTS)
    store.add_organization(DEV_ORG_ID, name="Demo Solar")
    catalog = LocalCatalogRepository(base_path=Path(CATALOG_PATH).resolve())
else:
    store = FirestoreQuoteStore(project_id=PROJECT_ID, max_attempts=TRANSACTION_MAX_ATTEMPTS)
    catalog = FirestoreCatalogRepository(project_id=PROJECT_ID)

publisher = (
    QuoteEventPublisher(project_id=PROJECT_ID, topic_id=QUOTE_EVENTS_TOPIC)
    if PROJECT_ID and ENVIRONMENT != "dev"
    else None
)

app = create_app(store=store, catalog=catalog, publisher=publisher)
