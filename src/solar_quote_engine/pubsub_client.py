from __future__ import annotations

import json
import logging
from typing import Any

from google.cloud import pubsub_v1

from .models.quote import Quote

logger = logging.getLogger(__name__)

DEFAULT_QUOTE_EVENTS_TOPIC = "quote-events"


class QuoteEventPublisher:
    """Wrapper for Google Cloud Pub/Sub quote lifecycle events."""

    def __init__(self, project_id: str, *, topic_id: str = DEFAULT_QUOTE_EVENTS_TOPIC) -> None:
        self.project_id = project_id
        self.topic_id = topic_id
        self.publisher = pubsub_v1.PublisherClient()

    def publish(
        self,
        message: dict[str, Any],
        *,
        attributes: dict[str, str] | None = None,
    ) -> str:
        """Publish a message to the quote events topic.

        Args:
            message: The message payload as a dictionary
            attributes: Optional message attributes

        Returns:
            Message ID from Pub/Sub
        """
        topic_path = self.publisher.topic_path(self.project_id, self.topic_id)
        data = json.dumps(message).encode("utf-8")
        future = self.publisher.publish(topic_path, data, **(attributes or {}))
        message_id = future.result()

        logger.info(
            "Published message to Pub/Sub",
            extra={"topic_id": self.topic_id, "message_id": message_id, "attributes": attributes},
        )
        return message_id

    def publish_quote_created(self, quote: Quote) -> str:
        """Announce a newly numbered quote, e.g. for PDF rendering."""
        message = {
            "org_id": quote.org_id,
            "quote_id": quote.id,
            "number": quote.number,
            "total": quote.total,
            "currency": quote.currency,
        }
        attributes = {
            "org_id": quote.org_id,
            "quote_id": quote.id,
            "event_type": "quote_created",
        }
        return self.publish(message, attributes=attributes)

    def publish_status_changed(self, quote: Quote) -> str:
        message = {
            "org_id": quote.org_id,
            "quote_id": quote.id,
            "number": quote.number,
            "status": quote.status.value,
        }
        attributes = {
            "org_id": quote.org_id,
            "quote_id": quote.id,
            "event_type": "quote_status_changed",
        }
        return self.publish(message, attributes=attributes)


__all__ = ["QuoteEventPublisher", "DEFAULT_QUOTE_EVENTS_TOPIC"]
