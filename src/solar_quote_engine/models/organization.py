from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, Field

DEFAULT_QUOTE_PREFIX = "QT"
DEFAULT_QUOTE_START_NUMBER = 1


class OrganizationCounter(BaseModel):
    """Quote numbering state stored on the organization document."""

    org_id: str
    prefix: str = DEFAULT_QUOTE_PREFIX
    start_number: int = Field(default=DEFAULT_QUOTE_START_NUMBER, ge=0)
    quotes_count: int = Field(default=0, ge=0)

    @property
    def next_sequence(self) -> int:
        return self.start_number + self.quotes_count

    @classmethod
    def from_document(cls, org_id: str, data: Mapping[str, Any]) -> "OrganizationCounter":
        settings = data.get("settings") or {}
        return cls(
            org_id=org_id,
            prefix=settings.get("quotePrefix") or DEFAULT_QUOTE_PREFIX,
            start_number=settings.get("quoteStartNumber") or DEFAULT_QUOTE_START_NUMBER,
            quotes_count=data.get("quotesCount") or 0,
        )


__all__ = ["OrganizationCounter", "DEFAULT_QUOTE_PREFIX", "DEFAULT_QUOTE_START_NUMBER"]
