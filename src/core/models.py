"""
Domain Records
==============

Typed, disposable copies of the two record kinds owned by the Living Apps
backend. The backend is authoritative for ids, timestamps and field values;
these dataclasses only give the raw JSON a stable Python shape.

Wire shape of a record::

    {"id": "...", "createdat": "2025-02-20T12:00:00", "updatedat": null,
     "fields": {"hersteller": "Nike", "preis": 89.99, ...}}
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, TypedDict

from src.core.record_urls import extract_record_id


class ProductInfo(TypedDict, total=False):
    """Best-effort hints extracted from a product photo. Every key may be absent."""
    hersteller: str
    modell: str
    farbe: str
    groesse: str
    produktbeschreibung: str
    preis: str


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a backend ISO timestamp; returns None for missing or unparseable values."""
    if not value:
        return None
    try:
        # Python < 3.11 does not accept a trailing 'Z'
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass
class Category:
    """A named grouping that an offer may reference."""
    record_id: str
    createdat: Optional[str] = None
    updatedat: Optional[str] = None
    fields: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record_id: str, raw: Dict[str, Any]) -> "Category":
        return cls(
            record_id=record_id,
            createdat=raw.get("createdat"),
            updatedat=raw.get("updatedat"),
            fields=dict(raw.get("fields") or {}),
        )

    @property
    def name(self) -> Optional[str]:
        return self.fields.get("kategoriename")

    @property
    def description(self) -> Optional[str]:
        return self.fields.get("beschreibung")


@dataclass
class Offer:
    """
    A single marketplace listing.

    ``fields["kategorie"]`` holds the category reference as a full record URL;
    use ``category_id`` to get the bare id.
    """
    record_id: str
    createdat: Optional[str] = None
    updatedat: Optional[str] = None
    fields: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record_id: str, raw: Dict[str, Any]) -> "Offer":
        return cls(
            record_id=record_id,
            createdat=raw.get("createdat"),
            updatedat=raw.get("updatedat"),
            fields=dict(raw.get("fields") or {}),
        )

    @property
    def category_id(self) -> Optional[str]:
        return extract_record_id(self.fields.get("kategorie"))

    @property
    def price(self) -> Optional[float]:
        value = self.fields.get("preis")
        if value is None or value == "":
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None

    @property
    def created_at(self) -> Optional[datetime]:
        return parse_timestamp(self.createdat)

    @property
    def title(self) -> str:
        """Manufacturer and model joined by a space, skipping empty parts."""
        parts = [self.fields.get("hersteller"), self.fields.get("modell")]
        return " ".join(p for p in parts if p)

    @property
    def contact_name(self) -> str:
        parts = [self.fields.get("kontakt_vorname"), self.fields.get("kontakt_nachname")]
        return " ".join(p for p in parts if p)
