"""
Offer and Category Form State
=============================

Editable form state for the create/edit dialogs. Forms hold plain strings, as
typed by the user; conversion to the backend's wire fields happens only in
``to_fields()``, which is also where a bare category id becomes a record URL.
"""

from collections import Counter
from dataclasses import dataclass, fields as dataclass_fields
from typing import Any, Dict, List, Optional, Sequence

from src.core import config
from src.core.models import Category, Offer, ProductInfo
from src.core.record_urls import create_record_url


NO_CATEGORY_LABEL = "Keine Kategorie"
UNKNOWN_CATEGORY_LABEL = "Unbekannte Kategorie"


class FormValidationError(ValueError):
    """Raised when form content cannot be converted to wire fields."""
    pass


def _text(value: Any) -> str:
    return "" if value is None else str(value)


@dataclass
class OfferForm:
    hersteller: str = ""
    modell: str = ""
    farbe: str = ""
    groesse: str = ""
    kategorie: str = ""  # bare category record id, "" for none
    preis: str = ""
    produktbeschreibung: str = ""
    kontakt_vorname: str = ""
    kontakt_nachname: str = ""
    kontakt_email: str = ""
    kontakt_telefon: str = ""

    @classmethod
    def from_offer(cls, offer: Optional[Offer]) -> "OfferForm":
        """Form pre-filled from an existing offer, or empty for a new one."""
        if offer is None:
            return cls()
        f = offer.fields
        return cls(
            hersteller=_text(f.get("hersteller")),
            modell=_text(f.get("modell")),
            farbe=_text(f.get("farbe")),
            groesse=_text(f.get("groesse")),
            kategorie=offer.category_id or "",
            preis=_text(f.get("preis")),
            produktbeschreibung=_text(f.get("produktbeschreibung")),
            kontakt_vorname=_text(f.get("kontakt_vorname")),
            kontakt_nachname=_text(f.get("kontakt_nachname")),
            kontakt_email=_text(f.get("kontakt_email")),
            kontakt_telefon=_text(f.get("kontakt_telefon")),
        )

    def missing_required(self) -> List[str]:
        return [name for name in config.REQUIRED_OFFER_FIELDS if not getattr(self, name).strip()]

    def parsed_price(self) -> Optional[float]:
        """Price as a float; accepts a decimal comma. None when empty."""
        text = self.preis.strip()
        if not text:
            return None
        try:
            return float(text.replace(",", "."))
        except ValueError:
            raise FormValidationError(f"Ungültiger Preis: {self.preis!r}")

    def to_fields(self) -> Dict[str, Any]:
        """
        Wire fields for create/update. Empty values are omitted; the category
        id is written back as a record URL.
        """
        result: Dict[str, Any] = {}
        for name in config.OFFER_TEXT_FIELDS:
            value = getattr(self, name).strip()
            if value:
                result[name] = value

        if self.kategorie:
            result["kategorie"] = create_record_url(config.APP_IDS["KATEGORIEN"], self.kategorie)

        price = self.parsed_price()
        if price is not None:
            result["preis"] = price
        return result

    def merge_hints(self, info: ProductInfo) -> List[str]:
        """
        Fill empty fields from photo-analysis hints.

        Fields the user already filled are never overwritten.

        Returns:
            Names of the fields that were filled.
        """
        filled = []
        for key in config.PRODUCT_INFO_KEYS:
            hint = info.get(key)
            if not hint or getattr(self, key).strip():
                continue
            setattr(self, key, str(hint).strip())
            filled.append(key)
        return filled

    def as_dict(self) -> Dict[str, str]:
        return {f.name: getattr(self, f.name) for f in dataclass_fields(self)}


@dataclass
class CategoryForm:
    kategoriename: str = ""
    beschreibung: str = ""

    @classmethod
    def from_category(cls, category: Optional[Category]) -> "CategoryForm":
        if category is None:
            return cls()
        return cls(
            kategoriename=_text(category.name),
            beschreibung=_text(category.description),
        )

    def missing_required(self) -> List[str]:
        return [name for name in config.REQUIRED_CATEGORY_FIELDS if not getattr(self, name).strip()]

    def to_fields(self) -> Dict[str, Any]:
        result = {}
        if self.kategoriename.strip():
            result["kategoriename"] = self.kategoriename.strip()
        if self.beschreibung.strip():
            result["beschreibung"] = self.beschreibung.strip()
        return result


def category_choices(categories: Sequence[Category], current_id: str = "") -> Dict[str, str]:
    """
    Option-menu labels mapped to category ids, in the given order.

    ``NO_CATEGORY_LABEL`` maps to "" (no category). Labels are unique: a name
    shared by several categories, or clashing with ``NO_CATEGORY_LABEL``, gets
    a short id suffix. A ``current_id`` that is not among ``categories`` (the
    category was deleted) is kept selectable so saving does not drop it.
    """
    names = [c.name or c.record_id for c in categories]
    used = Counter(names)
    used[NO_CATEGORY_LABEL] += 1

    choices = {NO_CATEGORY_LABEL: ""}
    for category, name in zip(categories, names):
        label = name
        if used[name] > 1:
            label = f"{name} ({category.record_id[-6:]})"
        if label in choices:
            label = f"{name} ({category.record_id})"
        choices[label] = category.record_id

    if current_id and current_id not in choices.values():
        choices[f"{UNKNOWN_CATEGORY_LABEL} ({current_id})"] = current_id
    return choices


def choice_label(choices: Dict[str, str], category_id: str) -> str:
    """Label of ``category_id`` in ``choices``; NO_CATEGORY_LABEL when absent."""
    return next((label for label, cid in choices.items() if cid == category_id), NO_CATEGORY_LABEL)
