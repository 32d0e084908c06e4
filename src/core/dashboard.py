"""
Dashboard State Controller
==========================

Single authoritative store behind the dashboard window. It holds disposable
copies of both record collections, derives every view from them on demand,
and resynchronises the whole store after each successful write. There is no
optimistic local mutation: the UI shows backend truth only after a confirmed
round-trip.

State machine::

    LOADING --ok--> READY
    LOADING --error--> FAILED --retry()--> LOADING

All backend failures of user actions are converted to notifications here, so
nothing raises into the view.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

from src.core import config
from src.core.forms import CategoryForm, FormValidationError, OfferForm
from src.core.image_analysis import analyze_product_image, encode_image_file
from src.core.models import Category, Offer, ProductInfo
from src.core.record_store_api import RecordStoreAPI, RecordStoreAPIError
from src.integrations.anthropic_client import AnthropicClient

ALL_CATEGORIES = config.ALL_CATEGORIES

# Offers without a parseable creation time sort last
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class LoadState(Enum):
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class NotificationLevel(Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class Notification:
    """A dismissible message for the user."""
    level: NotificationLevel
    title: str
    description: str = ""


@dataclass
class DashboardStats:
    total_value: float
    count: int
    average_price: float


def _log_notification(notification: Notification):
    level = {
        NotificationLevel.ERROR: logging.ERROR,
        NotificationLevel.WARNING: logging.WARNING,
    }.get(notification.level, logging.INFO)
    logging.getLogger(__name__).log(
        level, f"[{notification.level.value}] {notification.title} {notification.description}".rstrip()
    )


def _sort_key(offer: Offer) -> datetime:
    created = offer.created_at
    if created is None:
        return _EPOCH
    if created.tzinfo is None:
        # Backend timestamps are naive UTC
        created = created.replace(tzinfo=timezone.utc)
    return created


class DashboardController:
    """
    Holds the dashboard's data and derives its views.

    Attributes:
        api: Record-storage client
        analyzer: Optional Messages client used for photo analysis
        state: Current LoadState
        error: The exception that caused the last FAILED state
        offers: Offers from the last successful load
        categories: Categories from the last successful load
        selected_category: Category id filter, or ALL_CATEGORIES
    """

    def __init__(
        self,
        api: RecordStoreAPI,
        analyzer: Optional[AnthropicClient] = None,
        notify: Optional[Callable[[Notification], None]] = None,
    ):
        self.logger = logging.getLogger(__name__)
        self.api = api
        self.analyzer = analyzer
        self._notify = notify or _log_notification

        self.state = LoadState.LOADING
        self.error: Optional[Exception] = None
        self.offers: List[Offer] = []
        self.categories: List[Category] = []
        self.selected_category: str = ALL_CATEGORIES

    def notify(self, level: NotificationLevel, title: str, description: str = ""):
        self._notify(Notification(level, title, description))

    # ------------------------------------------------------------------------
    # LOADING
    # ------------------------------------------------------------------------

    async def load(self) -> bool:
        """
        Fetch both collections concurrently.

        Both must succeed; on any failure the controller enters FAILED and the
        previous data is discarded.
        """
        self.state = LoadState.LOADING
        self.logger.info("Loading offers and categories")
        try:
            offers, categories = await asyncio.gather(
                self.api.offers.get_all(),
                self.api.categories.get_all(),
            )
        except RecordStoreAPIError as e:
            self.logger.error(f"Initial load failed: {e}")
            self.offers = []
            self.categories = []
            self.error = e
            self.state = LoadState.FAILED
            return False

        self.offers = offers
        self.categories = categories
        self.error = None
        self.state = LoadState.READY
        self.logger.info(f"Loaded {len(offers)} offers and {len(categories)} categories")
        return True

    async def retry(self) -> bool:
        """Re-enter loading after a failure."""
        self.logger.info("Retrying load")
        return await self.load()

    # ------------------------------------------------------------------------
    # DERIVED VIEWS
    # ------------------------------------------------------------------------

    @property
    def stats(self) -> DashboardStats:
        total = sum((o.price or 0.0) for o in self.offers)
        count = len(self.offers)
        return DashboardStats(
            total_value=total,
            count=count,
            average_price=total / count if count > 0 else 0.0,
        )

    @property
    def category_map(self) -> Dict[str, Category]:
        return {c.record_id: c for c in self.categories}

    @property
    def offers_per_category(self) -> Dict[str, int]:
        """Offer count per known category id. Unresolvable references are not counted."""
        known = self.category_map
        counts: Dict[str, int] = {}
        for offer in self.offers:
            category_id = offer.category_id
            if category_id and category_id in known:
                counts[category_id] = counts.get(category_id, 0) + 1
        return counts

    @property
    def filtered_offers(self) -> List[Offer]:
        if self.selected_category == ALL_CATEGORIES:
            return list(self.offers)
        return [o for o in self.offers if o.category_id == self.selected_category]

    @property
    def sorted_categories(self) -> List[Category]:
        """Categories by name; unnamed ones first."""
        return sorted(self.categories, key=lambda c: (c.name or "").casefold())

    @property
    def price_range(self) -> Optional[Tuple[float, float]]:
        """(lowest, highest) offer price, absent price = 0. None without offers."""
        if not self.offers:
            return None
        prices = [o.price or 0.0 for o in self.offers]
        return min(prices), max(prices)

    @property
    def top_category(self) -> Optional[Category]:
        """Category with the most offers; the first by name wins ties. None without categories."""
        categories = self.sorted_categories
        if not categories:
            return None
        counts = self.offers_per_category
        best = categories[0]
        for category in categories[1:]:
            if counts.get(category.record_id, 0) > counts.get(best.record_id, 0):
                best = category
        return best

    @property
    def sorted_offers(self) -> List[Offer]:
        """Filtered offers, newest first. Ties keep input order."""
        return sorted(self.filtered_offers, key=_sort_key, reverse=True)

    def category_for(self, offer: Offer) -> Optional[Category]:
        category_id = offer.category_id
        if not category_id:
            return None
        return self.category_map.get(category_id)

    def select_category(self, category_id: Optional[str]):
        self.selected_category = category_id or ALL_CATEGORIES

    # ------------------------------------------------------------------------
    # OFFER ACTIONS
    # ------------------------------------------------------------------------

    async def save_offer(self, form: OfferForm, offer: Optional[Offer] = None) -> bool:
        """Create a new offer, or update ``offer`` when given."""
        missing = form.missing_required()
        if missing:
            self.notify(NotificationLevel.ERROR, "Pflichtfelder fehlen", ", ".join(missing))
            return False
        try:
            fields = form.to_fields()
        except FormValidationError as e:
            self.notify(NotificationLevel.ERROR, "Fehler", str(e))
            return False

        if offer is None:
            return await self._write(self.api.offers.create(fields), "Angebot erstellt")
        return await self._write(
            self.api.offers.update(offer.record_id, fields), "Angebot aktualisiert"
        )

    async def create_offer(self, form: OfferForm) -> bool:
        return await self.save_offer(form)

    async def update_offer(self, offer: Offer, form: OfferForm) -> bool:
        return await self.save_offer(form, offer)

    async def delete_offer(self, offer: Offer) -> bool:
        return await self._write(
            self.api.offers.delete(offer.record_id), "Angebot gelöscht", failure_title="Löschen fehlgeschlagen"
        )

    # ------------------------------------------------------------------------
    # CATEGORY ACTIONS
    # ------------------------------------------------------------------------

    async def save_category(self, form: CategoryForm, category: Optional[Category] = None) -> bool:
        missing = form.missing_required()
        if missing:
            self.notify(NotificationLevel.ERROR, "Pflichtfelder fehlen", ", ".join(missing))
            return False

        fields = form.to_fields()
        if category is None:
            return await self._write(self.api.categories.create(fields), "Kategorie erstellt")
        return await self._write(
            self.api.categories.update(category.record_id, fields), "Kategorie aktualisiert"
        )

    async def create_category(self, form: CategoryForm) -> bool:
        return await self.save_category(form)

    async def update_category(self, category: Category, form: CategoryForm) -> bool:
        return await self.save_category(form, category)

    async def delete_category(self, category: Category) -> bool:
        """Delete a category. Offers referencing it are left as they are."""
        deleted = await self._write(
            self.api.categories.delete(category.record_id),
            "Kategorie gelöscht",
            failure_title="Löschen fehlgeschlagen",
        )
        if deleted and self.selected_category == category.record_id:
            self.selected_category = ALL_CATEGORIES
        return deleted

    async def _write(self, request, success_title: str, failure_title: str = "Fehler") -> bool:
        """Await one backend write, notify, and reload everything on success."""
        try:
            await request
        except RecordStoreAPIError as e:
            self.logger.error(f"{failure_title}: {e}")
            self.notify(NotificationLevel.ERROR, failure_title, str(e) or "Unbekannter Fehler")
            return False

        self.notify(NotificationLevel.SUCCESS, success_title)
        await self.load()
        return True

    # ------------------------------------------------------------------------
    # PHOTO ANALYSIS
    # ------------------------------------------------------------------------

    async def analyze_photo(
        self,
        image: Union[str, Path],
        media_type: Optional[str] = None,
    ) -> ProductInfo:
        """
        Analyse a product photo.

        Args:
            image: Path to an image file, or base64 data when ``media_type`` is given
            media_type: MIME type of base64 data

        Returns:
            Extracted hints; {} when nothing could be recognised.
        """
        if self.analyzer is None:
            self.notify(
                NotificationLevel.WARNING,
                "Foto-Analyse nicht verfügbar",
                "Bitte fülle die Felder manuell aus.",
            )
            return ProductInfo()

        if media_type is None:
            try:
                data, media_type = encode_image_file(image)
            except OSError as e:
                self.logger.error(f"Could not read image {image}: {e}")
                self.notify(
                    NotificationLevel.ERROR,
                    "Foto-Analyse fehlgeschlagen",
                    "Bitte fülle die Felder manuell aus.",
                )
                return ProductInfo()
        else:
            data = str(image)

        info = await analyze_product_image(self.analyzer, data, media_type)

        if not info:
            self.notify(
                NotificationLevel.WARNING,
                "Foto-Analyse fehlgeschlagen",
                "Bitte fülle die Felder manuell aus.",
            )
            return info

        if info.get("hersteller"):
            description = f"{info['hersteller']} {info.get('modell', '')}".strip() + " erkannt"
        else:
            description = "Einige Felder wurden automatisch ausgefüllt"
        self.notify(NotificationLevel.SUCCESS, "Produktinfos aus Foto erkannt!", description)
        return info

    async def fetch_photo(self, offer: Offer) -> Optional[bytes]:
        """Download the offer's stored product photo; None when it has none or it cannot be loaded."""
        url = offer.fields.get("produktfotos")
        if not url:
            return None
        try:
            return await self.api.download(str(url))
        except RecordStoreAPIError as e:
            self.logger.warning(f"Could not load photo for offer {offer.record_id}: {e}")
            return None
