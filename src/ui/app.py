"""
Offer Dashboard Main Window
===========================

Root CustomTkinter window of the marketplace dashboard. It owns the settings,
the async runner, the API clients and the `DashboardController`, and renders
the controller's derived views.

Layout:
-------
- Header: title and "new offer" / "new category" actions.
- Metrics: total inventory value, offer count, average price.
- Statistics: price range and the category with the most offers.
- Sidebar: category filter (sorted by name) with per-category offer counts,
  edit/delete.
- Main list: filtered offers, newest first.
- Status bar: dismissible notifications.

While loading a placeholder is shown; a failed initial load replaces the whole
content with a retry button.
"""

import logging
from typing import Any, Awaitable, Callable, Optional

import customtkinter as ctk

from src.core import config
from src.core.dashboard import (
    ALL_CATEGORIES,
    DashboardController,
    LoadState,
    Notification,
    NotificationLevel,
)
from src.core.models import Category, Offer
from src.core.record_store_api import RecordStoreAPI
from src.integrations.anthropic_client import AnthropicClient
from src.ui.dialogs import (
    CategoryDialog,
    OfferDetailDialog,
    OfferDialog,
    confirm,
    format_currency,
    format_date,
)
from src.utils.async_runner import AsyncRunner
from src.utils.config_manager import load_config, save_config

NOTIFICATION_COLORS = {
    NotificationLevel.INFO: "gray70",
    NotificationLevel.SUCCESS: "green",
    NotificationLevel.WARNING: "orange",
    NotificationLevel.ERROR: "red",
}


class App(ctk.CTk):
    """
    Main application window.

    Attributes:
        settings: Persisted user settings
        runner: Background asyncio loop
        controller: The dashboard state controller
    """

    def __init__(self):
        super().__init__()

        self.logger = logging.getLogger(__name__)
        self.logger.info("Initializing main application window")

        self.title(config.APP_NAME)
        self.geometry(config.GEOMETRY)
        ctk.set_appearance_mode("Dark")
        ctk.set_default_color_theme("blue")

        self.settings = load_config()
        self.runner = AsyncRunner(name="Dashboard")

        api = RecordStoreAPI(
            base_url=self.settings.backend.base_url,
            cookies=self.settings.backend.cookie_dict(),
        )
        analyzer = None
        if self.settings.analysis.enabled:
            analyzer = AnthropicClient(
                api_key=self.settings.analysis.api_key or None,
                base_url=self.settings.analysis.base_url,
                model=self.settings.analysis.model,
                max_tokens=self.settings.analysis.max_tokens,
            )
            if not analyzer.is_available():
                self.logger.warning("Photo analysis disabled: no API key or proxy configured")
                analyzer = None

        self.controller = DashboardController(api, analyzer, notify=self._notify_threadsafe)

        self.protocol("WM_DELETE_WINDOW", self.on_close)
        self.grid_rowconfigure(1, weight=1)
        self.grid_columnconfigure(0, weight=1)

        self._build_header()
        self.content = ctk.CTkFrame(self, fg_color="transparent")
        self.content.grid(row=1, column=0, sticky="nsew", padx=20, pady=10)
        self._build_status_bar()

        self.load()

    # ------------------------------------------------------------------------
    # ASYNC PLUMBING
    # ------------------------------------------------------------------------

    def run(self, coro: Awaitable[Any], on_done: Optional[Callable[[Any], None]] = None):
        """Run a coroutine on the runner; ``on_done`` is called on the UI thread."""
        def _done(result):
            if on_done:
                self.after(0, on_done, result)

        def _error(exc: BaseException):
            self.after(0, self.show_notification, Notification(
                NotificationLevel.ERROR, "Unbekannter Fehler", str(exc)
            ))

        self.runner.submit(coro, on_done=_done, on_error=_error)

    def _notify_threadsafe(self, notification: Notification):
        self.after(0, self.show_notification, notification)

    # ------------------------------------------------------------------------
    # LAYOUT
    # ------------------------------------------------------------------------

    def _build_header(self):
        header = ctk.CTkFrame(self, fg_color="transparent")
        header.grid(row=0, column=0, sticky="ew", padx=20, pady=(20, 0))
        header.grid_columnconfigure(0, weight=1)

        ctk.CTkLabel(header, text=config.APP_NAME, font=("Roboto", 24, "bold")).grid(row=0, column=0, sticky="w")
        ctk.CTkButton(header, text="Neue Kategorie", fg_color="gray", command=self.new_category).grid(row=0, column=1, padx=5)
        ctk.CTkButton(header, text="Neues Angebot", command=self.new_offer).grid(row=0, column=2, padx=5)

    def _build_status_bar(self):
        self.status_bar = ctk.CTkFrame(self, height=30)
        self.status_bar.grid(row=2, column=0, sticky="ew", padx=20, pady=(0, 10))
        self.status_bar.grid_columnconfigure(0, weight=1)
        self.status_label = ctk.CTkLabel(self.status_bar, text="", anchor="w")
        self.status_label.grid(row=0, column=0, sticky="ew", padx=10)
        ctk.CTkButton(self.status_bar, text="✕", width=30, fg_color="transparent", command=self.dismiss_notification).grid(row=0, column=1)

    def show_notification(self, notification: Notification):
        text = notification.title
        if notification.description:
            text = f"{text} – {notification.description}"
        self.status_label.configure(text=text, text_color=NOTIFICATION_COLORS[notification.level])

    def dismiss_notification(self):
        self.status_label.configure(text="")

    def _clear_content(self):
        for widget in self.content.winfo_children():
            widget.destroy()

    # ------------------------------------------------------------------------
    # RENDERING
    # ------------------------------------------------------------------------

    def load(self):
        self._clear_content()
        ctk.CTkLabel(self.content, text="Lädt...", font=("Roboto", 18)).pack(expand=True)
        self.run(self.controller.load(), lambda _ok: self.refresh())

    def refresh(self):
        """Re-render from the controller's current state."""
        self._clear_content()
        state = self.controller.state

        if state == LoadState.LOADING:
            ctk.CTkLabel(self.content, text="Lädt...", font=("Roboto", 18)).pack(expand=True)
        elif state == LoadState.FAILED:
            self._render_failed()
        else:
            self._render_ready()

    def _render_failed(self):
        frame = ctk.CTkFrame(self.content, fg_color="transparent")
        frame.pack(expand=True)
        ctk.CTkLabel(frame, text="Fehler beim Laden", font=("Roboto", 22, "bold"), text_color="red").pack(pady=10)
        ctk.CTkLabel(frame, text=str(self.controller.error or ""), wraplength=600).pack(pady=10)
        ctk.CTkButton(frame, text="Erneut versuchen", command=self.retry).pack(pady=10)

    def retry(self):
        self._clear_content()
        ctk.CTkLabel(self.content, text="Lädt...", font=("Roboto", 18)).pack(expand=True)
        self.run(self.controller.retry(), lambda _ok: self.refresh())

    def _render_ready(self):
        c = self.controller
        self.content.grid_columnconfigure(1, weight=1)
        self.content.grid_rowconfigure(1, weight=1)

        # Metrics
        stats = c.stats
        metrics = ctk.CTkFrame(self.content)
        metrics.grid(row=0, column=0, columnspan=2, sticky="ew", pady=(0, 10))
        self._create_metric(metrics, "Gesamtwert", format_currency(stats.total_value), 0)
        self._create_metric(metrics, "Angebote", str(stats.count), 1)
        self._create_metric(metrics, "Ø Preis", format_currency(stats.average_price), 2)

        # Statistics card
        price_range = c.price_range
        top = c.top_category
        statistics = ctk.CTkFrame(metrics)
        statistics.grid(row=0, column=3, padx=10, pady=10, sticky="nsew")
        metrics.grid_columnconfigure(3, weight=1)
        ctk.CTkLabel(statistics, text="Statistik", font=("Roboto", 14, "bold")).grid(row=0, column=0, columnspan=2, sticky="w", padx=10)
        ctk.CTkLabel(statistics, text="Preisspanne").grid(row=1, column=0, sticky="w", padx=10)
        ctk.CTkLabel(
            statistics,
            text=f"{format_currency(price_range[0])} - {format_currency(price_range[1])}" if price_range else "-",
        ).grid(row=1, column=1, sticky="e", padx=10)
        ctk.CTkLabel(statistics, text="Meiste Angebote").grid(row=2, column=0, sticky="w", padx=10)
        ctk.CTkLabel(statistics, text=(top.name or "-") if top else "-").grid(row=2, column=1, sticky="e", padx=10)

        # Category sidebar
        sidebar = ctk.CTkScrollableFrame(self.content, width=240, label_text="Kategorien")
        sidebar.grid(row=1, column=0, sticky="nsw", padx=(0, 10))
        self._add_category_row(sidebar, None, f"Alle ({stats.count})")
        counts = c.offers_per_category
        for category in c.sorted_categories:
            label = f"{category.name or '-'} ({counts.get(category.record_id, 0)})"
            self._add_category_row(sidebar, category, label)

        # Offer list
        offers = c.sorted_offers
        listing = ctk.CTkScrollableFrame(self.content, label_text="Hersteller / Modell | Preis | Kategorie | Kontakt | Erstellt")
        listing.grid(row=1, column=1, sticky="nsew")
        if not offers:
            ctk.CTkLabel(listing, text="Noch keine Angebote. Erstelle dein erstes Angebot, um loszulegen.").pack(pady=30)
        for offer in offers:
            self._add_offer_row(listing, offer)

    def _create_metric(self, parent, label, value, col):
        frame = ctk.CTkFrame(parent, fg_color="transparent")
        frame.grid(row=0, column=col, padx=10, pady=10, sticky="ew")
        parent.grid_columnconfigure(col, weight=1)
        ctk.CTkLabel(frame, text=value, font=("Roboto", 26, "bold")).pack()
        ctk.CTkLabel(frame, text=label, font=("Roboto", 12)).pack()

    def _add_category_row(self, parent, category: Optional[Category], label: str):
        category_id = category.record_id if category else ALL_CATEGORIES
        selected = self.controller.selected_category == category_id

        row = ctk.CTkFrame(parent, fg_color="transparent")
        row.pack(fill="x", pady=2)
        ctk.CTkButton(
            row,
            text=label,
            anchor="w",
            fg_color=None if selected else "transparent",
            command=lambda: self.select_category(category_id),
        ).pack(side="left", fill="x", expand=True)

        if category is not None:
            ctk.CTkButton(row, text="✎", width=28, command=lambda: CategoryDialog(self, category)).pack(side="left", padx=2)
            ctk.CTkButton(row, text="🗑", width=28, fg_color="darkred", command=lambda: self.delete_category(category)).pack(side="left")

    def _add_offer_row(self, parent, offer: Offer):
        category = self.controller.category_for(offer)
        row = ctk.CTkFrame(parent)
        row.pack(fill="x", pady=2)

        ctk.CTkButton(
            row, text=offer.title or "-", width=220, anchor="w", fg_color="transparent",
            command=lambda: OfferDetailDialog(self, offer),
        ).pack(side="left", padx=5)
        ctk.CTkLabel(row, text=format_currency(offer.price), width=100).pack(side="left", padx=5)
        ctk.CTkLabel(row, text=category.name if category else "-", width=120).pack(side="left", padx=5)
        ctk.CTkLabel(row, text=offer.contact_name or "-", width=140, anchor="w").pack(side="left", padx=5)
        ctk.CTkLabel(row, text=format_date(offer), width=90).pack(side="left", padx=5)
        ctk.CTkButton(row, text="Löschen", width=70, fg_color="darkred", command=lambda: self.delete_offer(offer)).pack(side="right", padx=5)
        ctk.CTkButton(row, text="Bearbeiten", width=90, command=lambda: OfferDialog(self, offer)).pack(side="right", padx=5)

    # ------------------------------------------------------------------------
    # ACTIONS
    # ------------------------------------------------------------------------

    def select_category(self, category_id: str):
        self.controller.select_category(category_id)
        self.refresh()

    def new_offer(self):
        OfferDialog(self)

    def new_category(self):
        CategoryDialog(self)

    def delete_offer(self, offer: Offer):
        confirm(
            self,
            "Angebot löschen?",
            f"„{offer.title or offer.record_id}“ wird dauerhaft gelöscht.",
            lambda: self.run(self.controller.delete_offer(offer), lambda _ok: self.refresh()),
        )

    def delete_category(self, category: Category):
        confirm(
            self,
            "Kategorie löschen?",
            f"„{category.name or category.record_id}“ wird gelöscht. Angebote dieser Kategorie bleiben erhalten.",
            lambda: self.run(self.controller.delete_category(category), lambda _ok: self.refresh()),
        )

    def on_close(self):
        """Persist settings, close HTTP sessions, stop the runner and destroy the window."""
        self.logger.info("Application close requested - starting shutdown sequence")

        save_config(self.settings)

        try:
            self.runner.run(self._close_clients(), timeout=5)
        except Exception as e:
            self.logger.error(f"Error closing HTTP sessions: {e}")
        self.runner.shutdown()

        self.logger.info("Destroying window and exiting")
        self.destroy()

    async def _close_clients(self):
        await self.controller.api.close()
        if self.controller.analyzer is not None:
            await self.controller.analyzer.close()
