"""
Offer and Category Dialogs
==========================

Modal CustomTkinter windows for creating and editing records. Dialogs only
collect input into `OfferForm` / `CategoryForm`; writes and notifications are
the controller's job.
"""

import io
import logging
from tkinter import filedialog
from typing import Callable, Dict, Optional

import customtkinter as ctk
from PIL import Image

from src.core import config
from src.core.forms import CategoryForm, OfferForm, category_choices, choice_label
from src.core.models import Category, Offer

PREVIEW_SIZE = (320, 180)


def format_currency(value: Optional[float]) -> str:
    """German EUR formatting, e.g. 1234.5 -> '1.234,50 €'."""
    if value is None:
        return "-"
    text = f"{value:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return f"{text} €"


def format_date(offer: Offer) -> str:
    created = offer.created_at
    return created.strftime("%d.%m.%Y") if created else "-"


class OfferDialog(ctk.CTkToplevel):
    """
    Create/edit dialog for a marketplace offer.

    Args:
        parent: The dashboard window (provides ``run`` and ``controller``)
        offer: Offer being edited, or None to create a new one
    """

    LABELS = (
        ("hersteller", "Hersteller *"),
        ("modell", "Modell"),
        ("farbe", "Farbe"),
        ("groesse", "Größe"),
        ("preis", "Preis (EUR) *"),
        ("kontakt_vorname", "Vorname *"),
        ("kontakt_nachname", "Nachname"),
        ("kontakt_email", "E-Mail"),
        ("kontakt_telefon", "Telefon"),
    )

    def __init__(self, parent, offer: Optional[Offer] = None):
        super().__init__(parent)
        self.logger = logging.getLogger(__name__)
        self.app = parent
        self.offer = offer
        self.form = OfferForm.from_offer(offer)
        self.entries: Dict[str, ctk.CTkEntry] = {}
        self._preview_image = None

        self.title("Angebot bearbeiten" if offer else "Neues Angebot erstellen")
        self.geometry("640x760")
        self.grid_columnconfigure(0, weight=1)
        self.grid_rowconfigure(0, weight=1)

        body = ctk.CTkScrollableFrame(self)
        body.grid(row=0, column=0, sticky="nsew", padx=10, pady=10)
        body.grid_columnconfigure((0, 1), weight=1)

        # Photo + analysis
        self.preview_label = ctk.CTkLabel(body, text="Kein Foto", height=PREVIEW_SIZE[1])
        self.preview_label.grid(row=0, column=0, columnspan=2, sticky="ew", pady=(0, 5))

        analysis_available = self.app.controller.analyzer is not None
        self.photo_button = ctk.CTkButton(
            body,
            text="Foto hochladen & analysieren",
            command=self._pick_photo,
            state="normal" if analysis_available else "disabled",
        )
        self.photo_button.grid(row=1, column=0, columnspan=2, pady=(0, 15))

        row = 2
        for index, (name, label) in enumerate(self.LABELS):
            col = index % 2
            if index and col == 0:
                row += 2
            ctk.CTkLabel(body, text=label, anchor="w").grid(row=row, column=col, sticky="w", padx=5)
            entry = ctk.CTkEntry(body)
            entry.insert(0, getattr(self.form, name))
            entry.grid(row=row + 1, column=col, sticky="ew", padx=5, pady=(0, 10))
            self.entries[name] = entry
        row += 2

        # Category selection
        ctk.CTkLabel(body, text="Kategorie", anchor="w").grid(row=row, column=0, sticky="w", padx=5)
        self._category_choices = category_choices(self.app.controller.sorted_categories, self.form.kategorie)
        self.category_var = ctk.StringVar(value=choice_label(self._category_choices, self.form.kategorie))
        ctk.CTkOptionMenu(
            body, variable=self.category_var, values=list(self._category_choices)
        ).grid(row=row + 1, column=0, sticky="ew", padx=5, pady=(0, 10))
        row += 2

        ctk.CTkLabel(body, text="Produktbeschreibung", anchor="w").grid(row=row, column=0, sticky="w", padx=5)
        self.description_box = ctk.CTkTextbox(body, height=90)
        self.description_box.insert("1.0", self.form.produktbeschreibung)
        self.description_box.grid(row=row + 1, column=0, columnspan=2, sticky="ew", padx=5, pady=(0, 10))
        row += 2

        # Stored photo URL is display-only
        photo_url = offer.fields.get("produktfotos") if offer else None
        if photo_url:
            ctk.CTkLabel(body, text=f"Produktfoto: {photo_url}", anchor="w", wraplength=560).grid(
                row=row, column=0, columnspan=2, sticky="w", padx=5
            )

        footer = ctk.CTkFrame(self, fg_color="transparent")
        footer.grid(row=1, column=0, sticky="ew", padx=10, pady=10)
        ctk.CTkButton(footer, text="Abbrechen", fg_color="gray", command=self.destroy).pack(side="left")
        self.save_button = ctk.CTkButton(
            footer, text="Speichern" if offer else "Erstellen", command=self._save
        )
        self.save_button.pack(side="right")

        self.transient(parent)
        self.after(100, self.grab_set)

    # ------------------------------------------------------------------------

    def _collect(self) -> OfferForm:
        for name, entry in self.entries.items():
            setattr(self.form, name, entry.get())
        self.form.produktbeschreibung = self.description_box.get("1.0", "end").strip()
        self.form.kategorie = self._category_choices.get(self.category_var.get(), "")
        return self.form

    def _apply_form(self):
        for name, entry in self.entries.items():
            entry.delete(0, "end")
            entry.insert(0, getattr(self.form, name))
        self.description_box.delete("1.0", "end")
        self.description_box.insert("1.0", self.form.produktbeschreibung)

    def _pick_photo(self):
        patterns = " ".join(config.SUPPORTED_IMAGE_EXTENSIONS)
        path = filedialog.askopenfilename(parent=self, filetypes=[("Bilder", patterns)])
        if not path:
            return

        try:
            image = Image.open(path)
            image.thumbnail(PREVIEW_SIZE)
            self._preview_image = ctk.CTkImage(light_image=image, dark_image=image, size=image.size)
            self.preview_label.configure(image=self._preview_image, text="")
        except OSError as e:
            self.logger.warning(f"Could not load preview for {path}: {e}")

        self.photo_button.configure(state="disabled", text="KI analysiert Foto...")
        self.app.run(self.app.controller.analyze_photo(path), self._on_analysis)

    def _on_analysis(self, info):
        self.photo_button.configure(state="normal", text="Foto ändern")
        self._collect()
        filled = self.form.merge_hints(info)
        if filled:
            self.logger.info(f"Pre-filled from photo: {filled}")
            self._apply_form()

    def _save(self):
        form = self._collect()
        self.save_button.configure(state="disabled", text="Speichert...")
        self.app.run(self.app.controller.save_offer(form, self.offer), self._on_saved)

    def _on_saved(self, ok: bool):
        if ok:
            self.destroy()
            self.app.refresh()
        else:
            self.save_button.configure(state="normal", text="Speichern" if self.offer else "Erstellen")


class OfferDetailDialog(ctk.CTkToplevel):
    """Read-only view of one offer with edit and delete shortcuts."""

    def __init__(self, parent, offer: Offer):
        super().__init__(parent)
        self.logger = logging.getLogger(__name__)
        self.app = parent
        self.offer = offer
        self._photo_image = None
        fields = offer.fields
        category = self.app.controller.category_for(offer)

        self.title(offer.title or "Angebot")
        self.geometry("480x620")
        self.grid_columnconfigure(0, weight=1)

        ctk.CTkLabel(self, text=offer.title or "-", font=("Roboto", 20, "bold"), wraplength=440).grid(
            row=0, column=0, sticky="w", padx=15, pady=(15, 5)
        )
        self.photo_label = ctk.CTkLabel(self, text="Kein Foto", height=PREVIEW_SIZE[1])
        self.photo_label.grid(row=1, column=0, sticky="ew", padx=15, pady=5)
        if fields.get("produktfotos"):
            self.photo_label.configure(text="Foto wird geladen...")
            self.app.run(self.app.controller.fetch_photo(offer), self._on_photo)

        ctk.CTkLabel(self, text=format_currency(offer.price), font=("Roboto", 24, "bold")).grid(
            row=2, column=0, sticky="w", padx=15
        )

        details = [("Kategorie", category.name if category else None)]
        if fields.get("farbe"):
            details.append(("Farbe", fields["farbe"]))
        if fields.get("groesse"):
            details.append(("Größe", fields["groesse"]))
        details += [
            ("Beschreibung", fields.get("produktbeschreibung")),
            ("Kontakt", offer.contact_name),
            ("E-Mail", fields.get("kontakt_email")),
            ("Telefon", fields.get("kontakt_telefon")),
            ("Erstellt", format_date(offer)),
        ]

        table = ctk.CTkFrame(self, fg_color="transparent")
        table.grid(row=3, column=0, sticky="ew", padx=15, pady=10)
        table.grid_columnconfigure(1, weight=1)
        for index, (label, value) in enumerate(details):
            ctk.CTkLabel(table, text=label, anchor="nw", font=("Roboto", 12, "bold")).grid(
                row=index, column=0, sticky="nw", padx=(0, 10), pady=2
            )
            ctk.CTkLabel(table, text=value or "-", anchor="w", justify="left", wraplength=320).grid(
                row=index, column=1, sticky="w", pady=2
            )

        footer = ctk.CTkFrame(self, fg_color="transparent")
        footer.grid(row=4, column=0, sticky="ew", padx=15, pady=15)
        ctk.CTkButton(footer, text="Löschen", fg_color="darkred", command=self._delete).pack(side="left")
        ctk.CTkButton(footer, text="Bearbeiten", command=self._edit).pack(side="right")

        self.transient(parent)
        self.after(100, self.grab_set)

    def _on_photo(self, data: Optional[bytes]):
        if not self.winfo_exists():
            return
        if not data:
            self.photo_label.configure(text="Kein Foto")
            return
        try:
            image = Image.open(io.BytesIO(data))
            image.thumbnail(PREVIEW_SIZE)
        except OSError as e:
            self.logger.warning(f"Could not decode photo of {self.offer.record_id}: {e}")
            self.photo_label.configure(text="Kein Foto")
            return
        self._photo_image = ctk.CTkImage(light_image=image, dark_image=image, size=image.size)
        self.photo_label.configure(image=self._photo_image, text="")

    def _edit(self):
        self.destroy()
        OfferDialog(self.app, self.offer)

    def _delete(self):
        self.destroy()
        self.app.delete_offer(self.offer)


class CategoryDialog(ctk.CTkToplevel):
    """Create/edit dialog for a category."""

    def __init__(self, parent, category: Optional[Category] = None):
        super().__init__(parent)
        self.app = parent
        self.category = category
        form = CategoryForm.from_category(category)

        self.title("Kategorie bearbeiten" if category else "Neue Kategorie")
        self.geometry("420x320")
        self.grid_columnconfigure(0, weight=1)

        ctk.CTkLabel(self, text="Kategoriename *", anchor="w").grid(row=0, column=0, sticky="w", padx=15, pady=(15, 0))
        self.name_entry = ctk.CTkEntry(self)
        self.name_entry.insert(0, form.kategoriename)
        self.name_entry.grid(row=1, column=0, sticky="ew", padx=15)

        ctk.CTkLabel(self, text="Beschreibung", anchor="w").grid(row=2, column=0, sticky="w", padx=15, pady=(10, 0))
        self.description_box = ctk.CTkTextbox(self, height=100)
        self.description_box.insert("1.0", form.beschreibung)
        self.description_box.grid(row=3, column=0, sticky="ew", padx=15)

        footer = ctk.CTkFrame(self, fg_color="transparent")
        footer.grid(row=4, column=0, sticky="ew", padx=15, pady=15)
        ctk.CTkButton(footer, text="Abbrechen", fg_color="gray", command=self.destroy).pack(side="left")
        self.save_button = ctk.CTkButton(
            footer, text="Speichern" if category else "Erstellen", command=self._save
        )
        self.save_button.pack(side="right")

        self.transient(parent)
        self.after(100, self.grab_set)

    def _save(self):
        form = CategoryForm(
            kategoriename=self.name_entry.get(),
            beschreibung=self.description_box.get("1.0", "end").strip(),
        )
        self.save_button.configure(state="disabled", text="Speichert...")
        self.app.run(self.app.controller.save_category(form, self.category), self._on_saved)

    def _on_saved(self, ok: bool):
        if ok:
            self.destroy()
            self.app.refresh()
        else:
            self.save_button.configure(state="normal")


def confirm(parent, title: str, message: str, on_yes: Callable[[], None]):
    """Ask a yes/no question and call ``on_yes`` when confirmed."""
    from tkinter import messagebox

    if messagebox.askyesno(title, message, parent=parent):
        on_yes()
