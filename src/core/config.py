"""
Application Configuration and Constants
=======================================

This module contains all global configuration values, constants, and defaults used
throughout the offer dashboard. It serves as a single source of truth for:

- Living Apps record-storage endpoints and application identifiers
- Anthropic Messages endpoint, model and token budget
- The fixed product-photo analysis instruction
- Offer field names and required-field rules

Note:
    All constants use UPPER_SNAKE_CASE naming convention. The two application
    identifiers are compiled in; there is no runtime discovery of them.
"""

# ============================================================================
# APPLICATION SETTINGS
# ============================================================================

APP_NAME = "Marktplatz Angebote"
GEOMETRY = "1200x760"

# ============================================================================
# RECORD-STORAGE BACKEND (LIVING APPS)
# ============================================================================
# Base URL used for REST calls. Can be overridden in the persisted settings
# (e.g. to route through a local proxy).
LIVING_APPS_BASE_URL = "https://my.living-apps.de/rest"

# Canonical host used inside record URLs stored in applookup fields.
# This never changes with the request base URL.
LIVING_APPS_RECORD_HOST = "https://my.living-apps.de/rest"

# One application identifier per record collection
APP_IDS = {
    "KATEGORIEN": "69983b520a1e6808728fba51",
    "MARKTPLATZ_ANGEBOTE": "69983b57b9c7067ba76c8846",
}

# Length of a backend record identifier (hex characters)
RECORD_ID_LENGTH = 24

# ============================================================================
# IMAGE-UNDERSTANDING BACKEND (ANTHROPIC MESSAGES API)
# ============================================================================

ANTHROPIC_BASE_URL = "https://api.anthropic.com"
ANTHROPIC_VERSION = "2023-06-01"
ANALYSIS_MODEL = "claude-sonnet-4-5-20250929"
ANALYSIS_MAX_TOKENS = 1024

# Media type assumed when a file's type cannot be guessed
DEFAULT_IMAGE_MEDIA_TYPE = "image/jpeg"

# File dialog filter for product photos
SUPPORTED_IMAGE_EXTENSIONS = ("*.jpg", "*.jpeg", "*.png", "*.webp", "*.gif")

# Keys the model is asked to return
PRODUCT_INFO_KEYS = (
    "hersteller",
    "modell",
    "farbe",
    "groesse",
    "produktbeschreibung",
    "preis",
)

PRODUCT_ANALYSIS_PROMPT = """Analysiere dieses Produktfoto und extrahiere die folgenden Informationen als JSON. Antworte NUR mit einem JSON-Objekt, ohne Markdown-Formatierung, ohne Code-Blocks.

Felder:
- "hersteller": Marke/Hersteller (z.B. "Nike", "Apple", "Samsung")
- "modell": Modellname/Produktname (z.B. "Air Max 90", "iPhone 15")
- "farbe": Hauptfarbe(n) des Produkts (z.B. "Schwarz/Weiß", "Rot")
- "groesse": Größe falls erkennbar (z.B. "42", "M", "L")
- "produktbeschreibung": Kurze Beschreibung des Produkts auf Deutsch (1-2 Sätze)
- "preis": Geschätzter Marktpreis in Euro als Zahl (nur wenn realistisch schätzbar, z.B. "89.99")

Wenn ein Feld nicht erkennbar ist, lasse es weg. Antworte NUR mit dem JSON-Objekt."""

# ============================================================================
# OFFER / CATEGORY FIELDS
# ============================================================================

OFFER_TEXT_FIELDS = (
    "hersteller",
    "modell",
    "farbe",
    "groesse",
    "produktbeschreibung",
    "kontakt_vorname",
    "kontakt_nachname",
    "kontakt_email",
    "kontakt_telefon",
)

# Required before a create/update is attempted (client-side only)
REQUIRED_OFFER_FIELDS = ("hersteller", "preis", "kontakt_vorname")
REQUIRED_CATEGORY_FIELDS = ("kategoriename",)

# Filter value meaning "no category filter"
ALL_CATEGORIES = "all"

