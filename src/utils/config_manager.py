"""
Application Configuration Persistence
======================================

This module manages the user settings of the offer dashboard that may differ
between installations: the record-storage base URL and session cookie, and
the photo-analysis endpoint, key and model.

Key Responsibilities:
---------------------
- File-System Persistence: Stores settings in a hidden JSON file in the
  user's home directory (`~/.offerdesk_config.json`).
- State Synchronization: Maps JSON keys onto the `BackendConfig` and
  `AnalysisConfig` dataclasses field by field.
- Environment Overrides: `LIVING_APPS_SESSION` and `ANTHROPIC_API_KEY` win
  over values from the file.
- Security Logging: Save/load events are logged with secrets redacted.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, Optional

from src.core import config
from src.utils.logger import log_config

CONFIG_PATH = Path.home() / ".offerdesk_config.json"

SESSION_COOKIE_ENV = "LIVING_APPS_SESSION"
ANTHROPIC_KEY_ENV = "ANTHROPIC_API_KEY"


@dataclass
class BackendConfig:
    """
    Record-storage connection settings.

    Attributes:
        base_url: REST base URL
        session_cookie: Raw cookie header value, e.g. "sid=abc; lang=de"
    """
    base_url: str = config.LIVING_APPS_BASE_URL
    session_cookie: str = ""

    def cookie_dict(self) -> Dict[str, str]:
        """Split the raw cookie header into name/value pairs."""
        cookies = {}
        for part in self.session_cookie.split(';'):
            if '=' in part:
                key, value = part.split('=', 1)
                if key.strip():
                    cookies[key.strip()] = value.strip()
        return cookies


@dataclass
class AnalysisConfig:
    """
    Photo-analysis settings.

    Attributes:
        base_url: Messages API base URL (a proxy may be used instead)
        api_key: API key, empty when the proxy authenticates
        model: Model identifier
        max_tokens: Reply token budget
        enabled: Whether the photo analysis button is offered at all
    """
    base_url: str = config.ANTHROPIC_BASE_URL
    api_key: str = ""
    model: str = config.ANALYSIS_MODEL
    max_tokens: int = config.ANALYSIS_MAX_TOKENS
    enabled: bool = True


@dataclass
class Settings:
    backend: BackendConfig = field(default_factory=BackendConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)


def save_config(settings: Settings, path: Optional[Path] = None):
    """
    Persist settings as pretty-printed JSON.

    Args:
        settings: The settings to save.
        path: Target file; defaults to CONFIG_PATH.
    """
    logger = logging.getLogger(__name__)
    path = path or CONFIG_PATH

    try:
        data = {
            "backend": asdict(settings.backend),
            "analysis": asdict(settings.analysis),
        }

        log_config("Saving Configuration", data, logger)

        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

        logger.info(f"Configuration saved successfully to {path}")

    except OSError as e:
        logger.error(f"Failed to save configuration: {e}", exc_info=True)


def load_config(settings: Optional[Settings] = None, path: Optional[Path] = None) -> Settings:
    """
    Load settings from the JSON file and apply environment overrides.

    Unknown keys are ignored. A missing or corrupt file leaves the defaults
    in place.

    Args:
        settings: Settings object to update; a new one is created when None.
        path: Source file; defaults to CONFIG_PATH.

    Returns:
        The updated settings.
    """
    logger = logging.getLogger(__name__)
    settings = settings or Settings()
    path = path or CONFIG_PATH

    if not path.exists():
        logger.info(f"No existing configuration file found at {path}")
    else:
        try:
            logger.info(f"Loading configuration from {path}")

            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)

            log_config("Loaded Configuration", data, logger)

            for section_name in ("backend", "analysis"):
                section = getattr(settings, section_name)
                for k, v in (data.get(section_name) or {}).items():
                    if hasattr(section, k):
                        if isinstance(v, str):
                            v = v.strip()
                        setattr(section, k, v)

            logger.info("Configuration loaded and applied successfully")

        except json.JSONDecodeError as e:
            logger.error(f"Configuration file is corrupted: {e}", exc_info=True)
        except (OSError, AttributeError) as e:
            logger.error(f"Failed to load configuration: {e}", exc_info=True)

    session_cookie = os.environ.get(SESSION_COOKIE_ENV)
    if session_cookie:
        settings.backend.session_cookie = session_cookie.strip()
        logger.debug(f"Session cookie taken from {SESSION_COOKIE_ENV}")

    api_key = os.environ.get(ANTHROPIC_KEY_ENV)
    if api_key:
        settings.analysis.api_key = api_key.strip()
        logger.debug(f"Anthropic API key taken from {ANTHROPIC_KEY_ENV}")

    return settings
