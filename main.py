"""
OfferDesk - Marketplace Offer Dashboard
=======================================

Main entry point for the OfferDesk application. The dashboard manages
second-hand marketplace offers and their categories stored in Living Apps,
and can pre-fill new offers from a product photo.
"""

import sys
import os
import logging

# ============================================================================
# PYTHONW COMPATIBILITY - NULL STREAM SAFETY
# ============================================================================
# Under pythonw.exe sys.stdout and sys.stderr are None, which breaks
# logging.StreamHandler. Replace them with devnull wrappers.
if sys.stdout is None:
    sys.stdout = open(os.devnull, 'w')
if sys.stderr is None:
    sys.stderr = open(os.devnull, 'w')

# ============================================================================
# LOGGING INITIALIZATION
# ============================================================================
# Initialize logging BEFORE importing any other application modules.
from src.utils.logger import setup_logging
log_file = setup_logging()

import customtkinter
import tkinter

# MONKEYPATCH: CTkToplevel icon methods
# customtkinter loads a default icon for dialogs in a delayed callback, which
# raises TclError on some systems even when the file exists.

def safe_wm_iconbitmap(self, bitmap=None, default=None):
    try:
        self._iconbitmap_method_called = True
        tkinter.Toplevel.wm_iconbitmap(self, bitmap, default)
    except tkinter.TclError as e:
        logging.getLogger(__name__).warning(f"Ignored error in wm_iconbitmap: {e}")

def safe_iconbitmap(self, bitmap=None, default=None):
    try:
        self._iconbitmap_method_called = True
        tkinter.Toplevel.iconbitmap(self, bitmap, default)
    except tkinter.TclError as e:
        logging.getLogger(__name__).warning(f"Ignored error in iconbitmap: {e}")

customtkinter.CTkToplevel.wm_iconbitmap = safe_wm_iconbitmap
customtkinter.CTkToplevel.iconbitmap = safe_iconbitmap

from src.ui.app import App


def main():
    """
    Main application entry point.

    Creates the dashboard window, runs the GUI event loop and always shuts
    logging down cleanly, logging any fatal error with its stack trace.
    """
    logger = logging.getLogger(__name__)

    try:
        logger.info("Initializing OfferDesk application")
        logger.info(f"Python version: {sys.version}")
        logger.info(f"Log file: {log_file}")

        app = App()
        logger.info("Application window created successfully")

        app.mainloop()

    except Exception as e:
        logger.critical(f"Fatal error in main application: {e}", exc_info=True)
        raise
    finally:
        logger.info("Application shutdown")
        from src.utils.logger import shutdown_logging
        shutdown_logging()


if __name__ == "__main__":
    main()
