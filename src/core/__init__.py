"""
Core Application Logic
======================

This package contains the foundational business logic of the OfferDesk
dashboard: the Living Apps record-storage client, record models and forms,
product photo analysis, and the dashboard state controller.
"""
