"""App configuration for the `dvf_ckan` app."""

from __future__ import annotations

from django.apps import AppConfig


class DvfCkanConfig(AppConfig):
    """Configuration for the `dvf_ckan` app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "dvf_ckan"
    verbose_name = "Data visualisations: CKAN"
