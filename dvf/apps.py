"""App configuration for the `dvf` visualisation framework."""

from __future__ import annotations

from django.apps import AppConfig
from django.utils.module_loading import autodiscover_modules


class DvfConfig(AppConfig):
    """Configuration for the `dvf` app.

    Source and style plugins register themselves when their app's
    `visualisation_plugins` module is imported; `ready()` imports that module
    from every installed app.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "dvf"
    verbose_name = "Data visualisations"

    def ready(self) -> None:
        """Discover visualisation plugins declared by installed apps."""

        autodiscover_modules("visualisation_plugins")
