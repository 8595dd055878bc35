"""Database models for configured visualisations."""

from __future__ import annotations

from typing import Any

from django.db import models

from .fields import VisualisationFileField, VisualisationURLField
from .visualisation import Visualisation


class DataVisualisation(models.Model):
    """A dataset plus the source and style used to visualise it.

    `style_options` holds the style plugin configuration (for example the
    `data` block produced by the style settings form).
    """

    title = models.CharField(max_length=255)
    url = VisualisationURLField(blank=True, help_text="Link to the dataset, e.g. a CKAN resource page.")
    file = VisualisationFileField(blank=True, help_text="Uploaded dataset file.")
    source_plugin = models.CharField(max_length=100)
    style_plugin = models.CharField(max_length=100)
    style_options = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["title"]
        verbose_name = "Data visualisation"
        verbose_name_plural = "Data visualisations"

    def __str__(self) -> str:
        return self.title

    def dataset_uri(self) -> str:
        """Return the dataset URI: the URL field, else the uploaded file URL."""

        if self.url:
            return self.url
        if self.file:
            return self.file.url
        return ""

    def visualisation_configuration(self) -> dict[str, Any]:
        return {
            "source": {"plugin_id": self.source_plugin, "options": {"uri": self.dataset_uri()}},
            "style": {"plugin_id": self.style_plugin, "options": dict(self.style_options or {})},
        }

    def get_visualisation(self) -> Visualisation:
        """Build the runtime visualisation for this record."""

        return Visualisation(self.visualisation_configuration(), entity=self)
