"""Admin registrations for the dvf app."""

from __future__ import annotations

from django.contrib import admin

from dvf.forms import DataVisualisationAdminForm
from dvf.models import DataVisualisation


@admin.register(DataVisualisation)
class DataVisualisationAdmin(admin.ModelAdmin):
    """Admin configuration for DataVisualisation."""

    form = DataVisualisationAdminForm
    list_display = ("title", "source_plugin", "style_plugin", "updated_at")
    list_filter = ("source_plugin", "style_plugin")
    search_fields = ("title", "url")
