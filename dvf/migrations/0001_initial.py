"""Initial schema for configured data visualisations."""

from __future__ import annotations

from django.db import migrations, models

import dvf.fields


class Migration(migrations.Migration):
    """Create the DataVisualisation table."""

    initial = True

    dependencies: list[tuple[str, str]] = []

    operations = [
        migrations.CreateModel(
            name="DataVisualisation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=255)),
                (
                    "url",
                    dvf.fields.VisualisationURLField(
                        blank=True,
                        help_text="Link to the dataset, e.g. a CKAN resource page.",
                        max_length=2048,
                    ),
                ),
                (
                    "file",
                    dvf.fields.VisualisationFileField(
                        blank=True,
                        help_text="Uploaded dataset file.",
                        upload_to="dvf/",
                    ),
                ),
                ("source_plugin", models.CharField(max_length=100)),
                ("style_plugin", models.CharField(max_length=100)),
                ("style_options", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Data visualisation",
                "verbose_name_plural": "Data visualisations",
                "ordering": ["title"],
            },
        ),
    ]
