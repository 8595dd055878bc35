"""Model fields that hold a dataset a visualisation can be built from.

Each field carries a `dvf_field_type` used by styles to locate the dataset
download link on a model instance.
"""

from __future__ import annotations

from django.db import models


class VisualisationURLField(models.URLField):
    """URL of a remote dataset (e.g. a CKAN resource page)."""

    dvf_field_type = "dvf_url"

    def __init__(self, *args, **kwargs) -> None:
        kwargs.setdefault("max_length", 2048)
        super().__init__(*args, **kwargs)

    def formfield(self, **kwargs):
        kwargs.setdefault("assume_scheme", "https")
        return super().formfield(**kwargs)


class VisualisationFileField(models.FileField):
    """Uploaded dataset file (e.g. a CSV)."""

    dvf_field_type = "dvf_file"

    def __init__(self, *args, **kwargs) -> None:
        kwargs.setdefault("upload_to", "dvf/")
        super().__init__(*args, **kwargs)
