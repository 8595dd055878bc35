"""Forms for configuring visualisations in the admin.

The style settings form is built from the style plugin it configures: field
choices come from the source's schema and one column-override textarea is
added per column the style reports.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from django import forms
from django.utils.html import format_html

from .helpers import help_page_link
from .models import DataVisualisation
from .plugins import source_plugins, style_plugins

if TYPE_CHECKING:
    from .styles.base import VisualisationStyleBase

COLUMN_OVERRIDE_PREFIX = "column_override_"
COLUMN_OVERRIDE_EXAMPLES = ("type|line", "color|#000000", "legend|hide", "style|dashed", "weight|20", "class|hide-points")


def _help(text: str, section: str) -> str:
    link = help_page_link(section)
    return format_html("{} {}", text, link) if link else text


class VisualisationStyleSettingsForm(forms.Form):
    """Validate the `data` settings shared by every style plugin."""

    selected_fields = forms.MultipleChoiceField(
        required=False,
        choices=(),
        label="Fields",
        widget=forms.SelectMultiple(attrs={"size": 5}),
    )
    field_labels = forms.CharField(
        required=False,
        label="Field label overrides",
        widget=forms.Textarea(attrs={"rows": 2, "placeholder": "Old label|New label"}),
    )
    split_field = forms.ChoiceField(
        required=False,
        choices=(),
        label="Split field",
    )
    cache_expiry = forms.ChoiceField(
        required=False,
        choices=(),
        label="Cache expiry",
        help_text="How long the results for this dataset will be cached.",
    )
    data_filters_q = forms.CharField(
        required=False,
        label="Full text query",
        help_text="Optionally query entire dataset for any string value.",
    )
    data_filters_filters = forms.CharField(
        required=False,
        label="Filters",
        help_text=(
            'Filter on key/value dictionary. For example: {"code": "4000", "year": "2016"} '
            'or {"year": ["2014", "2015"]}. Case sensitive.'
        ),
    )

    def __init__(self, *args: Any, style: VisualisationStyleBase, **kwargs: Any) -> None:
        """Build choices and column-override fields from `style`.

        Args:
            style: The style plugin being configured; its current configuration
                supplies the initial values.
        """

        super().__init__(*args, **kwargs)
        self.style = style
        self.column_override_names: dict[str, str] = {}

        field_options = list(style.get_source_field_options().items())
        self.fields["selected_fields"].choices = field_options
        self.fields["selected_fields"].help_text = _help(
            "What fields to include in the visualisation. Select at least one field to display its data. "
            "A field is typically a column in a CSV.",
            "keys",
        )
        self.fields["field_labels"].help_text = _help(
            "Optionally override one or more field labels. Add one original_label|new_label per line "
            "and separate with a pipe.",
            "label-overrides",
        )
        self.fields["split_field"].choices = [("", "- None -"), *field_options]
        self.fields["split_field"].help_text = _help(
            "Optionally split into multiple visualisations based on the value of this field. "
            "A new visualisation will be made for each unique value in this field.",
            "split",
        )
        self.fields["cache_expiry"].choices = list(style.get_cache_options())

        overrides = style.config("data", "column_overrides") or {}
        examples = " or ".join(COLUMN_OVERRIDE_EXAMPLES)
        for index, column in enumerate(dict.fromkeys(str(value) for value in style.get_column_override_values())):
            name = f"{COLUMN_OVERRIDE_PREFIX}{index}"
            self.column_override_names[name] = column
            self.fields[name] = forms.CharField(
                required=False,
                label=column,
                widget=forms.Textarea(attrs={"rows": 2}),
                help_text=f"Optional key|value per line. Examples: {examples}.",
            )
            self.initial.setdefault(name, overrides.get(column, ""))

        self.initial.setdefault("selected_fields", style.config("data", "fields") or [])
        self.initial.setdefault("field_labels", style.config("data", "field_labels") or "")
        self.initial.setdefault("split_field", style.config("data", "split_field") or "")
        self.initial.setdefault("cache_expiry", style.config("data", "cache_expiry") or "_global_default")
        self.initial.setdefault("data_filters_q", style.config("data", "data_filters", "q") or "")
        self.initial.setdefault("data_filters_filters", style.config("data", "data_filters", "filters") or "")

    def to_configuration(self) -> dict[str, Any]:
        """Return the nested style configuration built from cleaned data."""

        cleaned = self.cleaned_data
        return {
            "data": {
                "fields": list(cleaned.get("selected_fields") or []),
                "field_labels": cleaned.get("field_labels") or "",
                "split_field": cleaned.get("split_field") or "",
                "cache_expiry": cleaned.get("cache_expiry") or "",
                "column_overrides": {
                    column: cleaned.get(name) or ""
                    for name, column in self.column_override_names.items()
                },
                "data_filters": {
                    "q": cleaned.get("data_filters_q") or "",
                    "filters": cleaned.get("data_filters_filters") or "",
                },
            },
        }


class DataVisualisationAdminForm(forms.ModelForm):
    """Admin form offering registered plugins as choices."""

    source_plugin = forms.ChoiceField(choices=())
    style_plugin = forms.ChoiceField(choices=())

    class Meta:
        model = DataVisualisation
        fields = ("title", "url", "file", "source_plugin", "style_plugin", "style_options")

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.fields["source_plugin"].choices = source_plugins.choices()
        self.fields["style_plugin"].choices = style_plugins.choices()

    def clean(self) -> dict[str, Any]:
        cleaned = super().clean()
        if not cleaned.get("url") and not cleaned.get("file"):
            raise forms.ValidationError("Provide a dataset URL or upload a dataset file.")
        return cleaned
