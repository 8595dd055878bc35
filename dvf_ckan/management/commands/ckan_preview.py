"""Preview a CKAN datastore resource through the configured source and table style.

Useful for checking a resource URL, data filters and split field before
attaching them to a visualisation. Results go through the normal CKAN cache.
"""

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from dvf.helpers import validate_json
from dvf.visualisation import Visualisation


class Command(BaseCommand):
    """Print the fields and the first rows of a CKAN resource."""

    help = "Fetch a CKAN datastore resource and print its fields and first rows."

    SOURCE_PLUGIN = "dvf_ckan_resource"
    STYLE_PLUGIN = "dvf_table"

    def add_arguments(self, parser) -> None:
        """Add command arguments."""

        parser.add_argument("uri", help="CKAN resource URL (or bare resource id with DVF CKAN_API_URL set).")
        parser.add_argument("--q", default="", help="Optional full-text query.")
        parser.add_argument(
            "--filters",
            default="",
            help='Optional JSON key/value filters, e.g. {"year": "2016"}.',
        )
        parser.add_argument("--split-field", default="", help="Optional field to group rows by.")
        parser.add_argument("--rows", type=int, default=5, help="Rows to print per group (default 5).")

    def handle(self, *args, **options) -> str | None:
        """Run the command."""

        uri: str = options["uri"]
        filters: str = options["filters"]
        rows: int = options["rows"]

        if filters and not validate_json(filters):
            raise CommandError("--filters must be a JSON document.")
        if rows < 0:
            raise CommandError("--rows must be zero or greater.")

        visualisation = Visualisation(
            {
                "source": {"plugin_id": self.SOURCE_PLUGIN, "options": {"uri": uri}},
                "style": {
                    "plugin_id": self.STYLE_PLUGIN,
                    "options": {
                        "data": {
                            "split_field": options["split_field"],
                            "data_filters": {"q": options["q"], "filters": filters},
                        },
                    },
                },
            }
        )
        source = visualisation.get_source_plugin()
        style = visualisation.get_style_plugin()

        resource_id = source.get_resource_id()
        if not resource_id:
            raise CommandError(f"Could not find a CKAN resource id in {uri!r}.")

        fields = style.field_labels_original()
        style.set_configuration({**style.configuration, "data": {**style.config("data"), "fields": fields}})

        self.stdout.write(f"Resource: {resource_id}")
        self.stdout.write(f"Fields: {', '.join(fields) if fields else '(none)'}")
        self.stdout.write(f"Records: {len(visualisation.data())}")

        for table in style.build():
            self.stdout.write("")
            self.stdout.write(f"[{table.group}] {len(table.rows)} rows")
            self.stdout.write(" | ".join(table.header))
            for row in table.rows[:rows]:
                self.stdout.write(" | ".join(str(value) for value in row))
        return None
