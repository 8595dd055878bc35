"""Table style: one table per record group."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from dvf.helpers import parse_pipe_pairs
from dvf.plugins import style_plugins

from .base import VisualisationStyleBase


@dataclass(frozen=True, slots=True)
class TableData:
    """Render-ready table for one group of records.

    Args:
        group: Split-field value, or "all".
        field_ids: Source field ids shown as columns.
        header: Column labels, in source field order.
        rows: One list of cell values per record, aligned with `header`.
        is_numeric: Whether every cell holds a numeric value.
        column_overrides: Parsed `key|value` overrides per column id.
    """

    group: Any
    field_ids: tuple[str, ...]
    header: tuple[str, ...]
    rows: tuple[tuple[Any, ...], ...]
    is_numeric: bool
    column_overrides: dict[str, dict[str, str]]


@style_plugins.register("dvf_table", label="Table")
class TableStyle(VisualisationStyleBase):
    """Render the selected fields of each record group as a table."""

    def default_configuration(self) -> dict[str, Any]:
        configuration = super().default_configuration()
        configuration["table"] = {"caption": ""}
        return configuration

    def column_overrides(self) -> dict[str, dict[str, str]]:
        """Return the non-empty column overrides as `{column: {key: value}}`."""

        overrides = self.config("data", "column_overrides") or {}
        parsed = {str(column): parse_pipe_pairs(text) for column, text in overrides.items()}
        return {column: values for column, values in parsed.items() if values}

    def build(self) -> list[TableData]:
        """Return one `TableData` per group of source records."""

        labels = self.field_labels()
        field_ids = tuple(labels)
        header = tuple(labels.values())
        overrides = self.column_overrides()

        tables: list[TableData] = []
        for group, records in self.get_source_records().items():
            rows = tuple(tuple(record.get(field_id, "") for field_id in field_ids) for record in records)
            tables.append(
                TableData(
                    group=group,
                    field_ids=field_ids,
                    header=header,
                    rows=rows,
                    is_numeric=bool(rows) and self.columns_are_numeric((header, *rows)),
                    column_overrides={column: overrides[column] for column in field_ids if column in overrides},
                )
            )
        return tables
