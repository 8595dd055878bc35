"""Visualisation source plugins."""

from __future__ import annotations

from .base import Record, VisualisationSourceBase

__all__ = ["Record", "VisualisationSourceBase"]
