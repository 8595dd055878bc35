"""Visualisation style plugins."""

from __future__ import annotations

from .base import VisualisationStyleBase

__all__ = ["VisualisationStyleBase"]
