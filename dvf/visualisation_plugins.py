"""Plugins provided by the `dvf` app (imported by `DvfConfig.ready()`)."""

from __future__ import annotations

from dvf.styles import table  # noqa: F401
