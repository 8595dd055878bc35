"""Plugins provided by the `dvf_ckan` app (imported by `DvfConfig.ready()`)."""

from __future__ import annotations

from dvf_ckan import sources  # noqa: F401
