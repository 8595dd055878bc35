"""Access to the `DVF` settings dictionary with package defaults."""

from __future__ import annotations

from typing import Any, Final

from django.conf import settings

DEFAULTS: Final[dict[str, Any]] = {
    "CACHE_EXPIRY": 86400,
    "CKAN_API_URL": "",
    "CKAN_API_KEY": "",
    "CKAN_TIMEOUT": 30,
    "CKAN_PAGE_SIZE": 100,
    "CKAN_CACHE_ALIAS": "dvf_ckan",
    "HELP_URL": "",
}


def dvf_setting(name: str) -> Any:
    """Return a `DVF` setting, falling back to the package default.

    Args:
        name: Key inside `settings.DVF`.

    Returns:
        The configured value, or the default from `DEFAULTS`.

    Raises:
        KeyError: When `name` is not a known setting.
    """

    configured = getattr(settings, "DVF", None) or {}
    if name in configured:
        return configured[name]
    return DEFAULTS[name]
