"""Extract CKAN resource ids and API locations from dataset URLs."""

from __future__ import annotations

import re
from urllib.parse import parse_qs, urlsplit

_PATH_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"/resource/(?P<id>[^/?#]+)"),
    re.compile(r"/datastore/dump/(?P<id>[^/?#]+)"),
)
_BARE_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")
_QUERY_KEYS = ("resource_id", "id")


class CkanResourceUrlParser:
    """Parse resource ids out of CKAN URLs.

    Supported forms:

    - `https://host/dataset/<package>/resource/<id>` (resource page, with or
      without a trailing `/download/<file>`),
    - `https://host/datastore/dump/<id>`,
    - API URLs carrying `resource_id=<id>` or `id=<id>` in the query string,
    - a bare resource id.
    """

    def get_resource_id(self, uri: str | None) -> str | None:
        """Return the resource id referenced by `uri`, or None."""

        value = (uri or "").strip()
        if not value:
            return None
        if _BARE_ID_RE.match(value):
            return value

        parts = urlsplit(value)
        for pattern in _PATH_PATTERNS:
            match = pattern.search(parts.path)
            if match:
                return match.group("id")

        query = parse_qs(parts.query)
        for key in _QUERY_KEYS:
            values = query.get(key)
            if values and values[0]:
                return values[0]
        return None


def api_url_from_resource_uri(uri: str | None) -> str:
    """Return the action API base (`<scheme>://<host>/api/3/`) for a CKAN URL.

    Returns:
        The API base URL, or an empty string when `uri` has no scheme or host.
    """

    parts = urlsplit((uri or "").strip())
    if not parts.scheme or not parts.netloc:
        return ""
    return f"{parts.scheme}://{parts.netloc}/api/3/"
