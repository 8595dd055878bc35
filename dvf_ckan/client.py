"""Minimal client for the CKAN action API."""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlencode, urljoin

from dvf.conf import dvf_setting
from dvf.exceptions import ParseError, TransportError

from .parser import api_url_from_resource_uri

logger = logging.getLogger(__name__)

USER_AGENT = "dataviz/0.1 (dvf_ckan)"


class CkanClient:
    """Issue GET requests against a CKAN action API.

    Args:
        api_url: API base, e.g. `https://data.example.org/api/3/`.
        api_key: Optional API token sent in the `Authorization` header.
        timeout: Socket timeout in seconds for each request.
    """

    def __init__(self, api_url: str, *, api_key: str = "", timeout: float = 30) -> None:
        self.api_url = api_url.rstrip("/") + "/" if api_url else ""
        self.api_key = api_key
        self.timeout = timeout

    @classmethod
    def from_settings(cls, resource_uri: str | None = None) -> CkanClient:
        """Build a client from `DVF` settings.

        `DVF["CKAN_API_URL"]` wins when set; otherwise the API base is derived
        from the resource URI's scheme and host.
        """

        api_url = dvf_setting("CKAN_API_URL") or api_url_from_resource_uri(resource_uri)
        return cls(
            api_url,
            api_key=dvf_setting("CKAN_API_KEY"),
            timeout=dvf_setting("CKAN_TIMEOUT"),
        )

    def build_url(self, path: str, query: Mapping[str, Any] | None = None) -> str:
        url = urljoin(self.api_url, path.lstrip("/"))
        if query:
            url = f"{url}?{urlencode({key: _query_value(value) for key, value in query.items()})}"
        return url

    def get(self, path: str, query: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """GET an API path and return the decoded JSON object.

        Args:
            path: Path relative to the API base, e.g. "action/datastore_search".
            query: Query-string parameters.

        Returns:
            The decoded response body.

        Raises:
            TransportError: When no API base is configured, the request fails or
                the server answers with an HTTP error.
            ParseError: When the body is not a JSON object.
        """

        if not self.api_url:
            raise TransportError("No CKAN API URL configured.")

        url = self.build_url(path, query)
        headers = {"Accept": "application/json", "User-Agent": USER_AGENT}
        if self.api_key:
            headers["Authorization"] = self.api_key
        request = urllib.request.Request(url, headers=headers)

        logger.debug("GET %s", url)
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                body = response.read()
        except urllib.error.HTTPError as exc:
            raise TransportError(f"CKAN API returned HTTP {exc.code} for {url}") from exc
        except (urllib.error.URLError, OSError) as exc:
            raise TransportError(f"Failed to reach CKAN API: {url}") from exc

        try:
            payload = json.loads(body)
        except ValueError as exc:
            raise ParseError(f"CKAN API returned invalid JSON for {url}") from exc
        if not isinstance(payload, dict):
            raise ParseError(f"CKAN API returned a non-object payload for {url}")
        return payload


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)
