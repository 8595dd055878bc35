"""WSGI entry point for serving the dataviz site.

The callable is exposed as the module-level `application` referenced by the
`WSGI_APPLICATION` setting.
"""

from __future__ import annotations

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "dataviz.settings")

application = get_wsgi_application()
