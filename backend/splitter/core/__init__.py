"""Core infrastructure: settings, database, errors and observability.

Exports the configuration settings to simplify import paths inside
tests (e.g. `from splitter.core import settings`).
"""

from .config import settings  # noqa: F401
