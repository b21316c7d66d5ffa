"""coursetutor: MCP server for AI-assisted course tutoring with provider fallback.

The version is read from installed package metadata. A source checkout run
without an install reports ``UNKNOWN_VERSION`` and warns once at import.
"""

from __future__ import annotations

import warnings
from importlib.metadata import PackageNotFoundError, version

DISTRIBUTION_NAME = "coursetutor"
UNKNOWN_VERSION = "0.0.0+unknown"

try:
    __version__ = version(DISTRIBUTION_NAME)
except PackageNotFoundError:
    warnings.warn(
        f"Package metadata for {DISTRIBUTION_NAME!r} not found; "
        f"reporting version {UNKNOWN_VERSION!r}.",
        RuntimeWarning,
        stacklevel=2,
    )
    __version__ = UNKNOWN_VERSION
