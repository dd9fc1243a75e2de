# -*- coding: utf-8 -*-
"""Application version detection utilities.

Provides a single public function, ``get_app_version()``, used by the HTTP
integrations to build their User-Agent header.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

_CACHED_VERSION: Optional[str] = None


def get_app_version() -> str:
    """Return the application version string (e.g., ``v1.2.3``).

    Production: read version.txt written by the release script.
    Development fallback: return "vdev" if file is missing.
    """
    global _CACHED_VERSION
    if _CACHED_VERSION:
        return _CACHED_VERSION

    # version.txt next to the package directory
    version_file = Path(__file__).resolve().parent.parent / "version.txt"
    try:
        text = version_file.read_text(encoding="ascii", errors="ignore").strip()
    except OSError:
        text = ""
    if text:
        _CACHED_VERSION = text if text.startswith("v") else f"v{text}"
    else:
        _CACHED_VERSION = "vdev"
    return _CACHED_VERSION
