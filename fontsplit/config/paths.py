"""
Filesystem path constants for the webfont pipeline.

Centralizes path definitions to avoid magic strings in individual modules.
"""

from pathlib import Path

STORE_DIR = Path("webfonts")
FALLBACK_CACHE_DIR = Path("build") / "fallback"

# Store layout
STORE_INDEX = "index.json"
WOFF2_SUFFIX = ".woff2"

# Reserved family name that selects the bundled fallback fonts
FALLBACK_FONT_NAME = "fontsplit-fallback"
