"""
Configuration & Path Management
===============================
Central registry for rendering defaults and on-disk cache locations.

Exports:
    DEFAULT_PIXEL_PER_POINT (float): Default image scale.
    QUILL_PACKAGE (str): Typst package used to draw circuits.
    FONT_FILE_NAME (str): File name of the equation font in the cache.
    FONT_URL (str): Where the equation font is downloaded from.
    get_package_cache_dir(): Typst package cache inside the cache directory.

Environment variables:
    QOLLAGE_CACHE_DIR: Cache directory (default ".qollage" in the working directory).
    QOLLAGE_FONT_URL: Alternative download location for the font.
"""
import os
from pathlib import Path

DEFAULT_PIXEL_PER_POINT: float = 3.0
QUILL_PACKAGE: str = "@preview/quill:0.2.1"
FONT_FAMILY: str = "Fira Math"
FONT_FILE_NAME: str = "FiraMath.otf"
DEFAULT_FONT_URL: str = "https://mirror.clientvps.com/CTAN/fonts/firamath/FiraMath-Regular.otf"
FONT_URL: str = os.environ.get("QOLLAGE_FONT_URL", DEFAULT_FONT_URL)
DOWNLOAD_TIMEOUT: float = 30.0


def get_cache_dir() -> Path:
    """
    Directory holding downloaded fonts and compilation scratch files.
    """
    return Path(os.environ.get("QOLLAGE_CACHE_DIR", ".qollage"))


def get_font_dir() -> Path:
    return get_cache_dir() / "fonts"


def get_font_path() -> Path:
    return get_font_dir() / FONT_FILE_NAME


def get_package_cache_dir() -> Path:
    """Where Typst keeps downloaded packages such as quill."""
    return get_cache_dir() / "cache"
