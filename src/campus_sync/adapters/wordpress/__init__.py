"""WordPress REST API content source."""

from __future__ import annotations

from .client import WordPressAPIError, WordPressSource
from .translator import parse_record

__all__ = ["WordPressAPIError", "WordPressSource", "parse_record"]
