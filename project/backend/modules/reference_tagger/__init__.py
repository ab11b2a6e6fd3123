"""
Reference Tagger module public API.

Tags media locators in prompts and restores them into produced payloads.
"""

from .restore import normalize_whitespace, restore, restore_text
from .tagger import ReferenceTagger, guess_mime_type, tag

__all__ = [
    "ReferenceTagger",
    "tag",
    "restore",
    "restore_text",
    "normalize_whitespace",
    "guess_mime_type",
]
