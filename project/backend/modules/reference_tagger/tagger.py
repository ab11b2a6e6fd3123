"""
Resource locator tagging.

Finds media locators in free text, canonicalizes them to bucket-path form and
replaces each with a short tag (<IMAGE_1/>, <VIDEO_2/>, ...). Tag numbers are
global across categories and assigned in order of first appearance.
"""

import mimetypes
import re
from typing import Dict, List, Optional, Pattern
from urllib.parse import unquote

from shared.config import settings
from shared.logging import get_logger
from shared.models.references import ResourceReference, TaggingResult

logger = get_logger("reference_tagger")

MEDIA_EXTENSIONS = (
    "jpg", "jpeg", "png", "gif", "webp",
    "mp4", "mov", "avi", "webm",
    "mp3", "wav", "aac", "ogg", "flac", "m4a",
)

# Not part of a locator when it ends a sentence
TRAILING_PUNCTUATION = ".,!?;:)]}'\""

TAG_PATTERN = re.compile(r"<(?:IMAGE|VIDEO|AUDIO|OTHER)_(\d+)/>")

_mime = mimetypes.MimeTypes()
for _ext, _type in {
    ".webp": "image/webp",
    ".webm": "video/webm",
    ".mov": "video/quicktime",
    ".avi": "video/x-msvideo",
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".aac": "audio/aac",
    ".ogg": "audio/ogg",
    ".flac": "audio/flac",
    ".m4a": "audio/mp4",
}.items():
    _mime.add_type(_type, _ext)

_REDIRECT_PARTS = re.compile(
    r"https://firebasestorage\.googleapis\.com/v0/b/([^/]+)/o/([^?#]+)", re.IGNORECASE
)
_OBJECT_STORE_PARTS = re.compile(
    r"https://storage\.googleapis\.com/([^/?#]+)/([^?#]+)", re.IGNORECASE
)


def _notation_patterns(scheme: str) -> Dict[str, str]:
    """Locator notations, most specific first. Order is match precedence."""
    exts = "|".join(MEDIA_EXTENSIONS)
    return {
        # https://firebasestorage.googleapis.com/v0/b/<bucket>/o/<a%2Fb.png>?alt=media&token=...
        "redirect": r"https://firebasestorage\.googleapis\.com/v0/b/[^/\s]+/o/[^?\s]+(?:\?\S*)?",
        # https://storage.googleapis.com/<bucket>/<path>[?X-Goog-Signature=...]
        "object_store": r"https://storage\.googleapis\.com/[^/\s?]+/[^?\s]+(?:\?\S*)?",
        # <scheme>://<bucket>/<path>
        "bucket_path": re.escape(scheme) + r"://\S+",
        # any other http(s) URL whose path ends in a media extension
        "generic": r"https?://[^\s?#]+\.(?:" + exts + r")(?![A-Za-z0-9])(?:\?\S*)?",
    }


def _compile_finder(scheme: str) -> Pattern[str]:
    alternatives = (f"(?P<{name}>{pattern})" for name, pattern in _notation_patterns(scheme).items())
    return re.compile("|".join(alternatives), re.IGNORECASE)


def guess_mime_type(locator: str) -> str:
    """MIME type from the file-extension suffix of a locator."""
    path = locator.split("?", 1)[0].split("#", 1)[0]
    filename = path.rsplit("/", 1)[-1]
    mime_type, _ = _mime.guess_type(filename)
    return mime_type or "application/octet-stream"


def media_category(mime_type: str) -> str:
    major = mime_type.split("/", 1)[0]
    return major if major in ("image", "video", "audio") else "other"


class ReferenceTagger:
    """Tags media locators for one storage scheme.

    A tagger instance is stateless; each call to tag() starts a fresh
    numbering and dedup map.
    """

    def __init__(self, scheme: Optional[str] = None):
        self.scheme = (scheme or settings.storage_scheme).lower()
        self._finder = _compile_finder(self.scheme)

    def canonicalize(self, notation: str, locator: str) -> Optional[str]:
        """Bucket-path form of a locator, or None if it cannot be parsed."""
        if notation in ("redirect", "object_store"):
            parts = (_REDIRECT_PARTS if notation == "redirect" else _OBJECT_STORE_PARTS).match(locator)
            if parts is None:
                return None
            bucket, path = parts.groups()
            return f"{self.scheme}://{bucket}/{unquote(path)}"
        if locator.endswith("://"):
            return None
        return locator

    def tag(self, text: str) -> TaggingResult:
        """
        Replace every recognized locator in text with its tag.

        Args:
            text: Free-form prompt

        Returns:
            TaggingResult with tagged text and references in tag order
        """
        references: List[ResourceReference] = []
        by_uri: Dict[str, ResourceReference] = {}

        def _replace(match: "re.Match[str]") -> str:
            raw = match.group(0)
            locator = raw.rstrip(TRAILING_PUNCTUATION)
            trailing = raw[len(locator):]
            canonical = self.canonicalize(match.lastgroup, locator)
            if canonical is None:
                logger.debug("Skipping unparseable locator", extra={"locator": raw})
                return raw

            existing = by_uri.get(canonical)
            if existing is not None:
                return existing.tag + trailing

            mime_type = guess_mime_type(canonical)
            category = media_category(mime_type)
            ref = ResourceReference(
                original_locator=locator,
                canonical_uri=canonical,
                media_category=category,
                mime_type=mime_type,
                tag=f"<{category.upper()}_{len(references) + 1}/>",
            )
            references.append(ref)
            by_uri[canonical] = ref
            return ref.tag + trailing

        tagged = self._finder.sub(_replace, text)

        if references:
            logger.info(
                f"Tagged {len(references)} resource reference(s)",
                extra={"reference_count": len(references)}
            )
        return TaggingResult(tagged_text=tagged, references=references)


def tag(text: str, scheme: Optional[str] = None) -> TaggingResult:
    """Tag text using the configured storage scheme."""
    return ReferenceTagger(scheme).tag(text)
