"""
Tag restoration.

Reverses tagging after a payload has been produced: tags sitting in media
fields become {"uri", "mime_type"} references, tags in free text are either
dropped (already carried by a media field) or expanded back to what the user
typed.
"""

import copy
import re
from typing import Any, Dict, Iterable, Optional, Sequence, Set, Tuple

from shared.logging import get_logger
from shared.models.references import ResourceReference

from .tagger import TAG_PATTERN

logger = get_logger("reference_tagger")

_WHITESPACE = re.compile(r"\s+")
_SPACE_BEFORE_PUNCTUATION = re.compile(r"\s+([.,!?;:])")
_EXACT_TAG = re.compile(r"\s*(" + TAG_PATTERN.pattern + r")\s*")


def normalize_whitespace(text: str) -> str:
    """Collapse whitespace runs, drop space before punctuation, trim."""
    text = _WHITESPACE.sub(" ", text)
    text = _SPACE_BEFORE_PUNCTUATION.sub(r"\1", text)
    return text.strip()


def _index(references: Iterable[ResourceReference]) -> Dict[str, ResourceReference]:
    return {ref.tag: ref for ref in references}


def _expand(text: str, refs: Dict[str, ResourceReference], drop: Set[str]) -> str:
    def _sub(match: "re.Match[str]") -> str:
        tag = match.group(0)
        if tag in drop:
            return ""
        ref = refs.get(tag)
        if ref is None:
            logger.warning("Unknown tag left in text", extra={"tag": tag})
            return tag
        return ref.original_locator

    return TAG_PATTERN.sub(_sub, text)


def restore_text(text: str, references: Iterable[ResourceReference]) -> str:
    """Expand every tag in text back to its original locator."""
    return _expand(text, _index(references), drop=set())


def _resolve_media_value(value: Any, refs: Dict[str, ResourceReference], used: Set[str]) -> Any:
    if isinstance(value, list):
        return [_resolve_media_value(item, refs, used) for item in value]

    if isinstance(value, str):
        exact = _EXACT_TAG.fullmatch(value)
        ref = refs.get(exact.group(1)) if exact else None
        if ref is None:
            return value
        used.add(ref.tag)
        return {"uri": ref.canonical_uri, "mime_type": ref.mime_type}

    if isinstance(value, dict) and isinstance(value.get("uri"), str):
        exact = _EXACT_TAG.fullmatch(value["uri"])
        ref = refs.get(exact.group(1)) if exact else None
        if ref is None:
            return value
        used.add(ref.tag)
        resolved = dict(value)
        resolved["uri"] = ref.canonical_uri
        if not resolved.get("mime_type"):
            resolved["mime_type"] = ref.mime_type
        return resolved

    return value


def _walk(obj: Any, path: Sequence[str]) -> Optional[Tuple[Dict[str, Any], str]]:
    """Parent dict and key for a dotted field path, or None if absent."""
    for key in path[:-1]:
        if not isinstance(obj, dict) or not isinstance(obj.get(key), dict):
            return None
        obj = obj[key]
    if isinstance(obj, dict) and path[-1] in obj:
        return obj, path[-1]
    return None


def _expand_strings(obj: Any, refs: Dict[str, ResourceReference]) -> Any:
    if isinstance(obj, str):
        return _expand(obj, refs, drop=set())
    if isinstance(obj, list):
        return [_expand_strings(item, refs) for item in obj]
    if isinstance(obj, dict):
        return {key: _expand_strings(value, refs) for key, value in obj.items()}
    return obj


def restore(
    request: Dict[str, Any],
    text: str,
    references: Iterable[ResourceReference],
    media_fields: Iterable[str] = (),
    text_field: Optional[str] = None,
) -> Tuple[Dict[str, Any], str]:
    """
    Resolve tags in a produced payload.

    Args:
        request: Payload as produced by the reasoning service (not mutated)
        text: Free text accompanying the payload (usually its prompt field)
        references: References from the tagging step
        media_fields: Dotted paths of fields that carry media references
        text_field: Payload field holding the free text; receives the cleaned text

    Returns:
        (cleaned_request, cleaned_text)
    """
    refs = _index(references)
    cleaned = copy.deepcopy(request)
    used: Set[str] = set()

    for field_path in media_fields:
        located = _walk(cleaned, field_path.split("."))
        if located is None:
            continue
        parent, key = located
        parent[key] = _resolve_media_value(parent[key], refs, used)

    cleaned_text = normalize_whitespace(_expand(text, refs, drop=used))

    free_text = cleaned.pop(text_field, None) if text_field else None
    cleaned = _expand_strings(cleaned, refs)
    if text_field and isinstance(free_text, str):
        cleaned[text_field] = normalize_whitespace(_expand(free_text, refs, drop=used))
    elif text_field and free_text is not None:
        cleaned[text_field] = free_text

    if used:
        logger.info(
            f"Resolved {len(used)} tag(s) into media fields",
            extra={"resolved_tags": ",".join(sorted(used))}
        )
    return cleaned, cleaned_text
