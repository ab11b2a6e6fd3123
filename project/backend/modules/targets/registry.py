"""
Target registry and request validation.

One lookup by target id yields the TargetSpec, which carries both the schema
used for validation and the adapter used for execution.
"""

from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from shared.errors import FieldError, UnknownTargetError, ValidationError

from .base import TargetSpec
from .gemini import GEMINI_TARGETS
from .imagen import IMAGE_TARGETS
from .lyria import LYRIA_TARGETS
from .veo import VEO_TARGETS

TARGETS: Dict[str, TargetSpec] = {
    spec.target_id: spec
    for spec in (*VEO_TARGETS, *IMAGE_TARGETS, *LYRIA_TARGETS, *GEMINI_TARGETS)
}


def lookup(target_id: Optional[str]) -> TargetSpec:
    """
    Get the registry entry for a target.

    Raises:
        UnknownTargetError: If no target has this id
    """
    spec = TARGETS.get(target_id) if target_id else None
    if spec is None:
        raise UnknownTargetError(target_id)
    return spec


def list_targets() -> List[TargetSpec]:
    return list(TARGETS.values())


def resolve_target(payload: Any, expected: Optional[str] = None) -> TargetSpec:
    """
    Find the target a payload declares through its "model" field.

    Raises:
        ValidationError: If the payload is not an object or names no known target
    """
    if not isinstance(payload, dict):
        raise ValidationError([FieldError("", "request must be a JSON object")])

    target_id = payload.get("model")
    if expected and target_id != expected:
        raise ValidationError([FieldError("model", f"must be {expected!r}")])
    if target_id not in TARGETS:
        available = ", ".join(TARGETS)
        raise ValidationError([FieldError("model", f"must be one of: {available}")])
    return TARGETS[target_id]


def _field_errors(exc: PydanticValidationError) -> List[FieldError]:
    return [
        FieldError(".".join(str(part) for part in err["loc"]), err["msg"])
        for err in exc.errors()
    ]


def validate_request(payload: Dict[str, Any], spec: TargetSpec) -> Dict[str, Any]:
    """
    Validate a payload against a target schema.

    Returns:
        Normalized payload with defaults applied and unset optional fields dropped

    Raises:
        ValidationError: With one FieldError per violation
    """
    try:
        instance = spec.request_model.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(_field_errors(e)) from e
    return instance.model_dump(mode="json", exclude_none=True)


def validate_payload(payload: Any, expected: Optional[str] = None) -> Dict[str, Any]:
    """resolve_target + validate_request in one step."""
    return validate_request(payload, resolve_target(payload, expected))
