"""
Capability hints for the reasoning service.

Hints are rendered from each request model's JSON schema so they can never
drift from what the validator actually accepts.
"""

import json
from typing import Any, Dict, Iterable, List

from .base import TargetSpec


def _type_text(schema: Dict[str, Any], defs: Dict[str, Any]) -> str:
    if "$ref" in schema:
        name = schema["$ref"].rsplit("/", 1)[-1]
        if name == "MediaRef":
            return "media reference, written as a resource tag such as <IMAGE_1/>"
        return _type_text(defs.get(name, {}), defs)

    if "anyOf" in schema:
        options = [s for s in schema["anyOf"] if s.get("type") != "null"]
        return " or ".join(_type_text(s, defs) for s in options)

    if "const" in schema:
        return json.dumps(schema["const"])

    if "enum" in schema:
        return "one of " + ", ".join(json.dumps(v) for v in schema["enum"])

    kind = schema.get("type", "any")
    if kind == "array":
        text = f"list of {_type_text(schema.get('items', {}), defs)}"
        if "maxItems" in schema:
            text += f" (at most {schema['maxItems']})"
        return text

    if kind == "string" and ("minLength" in schema or "maxLength" in schema):
        return f"string ({schema.get('minLength', 0)}-{schema.get('maxLength', 'any')} chars)"

    if kind in ("integer", "number") and ("minimum" in schema or "maximum" in schema):
        return f"{kind} {schema.get('minimum', '')}..{schema.get('maximum', '')}"

    return kind


def _field_schema(prop: Dict[str, Any]) -> Dict[str, Any]:
    """Unwrap Optional[...] so bounds and enums of the inner type are visible."""
    if "anyOf" in prop:
        options = [s for s in prop["anyOf"] if s.get("type") != "null"]
        if len(options) == 1:
            return {**options[0], **{k: v for k, v in prop.items() if k != "anyOf"}}
    return prop


def describe_fields(spec: TargetSpec) -> List[str]:
    schema = spec.request_model.model_json_schema()
    defs = schema.get("$defs", {})
    required = set(schema.get("required", []))

    lines = []
    for name, raw in schema.get("properties", {}).items():
        prop = _field_schema(raw)
        line = f"- {name}: {_type_text(prop, defs)}"
        if name in required:
            line += "; required"
        elif prop.get("default") is not None:
            line += f"; default {json.dumps(prop['default'])}"
        if prop.get("description"):
            line += f". {prop['description']}"
        lines.append(line)
    return lines


def capability_hint(spec: TargetSpec) -> str:
    mode = "long-running" if spec.is_async else "immediate"
    header = f'### {spec.target_id} ({spec.category}, {mode}) - {spec.display_name}'
    return "\n".join([header, spec.usage, *describe_fields(spec)])


def capability_hints(specs: Iterable[TargetSpec]) -> str:
    return "\n\n".join(capability_hint(spec) for spec in specs)
