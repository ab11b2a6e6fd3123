"""
Targets module public API.

Registry of generation targets: request schemas, validation, capability hints
and backend adapters.
"""

from .base import MediaRef, ModelOutput, OperationStatus, StartResult, TargetAdapter, TargetSpec
from .hints import capability_hint, capability_hints
from .registry import TARGETS, list_targets, lookup, resolve_target, validate_payload, validate_request

__all__ = [
    "TARGETS",
    "MediaRef",
    "ModelOutput",
    "OperationStatus",
    "StartResult",
    "TargetAdapter",
    "TargetSpec",
    "capability_hint",
    "capability_hints",
    "list_targets",
    "lookup",
    "resolve_target",
    "validate_payload",
    "validate_request",
]
