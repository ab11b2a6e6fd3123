"""
Target endpoints.

Public metadata about the generation targets a request can be compiled for.
"""

from fastapi import APIRouter, HTTPException, Path, status

from shared.errors import UnknownTargetError
from shared.logging import get_logger

from modules.targets import TargetSpec, capability_hint, list_targets, lookup

logger = get_logger(__name__)

router = APIRouter()


def target_view(spec: TargetSpec) -> dict:
    return {
        "id": spec.target_id,
        "category": spec.category,
        "display_name": spec.display_name,
        "long_running": spec.is_async,
        "media_fields": list(spec.media_fields),
        "hint": capability_hint(spec),
    }


@router.get("/targets")
async def get_targets():
    return {"targets": [target_view(spec) for spec in list_targets()]}


@router.get("/targets/{target_id}")
async def get_target(target_id: str = Path(..., description="Target id, e.g. veo-3.1-generate-preview")):
    """
    Raises:
        404: If target_id is not registered
    """
    try:
        spec = lookup(target_id)
    except UnknownTargetError:
        logger.warning(f"Target '{target_id}' not found")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Target '{target_id}' not found")
    return {**target_view(spec), "schema": spec.request_model.model_json_schema()}
