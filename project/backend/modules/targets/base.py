"""
Target building blocks.

A target is one generation backend a request can be compiled for. Each target
is described by a TargetSpec that owns both its request schema (a pydantic
model) and the factory for the adapter that talks to the backend.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Annotated, Any, Callable, Dict, List, Literal, Optional, Tuple, Type, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shared.config import settings

# Free-text prompt shared by every target
Prompt = Annotated[str, Field(min_length=1, max_length=10000, description="What to generate")]

TargetCategory = Literal["video", "image", "audio", "text"]


class MediaRef(BaseModel):
    """Reference to an input artifact. In compiled output this is written as a tag."""

    model_config = ConfigDict(extra="forbid")

    uri: str = Field(description="Resource tag such as <IMAGE_1/>, resolved to a storage locator")
    mime_type: Optional[str] = None

    @field_validator("uri")
    @classmethod
    def validate_uri(cls, v: str) -> str:
        allowed = (f"{settings.storage_scheme}://", "http://", "https://")
        if not v.startswith(allowed):
            raise ValueError(
                f"must be a {settings.storage_scheme}:// locator or http(s) URL, got {v!r}"
            )
        return v


class TargetRequest(BaseModel):
    """Base for all target request models; unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid")


@dataclass
class ModelOutput:
    """Result artifact(s) of a finished generation."""

    uri: Optional[str] = None
    mime_type: Optional[str] = None
    text: Optional[str] = None
    files: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class StartResult:
    """Either an operation handle to poll or an immediate output, never both."""

    operation_handle: Optional[str] = None
    output: Optional[ModelOutput] = None

    def __post_init__(self) -> None:
        if (self.operation_handle is None) == (self.output is None):
            raise ValueError("StartResult needs exactly one of operation_handle or output")


@dataclass
class OperationStatus:
    done: bool
    error: Optional[Dict[str, Any]] = None
    data: Optional[Dict[str, Any]] = None


class TargetAdapter(ABC):
    """Talks to one generation backend."""

    @abstractmethod
    async def start(self, request: Dict[str, Any], job_id: str) -> StartResult:
        """Submit a validated request."""

    async def poll_status(self, handle: str) -> OperationStatus:
        raise NotImplementedError(f"{type(self).__name__} does not run long operations")

    async def extract_output(self, data: Dict[str, Any], job_id: str) -> ModelOutput:
        raise NotImplementedError(f"{type(self).__name__} does not run long operations")


def _mentions(annotation: Any, target: type) -> bool:
    if annotation is target:
        return True
    return any(_mentions(arg, target) for arg in get_args(annotation))


@dataclass(frozen=True)
class TargetSpec:
    """Registry entry: schema, adapter factory and metadata for one target."""

    target_id: str
    category: TargetCategory
    display_name: str
    is_async: bool
    request_model: Type[TargetRequest]
    adapter_factory: Callable[[], TargetAdapter]
    usage: str
    text_field: str = "prompt"

    @property
    def media_fields(self) -> Tuple[str, ...]:
        """Request fields that carry MediaRef values (single or list)."""
        return tuple(
            name for name, info in self.request_model.model_fields.items()
            if _mentions(info.annotation, MediaRef)
        )

    def adapter(self) -> TargetAdapter:
        return self.adapter_factory()
