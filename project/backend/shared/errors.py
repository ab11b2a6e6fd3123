"""
Error hierarchy shared by all modules.

Every error carries an optional job_id so handlers can attach it to the job
record and to log lines.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Union
from uuid import UUID

JobId = Union[str, UUID, None]


class PipelineError(Exception):
    """Base exception for all service errors."""

    # Machine-readable code written to job.response.error.code
    code: str = "PIPELINE_ERROR"

    def __init__(self, message: str, job_id: JobId = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.job_id = job_id
        if code:
            self.code = code


class ConfigError(PipelineError):
    """Invalid or missing configuration."""

    code = "CONFIG_ERROR"


class RetryableError(PipelineError):
    """Transient infrastructure failure; safe to retry."""

    code = "RETRYABLE_ERROR"


class RateLimitError(RetryableError):
    """Upstream rate limit hit."""

    code = "RATE_LIMITED"


class GenerationError(PipelineError):
    """A target adapter or its remote operation failed."""

    code = "MODEL_ERROR"


class InvalidPromptError(PipelineError):
    """Prompt is empty or exceeds the maximum length."""

    code = "INVALID_PROMPT"


class EmptyResponseError(PipelineError):
    """The reasoning service returned no usable text."""

    code = "EMPTY_RESPONSE"


class ExtractionError(PipelineError):
    """No well-formed JSON object could be pulled out of a reasoning reply."""

    code = "EXTRACTION_ERROR"


class NoJsonFoundError(ExtractionError):
    code = "NO_JSON_FOUND"


class UnbalancedJsonError(ExtractionError):
    code = "UNBALANCED_JSON"


class InvalidJsonError(ExtractionError):
    code = "INVALID_JSON"


@dataclass(frozen=True)
class FieldError:
    """One schema violation: dotted field path plus message."""

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}" if self.path else self.message


class ValidationError(PipelineError):
    """
    Payload does not satisfy a target schema.

    The string form joins all field errors with ", " so it can be fed back to
    the reasoning service verbatim.
    """

    code = "VALIDATION_ERROR"

    def __init__(
        self,
        message_or_errors: Union[str, Iterable[FieldError]],
        job_id: JobId = None,
    ):
        if isinstance(message_or_errors, str):
            self.errors: List[FieldError] = [FieldError("", message_or_errors)]
        else:
            self.errors = list(message_or_errors)
        super().__init__(", ".join(str(e) for e in self.errors), job_id=job_id)


class UnknownTargetError(PipelineError):
    """No registry entry for the requested target identifier."""

    code = "UNKNOWN_TARGET"

    def __init__(self, target_id: Optional[str], job_id: JobId = None):
        self.target_id = target_id
        super().__init__(f"Unknown target: {target_id!r}", job_id=job_id)


class InvalidTransitionError(PipelineError):
    """Attempted to move a job backwards or out of a terminal state."""

    code = "INVALID_TRANSITION"

    def __init__(self, current: str, requested: str, job_id: JobId = None):
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot transition job from {current!r} to {requested!r}", job_id=job_id
        )


class JobNotFoundError(PipelineError):
    code = "JOB_NOT_FOUND"
