"""
Request compiler entry point.

Turns a free-text prompt into a validated request for one target:
tag references -> exploratory pass -> decisive pass with validate/refine
loop -> restore references.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from shared.config import settings
from shared.errors import ExtractionError, InvalidPromptError, PipelineError, ValidationError
from shared.logging import get_logger
from shared.models.references import ResourceReference

from modules.reference_tagger import ReferenceTagger, restore, restore_text
from modules.targets import (
    capability_hint,
    capability_hints,
    list_targets,
    lookup,
    resolve_target,
    validate_request,
)

from . import llm_client
from .extraction import extract_json_object
from .prompts import decisive_instruction, exploratory_instruction, validation_error_entry

logger = get_logger("request_compiler")


class AttemptStatus(Enum):
    ACCEPTED = "accepted"
    # Continuable: the error text is fed back into the next attempt
    REJECTED = "rejected"
    # Reasoning service failed; ends compilation without another attempt
    FATAL = "fatal"


@dataclass
class AttemptOutcome:
    status: AttemptStatus
    request: Optional[Dict[str, Any]] = None
    error: Optional[PipelineError] = None


@dataclass
class CompileResult:
    request: Dict[str, Any]
    reasons: List[str]
    target_id: str
    attempts: int
    references: List[ResourceReference] = field(default_factory=list)


def check_prompt(prompt: Any, job_id: Optional[str] = None) -> str:
    """
    Raises:
        InvalidPromptError: If prompt is empty, blank or too long
    """
    if not isinstance(prompt, str) or not prompt.strip():
        raise InvalidPromptError("Empty prompt provided", job_id=job_id)
    if len(prompt) > settings.max_prompt_length:
        raise InvalidPromptError(
            f"Prompt too long (max {settings.max_prompt_length} characters)", job_id=job_id
        )
    return prompt


def evaluate_attempt(
    output: str,
    references: List[ResourceReference],
    expected_target: Optional[str] = None,
) -> AttemptOutcome:
    """Extract, restore and validate one decisive-pass output."""
    try:
        payload = extract_json_object(output)
        spec = resolve_target(payload, expected_target)
        restored, _ = restore(
            payload,
            payload.get(spec.text_field) or "",
            references,
            media_fields=spec.media_fields,
            text_field=spec.text_field,
        )
        request = validate_request(restored, spec)
    except (ExtractionError, ValidationError) as e:
        return AttemptOutcome(AttemptStatus.REJECTED, error=e)
    return AttemptOutcome(AttemptStatus.ACCEPTED, request=request)


async def compile_request(
    prompt: str,
    target_id: Optional[str] = None,
    job_id: Optional[str] = None,
) -> CompileResult:
    """
    Compile a natural-language prompt into a validated target request.

    Args:
        prompt: User's free-text request
        target_id: Restrict the result to this target (structured output mode)
        job_id: For logging

    Returns:
        CompileResult with the request and the reasoning trail

    Raises:
        InvalidPromptError: Before any external call, for empty/oversized prompts
        UnknownTargetError: If target_id is not registered
        ExtractionError / ValidationError: When every attempt was rejected
        EmptyResponseError / GenerationError / RetryableError: From the reasoning
            service, never retried here
    """
    check_prompt(prompt, job_id)
    pinned = lookup(target_id) if target_id else None

    tagging = ReferenceTagger().tag(prompt)
    references = tagging.references
    context: List[str] = [tagging.tagged_text]

    all_hints = capability_hints(list_targets())

    logger.info(
        "Starting compilation",
        extra={
            "job_id": job_id,
            "prompt_length": len(prompt),
            "reference_count": len(references),
            "pinned_target": target_id,
        },
    )

    exploratory = await llm_client.invoke(exploratory_instruction(all_hints), list(context), job_id=job_id)
    context.append(exploratory)

    instruction = decisive_instruction(capability_hint(pinned) if pinned else all_hints, target_id)
    schema = pinned.request_model if pinned else None
    max_attempts = settings.compiler_max_attempts

    outcome: Optional[AttemptOutcome] = None
    attempt = 0
    for attempt in range(1, max_attempts + 1):
        try:
            output = await llm_client.invoke(instruction, list(context), schema=schema, job_id=job_id)
        except PipelineError as e:
            outcome = AttemptOutcome(AttemptStatus.FATAL, error=e)
        else:
            context.append(output)
            outcome = evaluate_attempt(output, references, target_id)

        if outcome.status is AttemptStatus.ACCEPTED:
            break
        if outcome.status is AttemptStatus.FATAL:
            logger.error(
                f"Reasoning service failed on attempt {attempt}",
                extra={"job_id": job_id, "attempt": attempt, "error_code": outcome.error.code},
            )
            raise outcome.error

        logger.warning(
            f"Decisive pass rejected (attempt {attempt}/{max_attempts})",
            extra={"job_id": job_id, "attempt": attempt, "error": str(outcome.error)},
        )
        if attempt == max_attempts:
            outcome.error.job_id = job_id
            raise outcome.error
        context.append(validation_error_entry(attempt, str(outcome.error)))

    request = outcome.request
    reasons = [restore_text(entry, references) for entry in context]

    logger.info(
        "Compilation complete",
        extra={"job_id": job_id, "target": request["model"], "attempts": attempt},
    )
    return CompileResult(
        request=request,
        reasons=reasons,
        target_id=request["model"],
        attempts=attempt,
        references=list(references),
    )
