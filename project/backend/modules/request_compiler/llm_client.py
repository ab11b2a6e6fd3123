"""
Reasoning-service integration for the request compiler.

Every call uses the same fixed, greedy decoding configuration so that an
identical (instruction, content, schema) triple always produces an identical
request to the service.
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Type, Union

from openai import APIError, APITimeoutError, AsyncOpenAI
from openai import RateLimitError as OpenAIRateLimitError
from pydantic import BaseModel

from shared.config import settings
from shared.errors import EmptyResponseError, GenerationError, RateLimitError, RetryableError
from shared.logging import get_logger

logger = get_logger("request_compiler")

_client: Optional[AsyncOpenAI] = None

Content = Union[str, Sequence[str]]


@dataclass(frozen=True)
class DecodingConfig:
    temperature: float = 0.0
    top_p: float = 1.0
    top_k: int = 1
    candidate_count: int = 1
    seed: int = 0
    max_output_tokens: int = 8192


def decoding_config() -> DecodingConfig:
    return DecodingConfig(
        seed=settings.reasoning_seed,
        max_output_tokens=settings.reasoning_max_output_tokens,
    )


def _get_client() -> AsyncOpenAI:
    global _client
    if _client is None:
        _client = AsyncOpenAI(api_key=settings.openai_api_key, base_url=settings.reasoning_base_url)
    return _client


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def stringify_enums(schema: Dict[str, Any]) -> Dict[str, Any]:
    """
    Copy of a JSON schema with numeric enum/const members declared as strings.

    Some structured-output backends reject non-string enum members.
    """
    def _walk(node: Any) -> Any:
        if isinstance(node, list):
            return [_walk(item) for item in node]
        if not isinstance(node, dict):
            return node
        node = {key: _walk(value) for key, value in node.items()}
        if "enum" in node and any(_is_number(v) for v in node["enum"]):
            node["enum"] = [str(v) for v in node["enum"]]
            node["type"] = "string"
            if _is_number(node.get("default")):
                node["default"] = str(node["default"])
        if _is_number(node.get("const")):
            node["const"] = str(node["const"])
            node["type"] = "string"
        return node

    return _walk(copy.deepcopy(schema))


def coerce_enum_numbers(data: Any, schema: Dict[str, Any], defs: Optional[Dict[str, Any]] = None) -> Any:
    """Turn string-encoded numeric enum members in data back into numbers."""
    if defs is None:
        defs = schema.get("$defs", {})

    if "$ref" in schema:
        return coerce_enum_numbers(data, defs.get(schema["$ref"].rsplit("/", 1)[-1], {}), defs)

    if "anyOf" in schema:
        for option in schema["anyOf"]:
            coerced = coerce_enum_numbers(data, option, defs)
            if coerced is not data:
                return coerced
        return data

    if isinstance(data, str):
        members = list(schema.get("enum", []))
        if "const" in schema:
            members.append(schema["const"])
        for member in members:
            if _is_number(member) and str(member) == data:
                return member
        return data

    if isinstance(data, dict):
        props = schema.get("properties", {})
        return {
            key: coerce_enum_numbers(value, props[key], defs) if key in props else value
            for key, value in data.items()
        }

    if isinstance(data, list) and isinstance(schema.get("items"), dict):
        return [coerce_enum_numbers(item, schema["items"], defs) for item in data]

    return data


def _parts(content: Content) -> List[str]:
    return [content] if isinstance(content, str) else list(content)


def build_request(
    system_instruction: str,
    content: Content,
    schema: Optional[Type[BaseModel]] = None,
) -> Dict[str, Any]:
    """Chat-completions parameters for one call. Pure; used for reproducibility checks."""
    config = decoding_config()
    params: Dict[str, Any] = {
        "model": settings.reasoning_model,
        "messages": [
            {"role": "system", "content": system_instruction},
            {"role": "user", "content": [{"type": "text", "text": part} for part in _parts(content)]},
        ],
        "temperature": config.temperature,
        "top_p": config.top_p,
        "n": config.candidate_count,
        "seed": config.seed,
        "max_tokens": config.max_output_tokens,
        # top_k is not part of the OpenAI schema; compatible backends read it from the body
        "extra_body": {"top_k": config.top_k},
    }

    if schema is not None:
        json_schema = schema.model_json_schema()
        if settings.reasoning_string_enums_only:
            json_schema = stringify_enums(json_schema)
        params["response_format"] = {
            "type": "json_schema",
            "json_schema": {"name": schema.__name__, "schema": json_schema, "strict": False},
        }
    return params


def _response_text(response: Any) -> str:
    choices = getattr(response, "choices", None) or []
    if not choices:
        return ""
    return choices[0].message.content or ""


async def invoke(
    system_instruction: str,
    content: Content,
    schema: Optional[Type[BaseModel]] = None,
    job_id: Optional[str] = None,
) -> str:
    """
    Run one inference pass.

    Args:
        system_instruction: Role and rules for this pass
        content: One string or ordered context parts
        schema: Request model to constrain the output to, if any

    Returns:
        Raw response text (JSON text when a schema was given)

    Raises:
        EmptyResponseError: If the service returns no usable text
        RateLimitError, RetryableError: Throttling, timeouts and 5xx responses
        GenerationError: Any other service failure
    """
    params = build_request(system_instruction, content, schema)

    logger.info(
        "Invoking reasoning service",
        extra={
            "job_id": job_id,
            "model": params["model"],
            "parts": len(params["messages"][1]["content"]),
            "structured": schema is not None,
        },
    )

    try:
        response = await _get_client().chat.completions.create(**params)
    except OpenAIRateLimitError as e:
        logger.warning(f"Rate limit error: {str(e)}", extra={"job_id": job_id})
        raise RateLimitError(f"Rate limit error: {str(e)}", job_id=job_id) from e
    except APITimeoutError as e:
        logger.warning(f"API timeout: {str(e)}", extra={"job_id": job_id})
        raise RetryableError(f"API timeout: {str(e)}", job_id=job_id) from e
    except APIError as e:
        logger.error(f"Reasoning service error: {str(e)}", extra={"job_id": job_id})
        status_code = getattr(e, "status_code", None)
        if status_code and status_code >= 500:
            raise RetryableError(f"Retryable API error: {str(e)}", job_id=job_id) from e
        raise GenerationError(f"Reasoning service error: {str(e)}", job_id=job_id) from e

    text = _response_text(response)

    if not text.strip():
        raise EmptyResponseError("Reasoning service returned no text", job_id=job_id)

    if schema is not None and settings.reasoning_string_enums_only:
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            # Left for the caller's extraction step to report
            return text
        text = json.dumps(coerce_enum_numbers(data, schema.model_json_schema()))

    usage = getattr(response, "usage", None)
    logger.info(
        "Reasoning service responded",
        extra={
            "job_id": job_id,
            "chars": len(text),
            "input_tokens": getattr(usage, "prompt_tokens", None),
            "output_tokens": getattr(usage, "completion_tokens", None),
        },
    )
    return text
