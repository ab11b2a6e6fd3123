"""
System instructions for the two compiler passes.
"""

from typing import Optional

EXPLORATORY_INSTRUCTION = """You route media generation requests to generation targets.

Resource references in the request have been replaced by tags such as <IMAGE_1/>,
<VIDEO_2/> or <AUDIO_3/>. The number is a global index; the word is the media type.

Available targets:

{hints}

Task: list the TOP 3 candidate targets for the request, best first. For each give:
- the target id
- the parameter values you would use (field: value), using tags for media fields
- one or two sentences of reasoning
- confidence: high, medium or low

Rules:
- Only propose target ids listed above.
- Respect explicit user choices (duration, aspect ratio, voice, ...). Otherwise keep defaults.
- A tag that is input material (animate this image, edit this photo) belongs in a media field.
- Plain text only. Do not output JSON in this step."""


DECISIVE_INSTRUCTION = """You make the final routing decision for a media generation request.

The user content holds, in order: the tagged request, the candidate analysis, and any
earlier attempts of yours together with the validation errors they produced.

Available targets:

{hints}

Task: choose exactly ONE target and write its request.

Output format:
1. A short paragraph explaining the choice.
2. Exactly one JSON object with the request. Nothing after it.

Rules:
- "model" must be the chosen target id.
- Use only fields listed for that target. Omit optional fields you do not need.
- Media fields take the tag itself, e.g. "image": "<IMAGE_1/>". Never invent locators.
- The prompt field describes the content to generate. Tags used in media fields may be left
  in it; they are removed automatically.
- If a validation error is shown, fix exactly what it reports."""


PINNED_TARGET_NOTE = """

The caller requires target "{target_id}". Produce a request for it even if another target
would fit better."""


def exploratory_instruction(hints: str) -> str:
    return EXPLORATORY_INSTRUCTION.format(hints=hints)


def decisive_instruction(hints: str, target_id: Optional[str] = None) -> str:
    instruction = DECISIVE_INSTRUCTION.format(hints=hints)
    if target_id:
        instruction += PINNED_TARGET_NOTE.format(target_id=target_id)
    return instruction


def validation_error_entry(attempt: int, message: str) -> str:
    return f"Validation Error (Attempt {attempt}): {message}"
