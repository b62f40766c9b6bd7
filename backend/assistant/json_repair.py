"""
Decode-or-repair step shared by every structured LLM call.

Model output is parsed and validated against a pydantic schema. When that
fails, a text model is asked once to reformat its own answer as strict JSON;
a second failure raises ResponseShapeError.
"""
from __future__ import annotations

from typing import Type, TypeVar

import structlog
from pydantic import TypeAdapter, ValidationError

from llm_providers import LLMClient, ResponseShapeError, extract_json

logger = structlog.get_logger(__name__)

T = TypeVar("T")

REPAIR_SYSTEM_PROMPT = (
    "You convert malformed model output into strictly valid JSON. "
    "Return ONLY the JSON document: no explanation, no markdown, no code fences."
)


def decode(raw: str, schema: Type[T]) -> T:
    """Parse raw model text as JSON and validate it against schema."""
    data = extract_json(raw)
    if data is None:
        raise ValueError("response is not valid JSON")
    return TypeAdapter(schema).validate_python(data)


def _repair_prompt(raw: str, instructions: str) -> str:
    return (
        "The following response was supposed to follow these instructions:\n"
        f"{instructions}\n\n"
        "but it could not be parsed. Reformat it so that it is strictly valid JSON "
        "matching the requested format. Keep the original values.\n\n"
        f"RESPONSE:\n{raw}"
    )


def decode_or_repair(raw: str, schema: Type[T], llm: LLMClient, instructions: str) -> T:
    try:
        return decode(raw, schema)
    except (ValueError, ValidationError) as e:
        logger.info("llm_json_repair", schema=getattr(schema, "__name__", str(schema)), error=str(e)[:200])

    repaired = llm.complete_text(
        _repair_prompt(raw, instructions), system=REPAIR_SYSTEM_PROMPT, temperature=0.0
    )
    try:
        return decode(repaired, schema)
    except (ValueError, ValidationError) as e:
        logger.warning("llm_json_repair_failed", error=str(e)[:200], raw=repaired[:200])
        raise ResponseShapeError("Response validation failed") from e

