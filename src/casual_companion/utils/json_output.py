"""
Strict JSON parsing for LLM outputs.

Models asked for JSON still wrap it in code fences or add a sentence around
it now and then. ``parse_structured`` tolerates that, then validates against
a pydantic schema and raises StructuredOutputError on anything else.
"""

import json
import re
from typing import Any, Type, TypeVar

from pydantic import BaseModel, ValidationError

from casual_companion.exceptions import StructuredOutputError

T = TypeVar("T", bound=BaseModel)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def extract_json(text: str) -> Any:
    """
    Decode the JSON value in an LLM response.

    Raises:
        StructuredOutputError: If no JSON value can be decoded
    """
    if not text or not text.strip():
        raise StructuredOutputError("Empty response", text or "")

    cleaned = _FENCE_RE.sub("", text.strip())
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    # Fall back to the outermost object or array in the text
    for open_char, close_char in (("{", "}"), ("[", "]")):
        start = cleaned.find(open_char)
        end = cleaned.rfind(close_char)
        if start != -1 and end > start:
            try:
                return json.loads(cleaned[start : end + 1])
            except json.JSONDecodeError:
                continue

    raise StructuredOutputError("Response is not valid JSON", text)


def parse_structured(text: str, schema: Type[T]) -> T:
    """
    Decode and validate an LLM JSON response.

    Raises:
        StructuredOutputError: If decoding or validation fails
    """
    data = extract_json(text)
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        raise StructuredOutputError(f"Response does not match {schema.__name__}: {e}", text) from e
