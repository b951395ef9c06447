import json
import logging
import re
from typing import Any, Type, TypeVar

from pydantic import BaseModel, ValidationError

from app.core.exceptions import SynthesisFormatError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def clean_llm_json_output(raw_text: str) -> str:
    """Cleans LLM output to extract the JSON object."""
    if not raw_text:
        return ""

    # Remove markdown code blocks
    text = re.sub(r'```(?:json)?\s*', '', raw_text)
    text = text.replace('```', '')

    try:
        json.loads(text)
        return text.strip()
    except json.JSONDecodeError:
        pass

    # Fallback: extract JSON from surrounding prose
    start_idx = text.find('{')
    end_idx = text.rfind('}')
    if start_idx != -1 and end_idx > start_idx:
        extracted = text[start_idx:end_idx + 1]
        try:
            json.loads(extracted)
            return extracted
        except json.JSONDecodeError:
            pass

    return text.strip()


def parse_llm_response(raw: Any, schema_class: Type[ModelT]) -> ModelT:
    """
    Parse LLM output and validate it against ``schema_class``.

    Raises SynthesisFormatError with the decode or validation error in ``details``.
    """
    raw_content = raw if isinstance(raw, str) else str(raw)
    cleaned = clean_llm_json_output(raw_content)

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning(f"LLM output is not valid JSON: {e}")
        logger.debug(f"Raw output (first 500 chars): {raw_content[:500]}...")
        raise SynthesisFormatError(
            f"Output is not valid JSON: {e}", details={"error": str(e)}
        ) from e

    if not isinstance(data, dict):
        raise SynthesisFormatError(
            f"Expected a JSON object, got {type(data).__name__}", details={"error": "not an object"}
        )

    try:
        return schema_class.model_validate(data)
    except ValidationError as e:
        logger.warning(f"LLM output failed {schema_class.__name__} validation with {e.error_count()} error(s)")
        raise SynthesisFormatError(
            f"Output does not match {schema_class.__name__}: {e}", details={"error": str(e)}
        ) from e
