# petworld/response_parser.py
import re

import commentjson
from pydantic import ValidationError

from petworld.errors import VerdictMalformedError
from petworld.models import Verdict

EMPTY_OBJECT = "{}"

# only these two markers are stripped, anything else stays in the text
_FENCE_MARKERS = re.compile(r"```json|```", re.IGNORECASE)


def extract_json_object(text: str | None) -> str:
    """
    Pull the outermost {...} block out of a model reply.

    Code fences are removed first, then everything between the first '{' and
    the last '}' (inclusive) is returned. Anything without such a pair yields
    "{}", which fails verdict parsing instead of crashing the caller.
    """
    if not text or not text.strip():
        return EMPTY_OBJECT

    cleaned = _FENCE_MARKERS.sub("", text).strip()

    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start >= 0 and end > start:
        return cleaned[start:end + 1]

    return EMPTY_OBJECT


def parse_verdict(json_str: str) -> Verdict:
    try:
        data = commentjson.loads(json_str)
    except Exception as e:
        raise VerdictMalformedError(f"Critic output is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise VerdictMalformedError(f"Critic output is a {type(data).__name__}, expected an object")

    try:
        return Verdict.model_validate(data)
    except ValidationError as e:
        raise VerdictMalformedError(f"Critic output is missing or mistyped fields: {e}") from e
