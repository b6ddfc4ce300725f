"""Checks a raw model reply before it is accepted as a NarrativeOutput.

A reply passes three stages in order:

* ``json_parse``: the text (optionally inside a ```json fence) is a JSON object.
* ``schema``: the object, reduced to NarrativeOutput keys, fits the model.
* ``content``: the narrative does not pad itself; key points are distinct
  and none of them just restates the headline.
"""

import json
from typing import Any, Dict, Iterable, List

from pydantic import ValidationError

from llm_synthesis.schema import NarrativeOutput

STAGE_JSON = "json_parse"
STAGE_SCHEMA = "schema"
STAGE_CONTENT = "content"

_NARRATIVE_KEYS = frozenset(NarrativeOutput.model_fields)
_FENCE = "```"


class LLMOutputValidationError(Exception):
    """A model reply was rejected.

    Attributes:
        stage: ``json_parse``, ``schema`` or ``content``.
        errors: One message per problem, each prefixed with the field it
            concerns where there is one.
        raw_response: The reply exactly as the adapter returned it.
    """

    def __init__(self, stage: str, errors: List[str], raw_response: str) -> None:
        self.stage = stage
        self.errors = errors
        self.raw_response = raw_response
        super().__init__(f"Narrative rejected at {stage}: {'; '.join(errors)}")


def _unfence(text: str) -> str:
    lines = text.strip().splitlines()
    if len(lines) >= 2 and lines[0].startswith(_FENCE) and lines[-1].strip() == _FENCE:
        lines = lines[1:-1]
    elif len(lines) == 1 and lines[0].startswith(_FENCE) and lines[0].endswith(_FENCE):
        inner = lines[0][len(_FENCE) : -len(_FENCE)]
        lines = [inner[4:] if inner.startswith("json") else inner]
    return "\n".join(lines).strip()


def _schema_messages(exc: ValidationError) -> List[str]:
    return [".".join(str(part) for part in err["loc"]) + f": {err['msg']}" for err in exc.errors()]


def _normalized(text: str) -> str:
    return " ".join(text.lower().split()).rstrip(".!")


def _content_problems(output: NarrativeOutput) -> Iterable[str]:
    headline = _normalized(output.headline)
    seen: Dict[str, int] = {}
    for index, point in enumerate(output.key_points):
        key = _normalized(point)
        if key in seen:
            yield f"key_points.{index}: repeats key point {seen[key]}"
            continue
        seen[key] = index
        if key == headline:
            yield f"key_points.{index}: restates the headline"


def validate_llm_output(raw_response: str) -> NarrativeOutput:
    """Turn a raw reply into a NarrativeOutput or reject it.

    Keys outside NarrativeOutput (models like to add commentary) are
    dropped before schema validation.

    Raises:
        LLMOutputValidationError: With the stage that rejected the reply.
    """
    try:
        data: Any = json.loads(_unfence(raw_response))
    except (json.JSONDecodeError, TypeError) as exc:
        raise LLMOutputValidationError(STAGE_JSON, [str(exc)], raw_response) from exc

    if not isinstance(data, dict):
        raise LLMOutputValidationError(STAGE_SCHEMA, ["top-level JSON must be an object"], raw_response)

    try:
        output = NarrativeOutput.model_validate({k: v for k, v in data.items() if k in _NARRATIVE_KEYS})
    except ValidationError as exc:
        raise LLMOutputValidationError(STAGE_SCHEMA, _schema_messages(exc), raw_response) from exc

    problems = list(_content_problems(output))
    if problems:
        raise LLMOutputValidationError(STAGE_CONTENT, problems, raw_response)
    return output
