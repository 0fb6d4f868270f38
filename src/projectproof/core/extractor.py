"""Pull the analysis JSON object out of free-form model output.

Models wrap the object in prose or markdown fences, and the prose itself may
contain braces, so the object is located by matching each ``{`` to its
balanced ``}`` while skipping over JSON string literals. The first balanced
span that decodes to an object carrying analysis fields wins.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from typing import Any

from pydantic import ValidationError

from projectproof.errors import MalformedAnalysis, SchemaMismatch
from projectproof.types import ANALYSIS_FIELDS, ProjectAnalysis

logger = logging.getLogger(__name__)


def find_balanced_end(text: str, start: int) -> int | None:
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return None


def iter_json_objects(text: str) -> Iterator[dict[str, Any]]:
    start = text.find("{")
    while start != -1:
        end = find_balanced_end(text, start)
        if end is not None:
            try:
                value = json.loads(text[start : end + 1], strict=False)
            except json.JSONDecodeError:
                value = None
            if isinstance(value, dict):
                yield value
        start = text.find("{", start + 1)


def extract_analysis(raw: str) -> ProjectAnalysis:
    found_any = False
    for candidate in iter_json_objects(raw):
        found_any = True
        if any(key in candidate for key in ANALYSIS_FIELDS):
            return _validate(candidate)

    if found_any:
        raise MalformedAnalysis("model output contains JSON but none of the analysis fields")
    raise MalformedAnalysis("no JSON object found in model output")


def _validate(candidate: dict[str, Any]) -> ProjectAnalysis:
    try:
        return ProjectAnalysis.model_validate(candidate)
    except ValidationError as exc:
        problems = ", ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
        )
        logger.warning("Analysis payload failed validation: %s", problems)
        raise SchemaMismatch(problems) from exc
