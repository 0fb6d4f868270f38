from __future__ import annotations

import json

import pytest

from projectproof.core.extractor import extract_analysis, find_balanced_end, iter_json_objects
from projectproof.errors import MalformedAnalysis, SchemaMismatch
from projectproof.types import ProjectAnalysis


def test_extracts_object_from_markdown_fence(led_blinker: dict) -> None:
    raw = "Here is your report:\n```json\n" + json.dumps(led_blinker, indent=2) + "\n```\nGood luck!"

    analysis = extract_analysis(raw)

    assert analysis.title == "LED Blinker"
    assert analysis.skills == ["Arduino", "C++", "Circuit Design"]
    assert analysis.technical_specs["Interval_ms"] == 500


def test_braces_in_prose_and_strings_do_not_confuse_extraction(led_blinker: dict) -> None:
    led_blinker["description"] = "Uses a map like {pin: 13} and a closing } in text"
    raw = "Note {not json} before the payload. " + json.dumps(led_blinker) + " trailing }"

    analysis = extract_analysis(raw)

    assert analysis.description == "Uses a map like {pin: 13} and a closing } in text"


def test_skips_unrelated_objects_before_the_analysis(led_blinker: dict) -> None:
    raw = '{"status": "ok"} ' + json.dumps(led_blinker)

    assert extract_analysis(raw).category == "Embedded Systems"


def test_extra_fields_are_ignored(led_blinker: dict) -> None:
    led_blinker["confidence"] = 0.9

    assert extract_analysis(json.dumps(led_blinker)).title == "LED Blinker"


def test_missing_skills_is_schema_mismatch(led_blinker: dict) -> None:
    del led_blinker["skills"]

    with pytest.raises(SchemaMismatch) as excinfo:
        extract_analysis(json.dumps(led_blinker))

    assert "skills" in str(excinfo.value)


def test_wrong_type_is_schema_mismatch(led_blinker: dict) -> None:
    led_blinker["skills"] = "Arduino"

    with pytest.raises(SchemaMismatch):
        extract_analysis(json.dumps(led_blinker))


def test_prose_without_json_is_malformed() -> None:
    with pytest.raises(MalformedAnalysis):
        extract_analysis("I could not analyze this image, sorry.")


def test_truncated_json_is_malformed(led_blinker: dict) -> None:
    with pytest.raises(MalformedAnalysis):
        extract_analysis(json.dumps(led_blinker)[:-10])


def test_json_without_analysis_fields_is_malformed() -> None:
    with pytest.raises(MalformedAnalysis):
        extract_analysis('{"error": "content blocked"}')


def test_find_balanced_end_honours_escaped_quotes() -> None:
    text = '{"a": "quote \\" and brace }", "b": {"c": 1}} tail'

    end = find_balanced_end(text, 0)

    assert text[end] == "}"
    assert json.loads(text[: end + 1])["b"] == {"c": 1}


def test_iter_json_objects_yields_nested_objects_too() -> None:
    objects = list(iter_json_objects('{"outer": {"inner": 1}}'))

    assert objects == [{"outer": {"inner": 1}}, {"inner": 1}]


def test_boolean_spec_values_are_schema_mismatch(led_blinker: dict) -> None:
    led_blinker["technical_specs"] = {"Voltage": "5V", "Has_Display": True}

    with pytest.raises(SchemaMismatch) as excinfo:
        extract_analysis(json.dumps(led_blinker))

    assert "Has_Display" in str(excinfo.value)


def test_spec_values_keep_their_json_types(led_blinker: dict) -> None:
    led_blinker["technical_specs"] = {"Voltage": "5V", "Interval_ms": 500, "Current_A": 0.02}

    specs = extract_analysis(json.dumps(led_blinker)).technical_specs

    assert specs == {"Voltage": "5V", "Interval_ms": 500, "Current_A": 0.02}
    assert type(specs["Interval_ms"]) is int
    assert type(specs["Current_A"]) is float


WRAPPER_PREFIXES = [
    "",
    "Here is the report:\n",
    "```json\n",
    "Note: {unclosed brace\n",
    'Quote " left open {\n',
    "stray } brace } ",
    '{"status": "draft"} then ',
    "Sure! {{}} ",
    '{"wrapper": ',
    '\\"escaped\\" quotes ',
]

WRAPPER_SUFFIXES = [
    "",
    "\n```",
    " }",
    " {",
    ' "dangling',
    "\nThanks {again}!",
    ' {"title": "Decoy"}',
]

ANALYSIS_PAYLOADS = [
    {
        "title": "Traffic Light {v2}",
        "summary": 'Cycles "red", "amber" and "green" with a } in the middle',
        "description": "Path C:\\labs\\{siwes}\\lights and a stray { brace",
        "skills": ["PLC", "Ladder Logic"],
        "technical_specs": {"Cycle_s": 30, "Supply": "24V DC", "Duty": 0.5},
        "category": "Automation",
        "recruiter_insight": "Understands sequencing {and} safety interlocks.",
    },
    {
        "title": "Solar Charge Controller",
        "summary": "Regulates a 12V battery from a 50W panel.",
        "description": "Escaped quote \\\" inside and a closing brace } here.",
        "skills": ["Power Electronics"],
        "technical_specs": {},
        "category": "Renewable Energy",
        "recruiter_insight": "",
    },
    {
        "title": "Résumé Scanner",
        "summary": "OCR over scanned logbooks",
        "description": "{\"nested\": \"looks like json\"}",
        "skills": [],
        "technical_specs": {"Accuracy": 97.5, "Pages_per_min": 12},
        "category": "Software",
        "recruiter_insight": "Ships working tooling.",
    },
]


@pytest.mark.parametrize("payload", ANALYSIS_PAYLOADS, ids=["braces", "escapes", "nested-text"])
@pytest.mark.parametrize("suffix", WRAPPER_SUFFIXES)
@pytest.mark.parametrize("prefix", WRAPPER_PREFIXES)
def test_payload_survives_any_surrounding_text(prefix: str, suffix: str, payload: dict) -> None:
    raw = prefix + json.dumps(payload, ensure_ascii=False) + suffix

    assert extract_analysis(raw) == ProjectAnalysis.model_validate(payload)
