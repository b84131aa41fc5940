from __future__ import annotations

import math
from typing import Any, Callable, Iterable, Mapping, NamedTuple

from jsonschema import Draft7Validator

from formcollab.config import FIELD_TYPES
from formcollab.errors import FieldDefinitionError
from formcollab.utils import new_field_id

DEFAULT_DRAFT: dict[str, Any] = {"type": "text", "label": "", "required": False}

FIELD_LIST_SCHEMA: dict[str, Any] = {
    "type": "array",
    "items": {
        "type": "object",
        "required": ["id", "type", "label"],
        "properties": {
            "id": {"type": "string", "minLength": 1},
            "type": {"enum": list(FIELD_TYPES)},
            "label": {"type": "string"},
            "required": {"type": "boolean"},
            "options": {"type": "array", "items": {"type": "string"}},
        },
    },
}

_FIELD_LIST_VALIDATOR = Draft7Validator(FIELD_LIST_SCHEMA)


def parse_bool(value: Any) -> bool:
    return str(value).lower() in {"1", "true", "on", "yes"}


def parse_number(value: Any) -> float | None:
    if value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def _raw_string(value: Any) -> str:
    return "" if value is None else str(value)


class FieldRule(NamedTuple):
    macro: str
    initial: Callable[[], Any]
    parse: Callable[[Any], Any]


FIELD_RULES: dict[str, FieldRule] = {
    "text": FieldRule("text_input", lambda: "", _raw_string),
    "textarea": FieldRule("textarea_input", lambda: "", _raw_string),
    "number": FieldRule("number_input", lambda: None, parse_number),
    "select": FieldRule("select_input", lambda: "", _raw_string),
    "checkbox": FieldRule("checkbox_input", lambda: False, parse_bool),
}

if set(FIELD_RULES) != set(FIELD_TYPES):
    raise RuntimeError("FIELD_RULES must cover every field type")


def rule_for(field: Mapping[str, Any]) -> FieldRule:
    field_type = field.get("type")
    rule = FIELD_RULES.get(field_type)  # type: ignore[arg-type]
    if rule is None:
        raise FieldDefinitionError(f"Unknown field type: {field_type!r}")
    return rule


def parse_fields(raw_fields: Any) -> list[dict[str, Any]]:
    """Validate a stored field list and normalise each definition.

    Definitions are returned in stored order. ``options`` is kept only for
    select fields, so callers never see it on other types.
    """
    if raw_fields is None:
        return []
    errors = sorted(_FIELD_LIST_VALIDATOR.iter_errors(raw_fields), key=lambda err: list(err.path))
    if errors:
        location = "/".join(str(part) for part in errors[0].path)
        raise FieldDefinitionError(f"Invalid field definition at {location or '<root>'}: {errors[0].message}")

    fields: list[dict[str, Any]] = []
    seen_ids: set[str] = set()
    for raw in raw_fields:
        field_id = raw["id"]
        if field_id in seen_ids:
            raise FieldDefinitionError(f"Duplicate field id: {field_id}")
        seen_ids.add(field_id)
        field: dict[str, Any] = {
            "id": field_id,
            "type": raw["type"],
            "label": raw["label"],
            "required": bool(raw.get("required", False)),
        }
        if raw["type"] == "select":
            field["options"] = list(raw.get("options") or [])
        fields.append(field)
    return fields


def build_field(draft: Mapping[str, Any], existing: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
    field_type = str(draft.get("type") or "text")
    if field_type not in FIELD_RULES:
        raise FieldDefinitionError(f"Unknown field type: {field_type!r}")
    label = str(draft.get("label") or "").strip()
    if not label:
        raise FieldDefinitionError("Label is required")

    field: dict[str, Any] = {
        "id": new_field_id(item["id"] for item in existing),
        "type": field_type,
        "label": label,
        "required": bool(draft.get("required", False)),
    }
    if field_type == "select":
        field["options"] = []
    return field


def normalize_options(values: Iterable[Any]) -> list[str]:
    options: list[str] = []
    seen: set[str] = set()
    for value in values:
        option = str(value).strip()
        if not option or option in seen:
            continue
        seen.add(option)
        options.append(option)
    return options


def initial_answers(fields: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
    return {field["id"]: rule_for(field).initial() for field in fields}


def parse_answers(
    fields: Iterable[Mapping[str, Any]], form_data: Mapping[str, Any]
) -> dict[str, Any]:
    answers: dict[str, Any] = {}
    for field in fields:
        rule = rule_for(field)
        answers[field["id"]] = rule.parse(form_data.get(field["id"]))
    return answers
