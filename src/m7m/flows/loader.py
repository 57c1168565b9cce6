"""Load flow definitions from YAML documents.

A flow file holds one or more YAML documents, each describing one flow:

    name: check-status
    trigger:
      type: timer
      interval: 5m
    notifiers:
      - name: console
        type: print
    steps:
      - get_url:
          url: https://example.com/status
          output_var: page
          retries: 2
          retry_interval: 10s
          upon_failure:
            - notify: {notifier: console, message: status page unreachable}
      - abort_flow
    upon_failure: []

A step is a bare string for steps without fields, or a single-key mapping
whose value holds the fields. ``retries``, ``retry_interval`` and
``upon_failure`` are written inline and collected into the step's FailSpec.

This module only reshapes documents; validation lives in the models.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from m7m.errors import FlowDefinitionError
from m7m.flows.durations import parse_duration
from m7m.flows.models import FlowDefinition

logger = logging.getLogger(__name__)

# Document spelling -> model ``kind``.
STEP_KINDS: dict[str, str] = {
    "abort_flow": "abort_flow",
    "debug_state": "debug_state",
    "sleep": "sleep",
    "notify": "notify",
    "get_url": "get_url",
    "post_url": "post_url",
    "text_extract_one_capture": "extract_capture",
    "extract_capture": "extract_capture",
    "compare_var": "compare_var",
    "read_from_file": "read_file",
    "read_file": "read_file",
    "append_to_file": "append_file",
    "append_file": "append_file",
    "set_variable": "set_variable",
}

_FAILABLE_KINDS = {
    "notify",
    "get_url",
    "post_url",
    "extract_capture",
    "read_file",
    "append_file",
}

# Field renames per kind: document name -> model name.
_FIELD_ALIASES: dict[str, dict[str, str]] = {
    "extract_capture": {"regex": "pattern"},
    "set_variable": {"input": "value"},
}

# Fields whose scalars are coerced to text (YAML turns `42` into an int).
_TEXT_FIELDS = {"compare_with", "value", "message", "body", "url", "path"}

_TRIGGER_TYPES = {"timer": "interval", "interval": "interval", "once": "once"}


def _as_text(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int | float):
        return str(value)
    return value


def _normalize_steps(raw: Any, where: str) -> list[dict[str, Any]]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise FlowDefinitionError(f"{where}: expected a list of steps")
    return [_normalize_step(item, f"{where}[{idx}]") for idx, item in enumerate(raw)]


def _normalize_step(raw: Any, where: str) -> dict[str, Any]:
    if isinstance(raw, str):
        name, body = raw, {}
    elif isinstance(raw, dict) and len(raw) == 1:
        name, body = next(iter(raw.items()))
        body = {} if body is None else body
    else:
        raise FlowDefinitionError(f"{where}: a step must be a name or a single-key mapping")

    kind = STEP_KINDS.get(str(name))
    if kind is None:
        raise FlowDefinitionError(f"{where}: unknown step type {name!r}")
    if not isinstance(body, dict):
        raise FlowDefinitionError(f"{where}: fields of {name!r} must be a mapping")

    fields: dict[str, Any] = {}
    aliases = _FIELD_ALIASES.get(kind, {})
    for key, value in body.items():
        key = aliases.get(key, key)
        fields[key] = _as_text(value) if key in _TEXT_FIELDS else value

    if kind in _FAILABLE_KINDS:
        fail: dict[str, Any] = {}
        if "retries" in fields:
            fail["retries"] = fields.pop("retries")
        if "retry_interval" in fields:
            fail["retry_interval"] = _duration(fields.pop("retry_interval"), where)
        fail["fallback"] = _normalize_steps(fields.pop("upon_failure", None), f"{where}.upon_failure")
        fields["fail"] = fail

    if kind == "sleep" and "duration" in fields:
        fields["duration"] = _duration(fields["duration"], where)

    if kind == "compare_var":
        fields["if_true"] = _normalize_steps(fields.get("if_true"), f"{where}.if_true")
        fields["if_false"] = _normalize_steps(fields.get("if_false"), f"{where}.if_false")

    if kind == "post_url" and isinstance(fields.get("headers"), dict):
        fields["headers"] = {str(k): _as_text(v) for k, v in fields["headers"].items()}

    fields["kind"] = kind
    return fields


def _duration(value: Any, where: str) -> float:
    try:
        return parse_duration(value)
    except (TypeError, ValueError) as e:
        raise FlowDefinitionError(f"{where}: {e}") from e


def _normalize_trigger(raw: Any, where: str) -> dict[str, Any] | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise FlowDefinitionError(f"{where}: trigger must be a mapping")
    trigger_type = _TRIGGER_TYPES.get(str(raw.get("type")))
    if trigger_type is None:
        raise FlowDefinitionError(f"{where}: no valid trigger type found ({raw.get('type')!r})")
    if trigger_type == "once":
        return {"type": "once"}
    out: dict[str, Any] = {"type": "interval"}
    if raw.get("interval") is not None:
        out["interval"] = _duration(raw["interval"], f"{where}.interval")
    return out


def flow_from_document(document: Any, *, where: str = "flow") -> FlowDefinition:
    """Build one ``FlowDefinition`` from a parsed YAML document.

    Raises:
        FlowDefinitionError: If the document is not a valid flow.
    """
    if not isinstance(document, dict):
        raise FlowDefinitionError(f"{where}: a flow document must be a mapping")

    data = dict(document)
    name = data.get("name")
    if name is not None:
        data["name"] = str(name)
    data["trigger"] = _normalize_trigger(data.get("trigger"), f"{where}.trigger")
    data["notifiers"] = data.get("notifiers") or []
    if "steps" in data:
        data["steps"] = _normalize_steps(data["steps"], f"{where}.steps")
    data["upon_failure"] = _normalize_steps(data.get("upon_failure"), f"{where}.upon_failure")

    try:
        return FlowDefinition.model_validate(data)
    except ValidationError as e:
        raise FlowDefinitionError(f"{where}: could not parse flow correctly: {e}") from e


def load_flows_from_text(text: str, *, source: str = "<string>") -> list[FlowDefinition]:
    """Parse every non-empty YAML document in ``text``."""

    try:
        documents = list(yaml.safe_load_all(text))
    except yaml.YAMLError as e:
        raise FlowDefinitionError(f"{source}: invalid YAML: {e}") from e

    flows: list[FlowDefinition] = []
    for idx, document in enumerate(documents):
        if document is None:
            continue
        flows.append(flow_from_document(document, where=f"{source} document {idx}"))
    return flows


def load_flows(path: Path) -> list[FlowDefinition]:
    """Load all flows defined in a YAML file.

    Raises:
        FlowDefinitionError: If the file cannot be read or a document is invalid.
    """
    logger.debug("Loading flow file", extra={"path": str(path)})
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise FlowDefinitionError(f"{path}: could not read flow file: {e}") from e

    flows = load_flows_from_text(text, source=str(path))
    logger.info("Loaded flow file", extra={"path": str(path), "flows": len(flows)})
    return flows
