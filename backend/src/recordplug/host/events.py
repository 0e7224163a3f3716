"""Load invocation descriptions from YAML files.

Example event file:

    stage: PostOperation        # or the numeric stage (40)
    message: Update
    entity: new_leaverequests
    userId: U1
    target:
      id: LR1
      attributes:
        new_leavestatus: {optionSet: 100000001}
    preImages:
      PreImage:
        id: LR1
        attributes: {new_numberofdays: 3}
    seed:
      - logicalName: new_leavebalance
        id: LB1
        attributes:
          new_employeeid: {reference: systemuser, id: U1}
          new_leavebalance: 10

Attribute values of the form ``{optionSet: N}`` become OptionSetValue and
``{reference: name, id: X}`` become EntityReference.
"""

import json
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft202012Validator

from recordplug.core.types import Entity, EntityReference, OptionSetValue
from recordplug.plugins.types import Stage

_SCHEMA_PATH = Path(__file__).parent / "schemas" / "event.schema.json"

_STAGE_NAMES = {
    "prevalidation": Stage.PRE_VALIDATION,
    "preoperation": Stage.PRE_OPERATION,
    "postoperation": Stage.POST_OPERATION,
}


@dataclass
class EventFile:
    """Parsed event file."""

    stage: Stage
    message_name: str
    entity_name: str
    user_id: str | None = None
    target: Entity | EntityReference | None = None
    pre_images: dict[str, Entity] = field(default_factory=dict)
    post_images: dict[str, Entity] = field(default_factory=dict)
    seed: list[Entity] = field(default_factory=list)


@lru_cache(maxsize=1)
def _validator() -> Draft202012Validator:
    with _SCHEMA_PATH.open() as fh:
        return Draft202012Validator(json.load(fh))


def validate_event(data: Any) -> list[str]:
    """Check an event mapping against the event JSON Schema.

    Returns:
        Readable problems, empty when the event is valid
    """
    problems = []
    for error in sorted(_validator().iter_errors(data), key=lambda e: [str(p) for p in e.path]):
        location = "/".join(str(p) for p in error.path)
        problems.append(f"{location}: {error.message}" if location else error.message)
    return problems


def parse_stage(value: Any) -> Stage:
    if isinstance(value, int):
        return Stage(value)
    key = str(value).replace("_", "").replace("-", "").lower()
    if key.isdigit():
        return Stage(int(key))
    if key not in _STAGE_NAMES:
        raise ValueError(
            f"Unknown stage '{value}'. Expected one of: PreValidation, PreOperation, PostOperation"
        )
    return _STAGE_NAMES[key]


def parse_value(value: Any) -> Any:
    if isinstance(value, dict):
        if "optionSet" in value:
            return OptionSetValue(int(value["optionSet"]))
        if "reference" in value:
            return EntityReference(value["reference"], str(value["id"]), value.get("name"))
    return value


def parse_entity(data: dict[str, Any], default_logical_name: str) -> Entity:
    attributes = {k: parse_value(v) for k, v in (data.get("attributes") or {}).items()}
    id = data.get("id")
    return Entity(
        data.get("logicalName", default_logical_name),
        str(id) if id is not None else None,
        attributes,
    )


def parse_event(data: dict[str, Any]) -> EventFile:
    """Build an EventFile from a parsed YAML mapping.

    Raises:
        ValueError: If the mapping does not match the event schema
    """
    problems = validate_event(data)
    if problems:
        raise ValueError("Invalid event: " + "; ".join(problems))

    entity_name = data["entity"]
    target = None
    raw_target = data.get("target")
    if isinstance(raw_target, dict):
        if "reference" in raw_target:
            target = parse_value(raw_target)
        else:
            target = parse_entity(raw_target, entity_name)

    return EventFile(
        stage=parse_stage(data["stage"]),
        message_name=data["message"],
        entity_name=entity_name,
        user_id=data.get("userId"),
        target=target,
        pre_images={
            name: parse_entity(image, entity_name)
            for name, image in (data.get("preImages") or {}).items()
        },
        post_images={
            name: parse_entity(image, entity_name)
            for name, image in (data.get("postImages") or {}).items()
        },
        seed=[parse_entity(record, entity_name) for record in data.get("seed") or []],
    )


def load_event(path: Path) -> EventFile:
    with open(path) as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: event file must contain a YAML mapping")
    return parse_event(data)
