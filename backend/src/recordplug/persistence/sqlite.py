"""SQLite-backed record service.

Stores every record in one generic table keyed by (logical_name, id) with
the attributes serialized as JSON. EntityReference and OptionSetValue
values are written as tagged objects so they come back with their type.
"""

import json
import logging
import sqlite3
import uuid
from pathlib import Path
from typing import Any

from recordplug.core.errors import RecordNotFoundError
from recordplug.core.types import (
    ColumnSet,
    ConditionOperator,
    Entity,
    EntityCollection,
    EntityReference,
    OptionSetValue,
    QueryExpression,
)

logger = logging.getLogger(__name__)

_TYPE_KEY = "__type__"


def _encode(value: Any) -> Any:
    if isinstance(value, EntityReference):
        return {
            _TYPE_KEY: "EntityReference",
            "logical_name": value.logical_name,
            "id": value.id,
            "name": value.name,
        }
    if isinstance(value, OptionSetValue):
        return {_TYPE_KEY: "OptionSetValue", "value": value.value}
    return value


def _decode(value: Any) -> Any:
    if isinstance(value, dict):
        kind = value.get(_TYPE_KEY)
        if kind == "EntityReference":
            return EntityReference(value["logical_name"], value["id"], value.get("name"))
        if kind == "OptionSetValue":
            return OptionSetValue(value["value"])
    return value


def dumps_attributes(attributes: dict[str, Any]) -> str:
    return json.dumps({k: _encode(v) for k, v in attributes.items()}, sort_keys=True)


def loads_attributes(raw: str) -> dict[str, Any]:
    return {k: _decode(v) for k, v in json.loads(raw).items()}


def connect(db_path: Path | str = ":memory:") -> sqlite3.Connection:
    """Open a connection and make sure the records table exists."""
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("""
        CREATE TABLE IF NOT EXISTS records (
            logical_name TEXT NOT NULL,
            id TEXT NOT NULL,
            attributes TEXT NOT NULL,
            PRIMARY KEY (logical_name, id)
        )
    """)
    conn.commit()
    return conn


class SQLiteOrganizationService:
    """OrganizationService over a shared sqlite3 connection.

    Attributes:
        conn: Connection owned by the caller (usually SQLiteServiceFactory)
        user_id: User the service acts as; stamped into ``modifiedby``
    """

    def __init__(self, conn: sqlite3.Connection, user_id: str | None = None):
        self.conn = conn
        self.user_id = user_id

    def retrieve(self, entity_name: str, id: str, column_set: ColumnSet) -> Entity:
        row = self.conn.execute(
            "SELECT attributes FROM records WHERE logical_name = ? AND id = ?",
            [entity_name, id],
        ).fetchone()
        if row is None:
            raise RecordNotFoundError(entity_name, id)
        return self._to_entity(entity_name, id, row["attributes"], column_set)

    def retrieve_multiple(self, query: QueryExpression) -> EntityCollection:
        rows = self.conn.execute(
            "SELECT id, attributes FROM records WHERE logical_name = ? ORDER BY id",
            [query.entity_name],
        ).fetchall()

        result = EntityCollection(entity_name=query.entity_name)
        for row in rows:
            attributes = loads_attributes(row["attributes"])
            if all(
                self._condition_holds(attributes, condition)
                for condition in query.criteria.conditions
            ):
                result.entities.append(
                    self._project(query.entity_name, row["id"], attributes, query.column_set)
                )
        return result

    def create(self, entity: Entity) -> str:
        id = entity.id or str(uuid.uuid4())
        attributes = dict(entity.attributes)
        if self.user_id is not None:
            attributes.setdefault("createdby", EntityReference("systemuser", self.user_id))
        self.conn.execute(
            "INSERT INTO records (logical_name, id, attributes) VALUES (?, ?, ?)",
            [entity.logical_name, id, dumps_attributes(attributes)],
        )
        self.conn.commit()
        logger.debug("Created %s %s", entity.logical_name, id)
        return id

    def update(self, entity: Entity) -> None:
        """Merge ``entity``'s attributes into the stored record."""
        if entity.id is None:
            raise ValueError(f"Cannot update {entity.logical_name} record without an id")
        existing = self.retrieve(entity.logical_name, entity.id, ColumnSet.all())
        merged = dict(existing.attributes)
        merged.update(entity.attributes)
        if self.user_id is not None:
            merged["modifiedby"] = EntityReference("systemuser", self.user_id)
        self.conn.execute(
            "UPDATE records SET attributes = ? WHERE logical_name = ? AND id = ?",
            [dumps_attributes(merged), entity.logical_name, entity.id],
        )
        self.conn.commit()
        logger.debug("Updated %s %s", entity.logical_name, entity.id)

    def delete(self, entity_name: str, id: str) -> None:
        cursor = self.conn.execute(
            "DELETE FROM records WHERE logical_name = ? AND id = ?",
            [entity_name, id],
        )
        self.conn.commit()
        if cursor.rowcount == 0:
            raise RecordNotFoundError(entity_name, id)

    def _to_entity(self, entity_name: str, id: str, raw: str, column_set: ColumnSet) -> Entity:
        return self._project(entity_name, id, loads_attributes(raw), column_set)

    @staticmethod
    def _project(
        entity_name: str, id: str, attributes: dict[str, Any], column_set: ColumnSet
    ) -> Entity:
        if not column_set.all_columns:
            attributes = {k: v for k, v in attributes.items() if k in column_set.columns}
        return Entity(entity_name, id, attributes)

    @staticmethod
    def _condition_holds(attributes: dict[str, Any], condition) -> bool:
        if condition.operator is not ConditionOperator.EQUAL:
            raise ValueError(f"Unsupported condition operator: {condition.operator}")
        actual = attributes.get(condition.attribute_name)
        # Lookups and choices compare by their id / value, as the platform does
        if isinstance(actual, EntityReference):
            actual = actual.id
        elif isinstance(actual, OptionSetValue):
            actual = actual.value
        return actual == condition.value


class SQLiteServiceFactory:
    """OrganizationServiceFactory handing out services over one connection."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def create_organization_service(self, user_id: str | None) -> SQLiteOrganizationService:
        return SQLiteOrganizationService(self.conn, user_id=user_id)
