"""Record model shared by plugins, business logic and the record service.

- Entity: a record with a logical name, an id and an attribute mapping
- EntityReference: identity-only pointer to a record
- OptionSetValue: value of a choice column
- ColumnSet / ConditionExpression / FilterExpression / QueryExpression: query shapes
- EntityCollection: result of a multi-record query
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, TypeVar

E = TypeVar("E", bound="Entity")


@dataclass(frozen=True)
class EntityReference:
    """Lightweight reference to a record (no attribute values)."""

    logical_name: str
    id: str
    name: str | None = None


@dataclass(frozen=True)
class OptionSetValue:
    value: int


class Entity:
    """A record as seen by plugins.

    Attributes are held in a plain dict so that a handler editing the
    target in place is editing the same object the platform holds.
    Early-bound record classes subclass Entity and set ``LOGICAL_NAME``.
    """

    LOGICAL_NAME: str = ""

    def __init__(
        self,
        logical_name: str | None = None,
        id: str | None = None,
        attributes: dict[str, Any] | None = None,
    ):
        self.logical_name = logical_name or self.LOGICAL_NAME
        self.id = id
        self.attributes: dict[str, Any] = attributes if attributes is not None else {}

    def __getitem__(self, key: str) -> Any:
        return self.attributes[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self.attributes

    def __iter__(self) -> Iterator[str]:
        return iter(self.attributes)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.logical_name!r}, id={self.id!r})"

    def get(self, key: str, default: Any = None) -> Any:
        return self.attributes.get(key, default)

    def to_entity(self, entity_class: type[E]) -> E:
        """Project this record onto an early-bound class.

        Returns ``self`` only when its type is exactly ``entity_class``; a
        subclass or superclass instance still gets projected. The projection
        holds a shallow copy of the attributes.
        """
        if type(self) is entity_class:
            return self  # type: ignore[return-value]
        return entity_class(
            logical_name=self.logical_name,
            id=self.id,
            attributes=dict(self.attributes),
        )

    def to_entity_reference(self) -> EntityReference:
        if self.id is None:
            raise ValueError(f"{self.logical_name} record has no id")
        return EntityReference(self.logical_name, self.id)


@dataclass(frozen=True)
class ColumnSet:
    """Columns to retrieve. ``all_columns`` wins over ``columns``."""

    columns: tuple[str, ...] = ()
    all_columns: bool = False

    @classmethod
    def all(cls) -> "ColumnSet":
        return cls(all_columns=True)

    @classmethod
    def of(cls, *columns: str) -> "ColumnSet":
        return cls(columns=tuple(columns))


class ConditionOperator(Enum):
    EQUAL = "eq"


@dataclass(frozen=True)
class ConditionExpression:
    attribute_name: str
    operator: ConditionOperator
    value: Any


@dataclass(frozen=True)
class FilterExpression:
    """Conjunction of conditions."""

    conditions: tuple[ConditionExpression, ...] = ()


@dataclass(frozen=True)
class QueryExpression:
    entity_name: str
    column_set: ColumnSet = field(default_factory=ColumnSet.all)
    criteria: FilterExpression = field(default_factory=FilterExpression)


@dataclass
class EntityCollection:
    entity_name: str
    entities: list[Entity] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entities)

    def __iter__(self) -> Iterator[Entity]:
        return iter(self.entities)
