"""Structured query builder for the Firestore ``runQuery`` endpoint."""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from scry_keys.firestore.values import encode_value


class Direction(StrEnum):
    ASCENDING = "ASCENDING"
    DESCENDING = "DESCENDING"


@dataclass(frozen=True)
class FieldFilter:
    """Equality filter on a single field."""

    field_path: str
    value: Any
    op: str = "EQUAL"

    def to_wire(self) -> dict[str, Any]:
        return {
            "fieldFilter": {
                "field": {"fieldPath": self.field_path},
                "op": self.op,
                "value": encode_value(self.value),
            }
        }


@dataclass(frozen=True)
class Order:
    field_path: str
    direction: Direction = Direction.ASCENDING

    def to_wire(self) -> dict[str, Any]:
        return {
            "field": {"fieldPath": self.field_path},
            "direction": self.direction.value,
        }


@dataclass
class StructuredQuery:
    """A query over one collection directly under the parent document.

    Multiple filters are combined with AND.
    """

    collection_id: str
    filters: list[FieldFilter] = field(default_factory=list)
    order_by: list[Order] = field(default_factory=list)
    limit: int | None = None

    def where(self, field_path: str, value: Any) -> "StructuredQuery":
        self.filters.append(FieldFilter(field_path, value))
        return self

    def order(
        self, field_path: str, direction: Direction = Direction.ASCENDING
    ) -> "StructuredQuery":
        self.order_by.append(Order(field_path, direction))
        return self

    def take(self, limit: int) -> "StructuredQuery":
        self.limit = limit
        return self

    def to_wire(self) -> dict[str, Any]:
        """Render the ``structuredQuery`` request object."""
        query: dict[str, Any] = {"from": [{"collectionId": self.collection_id}]}

        if len(self.filters) == 1:
            query["where"] = self.filters[0].to_wire()
        elif self.filters:
            query["where"] = {
                "compositeFilter": {
                    "op": "AND",
                    "filters": [f.to_wire() for f in self.filters],
                }
            }

        if self.order_by:
            query["orderBy"] = [o.to_wire() for o in self.order_by]
        if self.limit is not None:
            query["limit"] = self.limit
        return query
