"""Query-string filter and ordering parsing with API-field to column mapping."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
import re
from typing import Any
from uuid import UUID

from sqlalchemy import BigInteger, Column, Table
from sqlalchemy.sql.elements import ColumnElement

FILTER_OPERATORS = ("eq", "ne", "gt", "gte", "lt", "lte", "in", "like")
SINGLE_VALUE_OPERATORS = frozenset({"gt", "gte", "lt", "lte", "like"})
ORDER_DIRECTIONS = ("asc", "desc")
# Keyed by whether the column is a BigInteger.
_INT_RANGES = {False: (-(2**31), 2**31 - 1), True: (-(2**63), 2**63 - 1)}

_FILTER_PARAM_RE = re.compile(r"^(?P<field>[A-Za-z_][A-Za-z0-9_]*)(?:\[(?P<op>[^\]]*)\])?$")
_ORDER_PARAM_RE = re.compile(r"^order\[(?P<field>[^\]]*)\]$")


class FilterError(ValueError):
    """Raised for filter or ordering input that cannot be applied."""


@dataclass(slots=True)
class Filter:
    """One field/operator pair with every value supplied for it."""

    field: str
    column: str
    operator: str
    values: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class OrderClause:
    column: str
    direction: str


def _coerce(column: Column[Any], raw: str) -> Any:
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return raw

    try:
        if python_type is UUID:
            return UUID(raw)
        if python_type is int:
            number = int(raw)
        elif python_type is datetime:
            return datetime.fromisoformat(raw)
        else:
            return raw
    except ValueError as exc:
        raise FilterError(f"invalid value '{raw}' for field '{column.name}'") from exc

    low, high = _INT_RANGES[isinstance(column.type, BigInteger)]
    if not low <= number <= high:
        raise FilterError(f"value '{raw}' is out of range for field '{column.name}'")
    return number


class FilterSet:
    """Filters parsed from query parameters, restricted to mapped fields."""

    def __init__(self, field_mapping: Mapping[str, str], table: Table) -> None:
        self._field_mapping = dict(field_mapping)
        self._table = table
        self.filters: list[Filter] = []

    def parse_from_query(self, params: Iterable[tuple[str, str]]) -> None:
        """
        Collect filters from `field=value` and `field[op]=value` parameters.

        Parameters naming unmapped fields are ignored. Repeated plain
        parameters for one field accumulate values (matched with IN).

        Raises:
            FilterError: for unknown operators or multi-valued comparisons.
        """

        grouped: dict[tuple[str, str], Filter] = {}
        for name, value in params:
            match = _FILTER_PARAM_RE.match(name)
            if match is None:
                continue
            api_field = match.group("field")
            column = self._field_mapping.get(api_field)
            if column is None:
                continue

            operator = match.group("op")
            if operator is None:
                operator = "eq"
            elif operator not in FILTER_OPERATORS:
                raise FilterError(
                    f"unsupported filter operator '{operator}' for field '{api_field}'"
                )

            values = value.split(",") if operator == "in" else [value]
            current = grouped.get((api_field, operator))
            if current is None:
                current = Filter(field=api_field, column=column, operator=operator)
                grouped[(api_field, operator)] = current
            current.values.extend(values)

        for item in grouped.values():
            if item.operator in SINGLE_VALUE_OPERATORS and len(item.values) > 1:
                raise FilterError(
                    f"filter operator '{item.operator}' on field '{item.field}' expects a single value"
                )

        self.filters = list(grouped.values())

    def conditions(self) -> list[ColumnElement[bool]]:
        """Translate filters into SQL expressions, coercing values to column types."""

        clauses: list[ColumnElement[bool]] = []
        for item in self.filters:
            column = self._table.c[item.column]
            if item.operator == "like":
                if column.type.python_type is not str:
                    raise FilterError(f"operator 'like' is not supported for field '{item.field}'")
                clauses.append(column.like(item.values[0]))
                continue

            values = [_coerce(column, raw) for raw in item.values]
            if item.operator in ("eq", "in"):
                clauses.append(column == values[0] if len(values) == 1 else column.in_(values))
            elif item.operator == "ne":
                clauses.append(column != values[0] if len(values) == 1 else column.not_in(values))
            elif item.operator == "gt":
                clauses.append(column > values[0])
            elif item.operator == "gte":
                clauses.append(column >= values[0])
            elif item.operator == "lt":
                clauses.append(column < values[0])
            elif item.operator == "lte":
                clauses.append(column <= values[0])
        return clauses


class OrderSet:
    """Ordering parsed from `order[field]=asc|desc` parameters."""

    def __init__(self, field_mapping: Mapping[str, str]) -> None:
        self._field_mapping = dict(field_mapping)
        self.clauses: list[OrderClause] = []

    def parse_from_query(self, params: Iterable[tuple[str, str]]) -> None:
        clauses: list[OrderClause] = []
        for name, value in params:
            match = _ORDER_PARAM_RE.match(name)
            if match is None:
                continue
            api_field = match.group("field")
            column = self._field_mapping.get(api_field)
            if column is None:
                raise FilterError(f"invalid order field '{api_field}'")
            direction = value.strip().lower() or "asc"
            if direction not in ORDER_DIRECTIONS:
                raise FilterError(
                    f"invalid order direction '{value}' for field '{api_field}' (expected asc or desc)"
                )
            clauses.append(OrderClause(column=column, direction=direction))
        self.clauses = clauses
