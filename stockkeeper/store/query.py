"""
Query plans for product stores.

A filter specification is a mapping of field name to either a literal or an
operator mapping, in the vocabulary of a document-database driver::

    {"name": "mouse", "price": {"$gte": 30, "$lte": 100}, "_id": {"$in": [...]}}

``parse_filter`` turns it into predicates, ``ProductQuery`` lets callers chain
``sort``/``skip``/``limit`` onto it and produces an immutable ``QueryPlan``.
The in-memory store evaluates plans with ``evaluate``; the PostgreSQL store
compiles the same plan to SQL.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import (
    Any,
    Awaitable,
    Callable,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from stockkeeper.domain.errors import InvalidFilterError
from stockkeeper.domain.models import (
    NUMERIC_FIELDS,
    TEXT_FIELDS,
    TIMESTAMP_FIELDS,
    Product,
    canonical_field,
)

FilterSpec = Mapping[str, Any]
SortInput = Union[None, str, Mapping[str, Any]]

_RANGE_OPS = {"$gte": "gte", "$lte": "lte", "$gt": "gt", "$lt": "lt", "$eq": "eq", "$in": "in"}
_ID_OPS = {"$eq": "eq", "$in": "in"}
_TEXT_OPS = {"$eq": "eq", "$in": "in"}
SORTABLE_FIELDS = ("id", *TEXT_FIELDS, *NUMERIC_FIELDS, *TIMESTAMP_FIELDS)


@dataclass(frozen=True)
class FieldPredicate:
    """One constraint on one field. ``op`` is contains, eq, in, gt, gte, lt or lte."""

    field: str
    op: str
    value: Any


@dataclass(frozen=True)
class SortSpec:
    field: str
    descending: bool = False


@dataclass(frozen=True)
class QueryPlan:
    """Every constraint of a find call, evaluated in a single pass."""

    predicates: Tuple[FieldPredicate, ...] = ()
    sort: Optional[SortSpec] = None
    skip: int = 0
    limit: Optional[int] = None

    def replace(self, **changes: Any) -> "QueryPlan":
        return dataclasses.replace(self, **changes)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _coerce_number(field: str, value: Any) -> float:
    if isinstance(value, bool):
        raise InvalidFilterError(f"Filter on '{field}' expects a number, got {value!r}")
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidFilterError(f"Filter on '{field}' expects a number, got {value!r}") from exc


def _coerce_timestamp(field: str, value: Any) -> datetime:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as exc:
            raise InvalidFilterError(
                f"Filter on '{field}' expects an ISO timestamp, got {value!r}"
            ) from exc
    if not isinstance(value, datetime):
        raise InvalidFilterError(f"Filter on '{field}' expects a timestamp, got {value!r}")
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _coerce(field: str, value: Any) -> Any:
    if field in NUMERIC_FIELDS:
        return _coerce_number(field, value)
    if field in TIMESTAMP_FIELDS:
        return _coerce_timestamp(field, value)
    return str(value)


def _operator_predicates(field: str, spec: Mapping[str, Any]) -> List[FieldPredicate]:
    if field == "id":
        allowed = _ID_OPS
    elif field in TEXT_FIELDS:
        allowed = _TEXT_OPS
    else:
        allowed = _RANGE_OPS

    predicates = []
    for operator, operand in spec.items():
        if operator not in allowed:
            raise InvalidFilterError(f"Unsupported operator '{operator}' for field '{field}'")
        if operand is None:
            continue
        op = allowed[operator]
        if op == "in":
            if isinstance(operand, (str, bytes)) or not isinstance(operand, Iterable):
                raise InvalidFilterError(f"'$in' on '{field}' expects a list")
            values = tuple(_coerce(field, item) for item in operand)
            predicates.append(FieldPredicate(field, "in", values))
        else:
            predicates.append(FieldPredicate(field, op, _coerce(field, operand)))
    return predicates


def parse_filter(filter_spec: Optional[FilterSpec]) -> Tuple[FieldPredicate, ...]:
    """
    Translate a filter mapping into predicates.

    Absent keys and keys whose value is ``None`` or blank impose no
    constraint. Unknown fields and operators raise ``InvalidFilterError``.
    """
    if not filter_spec:
        return ()
    predicates: List[FieldPredicate] = []
    for raw_field, value in filter_spec.items():
        field = canonical_field(raw_field)
        if field not in SORTABLE_FIELDS:
            raise InvalidFilterError(f"Unknown filter field '{raw_field}'")
        if _is_blank(value):
            continue
        if isinstance(value, Mapping):
            predicates.extend(_operator_predicates(field, value))
        elif field in TEXT_FIELDS:
            predicates.append(FieldPredicate(field, "contains", str(value).strip().casefold()))
        else:
            predicates.append(FieldPredicate(field, "eq", _coerce(field, value)))
    return tuple(predicates)


def parse_sort(spec: SortInput) -> Optional[SortSpec]:
    """
    Accept ``{"price": -1}``, ``{"name": "asc"}``, ``"-price"`` or ``"price"``.

    An empty mapping means no ordering.
    """
    if spec is None:
        return None
    if isinstance(spec, str):
        descending = spec.startswith("-")
        field, direction = spec.lstrip("-+"), (-1 if descending else 1)
    else:
        if not spec:
            return None
        if len(spec) > 1:
            raise InvalidFilterError("Sorting supports a single field")
        field, direction = next(iter(spec.items()))

    field = canonical_field(field)
    if field not in SORTABLE_FIELDS:
        raise InvalidFilterError(f"Unknown sort field '{field}'")
    if isinstance(direction, str):
        direction = {"asc": 1, "ascending": 1, "desc": -1, "descending": -1}.get(direction.lower())
    if direction not in (1, -1):
        raise InvalidFilterError(f"Sort direction for '{field}' must be 1, -1, 'asc' or 'desc'")
    return SortSpec(field=field, descending=direction == -1)


def _check_count(name: str, value: Optional[int]) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidFilterError(f"{name} must be a non-negative integer, got {value!r}")
    return value


def _matches_one(product: Product, predicate: FieldPredicate) -> bool:
    actual = getattr(product, predicate.field)
    op = predicate.op
    if op == "contains":
        return actual is not None and predicate.value in actual.casefold()
    if op == "eq":
        return actual == predicate.value
    if op == "in":
        return actual in predicate.value
    if actual is None:
        return False
    if op == "gte":
        return actual >= predicate.value
    if op == "lte":
        return actual <= predicate.value
    if op == "gt":
        return actual > predicate.value
    if op == "lt":
        return actual < predicate.value
    raise InvalidFilterError(f"Unsupported predicate '{op}'")


def matches(product: Product, predicates: Sequence[FieldPredicate]) -> bool:
    return all(_matches_one(product, predicate) for predicate in predicates)


def evaluate(products: Iterable[Product], plan: QueryPlan) -> List[Product]:
    """
    Apply a plan to records: filter (keeping input order), sort, skip, limit.

    Sorting is stable. Missing values sort first ascending and last
    descending. Timestamps are datetimes, so they compare chronologically.
    """
    result = [product for product in products if matches(product, plan.predicates)]

    if plan.sort is not None:
        field = plan.sort.field

        def sort_key(product: Product) -> Tuple[bool, Any]:
            value = getattr(product, field)
            return (value is not None, value if value is not None else 0)

        result.sort(key=sort_key, reverse=plan.sort.descending)

    if plan.skip:
        result = result[plan.skip:]
    if plan.limit:
        result = result[: plan.limit]
    return result


class ProductQuery:
    """
    Chainable, awaitable find result::

        products = await store.find({"category": "elec"}).sort({"price": -1}).skip(10).limit(10)

    Each chained call returns a new query; the plan runs when awaited.
    """

    def __init__(
        self,
        runner: Callable[[QueryPlan], Awaitable[List[Product]]],
        plan: QueryPlan,
    ) -> None:
        self._runner = runner
        self._plan = plan

    @property
    def plan(self) -> QueryPlan:
        return self._plan

    def sort(self, spec: SortInput) -> "ProductQuery":
        return ProductQuery(self._runner, self._plan.replace(sort=parse_sort(spec)))

    def skip(self, count: Optional[int]) -> "ProductQuery":
        return ProductQuery(self._runner, self._plan.replace(skip=_check_count("skip", count) or 0))

    def limit(self, count: Optional[int]) -> "ProductQuery":
        return ProductQuery(self._runner, self._plan.replace(limit=_check_count("limit", count)))

    async def to_list(self) -> List[Product]:
        return await self._runner(self._plan)

    def __await__(self):
        return self.to_list().__await__()


__all__ = [
    "FieldPredicate",
    "FilterSpec",
    "ProductQuery",
    "QueryPlan",
    "SORTABLE_FIELDS",
    "SortSpec",
    "evaluate",
    "matches",
    "parse_filter",
    "parse_sort",
]
