"""
Declarative query translation.

Requests describe filters as operator groups, each mapping field names to
operands::

    {"eq": {"status": "open"}, "gt": {"age": 18}, "lt": {"age": 65}}

translate_query() turns them into a MongoDB filter::

    {"status": "open", "age": {"$gt": 18, "$lt": 65}}

Groups are applied in QueryOperator order. Operators on the same field
merge into one operator document. Equality cannot be combined with other
operators on the same field.
"""

import logging
from collections.abc import Mapping
from enum import Enum
from numbers import Real
from typing import Any

from ..constants import EARTH_RADIUS_KM
from ..exceptions import QueryValidationError
from .query_validator import QueryValidator

logger = logging.getLogger(__name__)


class QueryOperator(str, Enum):
    """Operator groups accepted in a request, in application order."""

    EQ = "eq"
    NE = "ne"
    LT = "lt"
    LE = "le"
    GT = "gt"
    GE = "ge"
    LIKE = "like"
    IN = "in"
    GEO = "geo"


_COMPARISON_OPERATORS: dict[QueryOperator, str] = {
    QueryOperator.NE: "$ne",
    QueryOperator.LT: "$lt",
    QueryOperator.LE: "$lte",
    QueryOperator.GT: "$gt",
    QueryOperator.GE: "$gte",
}


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _translate_like(field: str, operand: Any) -> dict[str, Any]:
    if not isinstance(operand, str):
        raise QueryValidationError(
            f"'like' operand for '{field}' must be a string, got {type(operand).__name__}",
            query_type="filter",
            operator=QueryOperator.LIKE.value,
            path=field,
        )
    return {"$regex": operand}


def _translate_in(field: str, operand: Any) -> dict[str, Any]:
    if not isinstance(operand, (list, tuple, set)):
        raise QueryValidationError(
            f"'in' operand for '{field}' must be a list, got {type(operand).__name__}",
            query_type="filter",
            operator=QueryOperator.IN.value,
            path=field,
        )
    return {"$in": list(operand)}


def _translate_geo(field: str, operand: Any) -> dict[str, Any]:
    """Convert a {center, radius (km)} operand into a spherical $within query."""
    center = operand.get("center") if isinstance(operand, Mapping) else None
    radius = operand.get("radius") if isinstance(operand, Mapping) else None

    if (
        not isinstance(center, (list, tuple))
        or len(center) != 2
        or not all(_is_number(coordinate) for coordinate in center)
        or not _is_number(radius)
        or radius < 0
    ):
        raise QueryValidationError(
            f"'geo' operand for '{field}' must be "
            "{'center': [x, y], 'radius': <non-negative km>}",
            query_type="geo",
            operator=QueryOperator.GEO.value,
            path=field,
        )

    return {"$within": {"$centerSphere": [list(center), radius / EARTH_RADIUS_KM]}}


def translate_operand(operator: QueryOperator, field: str, operand: Any) -> dict[str, Any]:
    """
    Translate one non-equality operand into its MongoDB operator document.

    Raises:
        QueryValidationError: If the operand is malformed
    """
    if operator in _COMPARISON_OPERATORS:
        return {_COMPARISON_OPERATORS[operator]: operand}
    if operator is QueryOperator.LIKE:
        return _translate_like(field, operand)
    if operator is QueryOperator.IN:
        return _translate_in(field, operand)
    if operator is QueryOperator.GEO:
        return _translate_geo(field, operand)
    raise QueryValidationError(
        f"Operator '{operator.value}' has no operand translation",
        query_type="filter",
        operator=operator.value,
        path=field,
    )


def translate_query(
    criteria: Mapping[str, Any] | None,
    validator: QueryValidator | None = None,
) -> dict[str, Any]:
    """
    Build a MongoDB filter from operator groups.

    Unknown group names and None groups are ignored.

    Args:
        criteria: Mapping of operator name to {field: operand}
        validator: Validator applied to the resulting filter

    Returns:
        MongoDB filter document

    Raises:
        QueryValidationError: On malformed groups or operands, when equality
            is combined with another operator on one field, or when the
            resulting filter fails validation
    """
    query: dict[str, Any] = {}
    equality_fields: set[str] = set()

    for operator in QueryOperator:
        group = (criteria or {}).get(operator.value)
        if group is None:
            continue
        if not isinstance(group, Mapping):
            raise QueryValidationError(
                f"'{operator.value}' must map field names to operands, "
                f"got {type(group).__name__}",
                query_type="filter",
                operator=operator.value,
            )

        for field, operand in group.items():
            if operator is QueryOperator.EQ:
                query[field] = operand
                equality_fields.add(field)
                continue

            if field in equality_fields:
                raise QueryValidationError(
                    f"Field '{field}' cannot combine 'eq' with '{operator.value}'",
                    query_type="filter",
                    operator=operator.value,
                    path=field,
                )
            query.setdefault(field, {}).update(translate_operand(operator, field, operand))

    (validator or QueryValidator()).validate_filter(query)
    logger.debug(f"Translated query: {query}")
    return query
