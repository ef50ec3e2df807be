"""
Safety checks for translated MongoDB filters.

Operands arrive straight from tenants, so a translated filter is checked
before it reaches the driver:
- dangerous operators ($where, $eval, $function, $accumulator) are blocked
- nesting depth is bounded
- $regex patterns are bounded in length and complexity and must compile
- sort specifications are bounded in field count
"""

import logging
import re
from typing import Any

from ..constants import (
    DANGEROUS_OPERATORS,
    MAX_QUERY_DEPTH,
    MAX_REGEX_COMPLEXITY,
    MAX_REGEX_LENGTH,
    MAX_SORT_FIELDS,
)
from ..exceptions import QueryValidationError

logger = logging.getLogger(__name__)


class QueryValidator:
    """
    Validates MongoDB filters and sort specifications.
    """

    def __init__(
        self,
        max_depth: int = MAX_QUERY_DEPTH,
        max_regex_length: int = MAX_REGEX_LENGTH,
        max_regex_complexity: int = MAX_REGEX_COMPLEXITY,
        max_sort_fields: int = MAX_SORT_FIELDS,
        dangerous_operators: set[str] | None = None,
    ):
        """
        Args:
            max_depth: Maximum nesting depth for filters
            max_regex_length: Maximum length for regex patterns
            max_regex_complexity: Maximum complexity score for regex patterns
            max_sort_fields: Maximum fields in a sort specification
            dangerous_operators: Extra operators to block on top of DANGEROUS_OPERATORS
        """
        self.max_depth = max_depth
        self.max_regex_length = max_regex_length
        self.max_regex_complexity = max_regex_complexity
        self.max_sort_fields = max_sort_fields
        self.dangerous_operators = set(DANGEROUS_OPERATORS) | set(dangerous_operators or ())

    def validate_filter(self, filter: dict[str, Any] | None, path: str = "") -> None:
        """
        Validate a MongoDB query filter.

        Raises:
            QueryValidationError: If the filter contains dangerous operators or exceeds limits
        """
        if not filter:
            return

        if not isinstance(filter, dict):
            raise QueryValidationError(
                f"Query filter must be a dictionary, got {type(filter).__name__}",
                query_type="filter",
                path=path,
            )

        self._check(filter, path, depth=0)

    def validate_regex(self, pattern: Any, path: str = "") -> None:
        """
        Validate a regex pattern to prevent ReDoS attacks.

        Raises:
            QueryValidationError: If the regex pattern is too long, too complex or invalid
        """
        if not isinstance(pattern, str):
            return

        if len(pattern) > self.max_regex_length:
            raise QueryValidationError(
                f"Regex pattern exceeds maximum length: "
                f"{len(pattern)} > {self.max_regex_length}",
                query_type="regex",
                path=path,
                context={"length": len(pattern), "max_length": self.max_regex_length},
            )

        complexity = self._calculate_regex_complexity(pattern)
        if complexity > self.max_regex_complexity:
            raise QueryValidationError(
                f"Regex pattern exceeds maximum complexity: "
                f"{complexity} > {self.max_regex_complexity}",
                query_type="regex",
                path=path,
                context={"complexity": complexity, "max_complexity": self.max_regex_complexity},
            )

        try:
            re.compile(pattern)
        except re.error as e:
            raise QueryValidationError(
                f"Invalid regex pattern: {e}",
                query_type="regex",
                path=path,
            ) from e

    def validate_sort(self, sort: Any | None) -> None:
        """
        Validate a sort specification (mapping or list of (field, direction) pairs).

        Raises:
            QueryValidationError: If the sort specification exceeds limits
        """
        if not sort:
            return

        sort_fields = self._extract_sort_fields(sort)
        if len(sort_fields) > self.max_sort_fields:
            raise QueryValidationError(
                f"Sort specification exceeds maximum fields: "
                f"{len(sort_fields)} > {self.max_sort_fields}",
                query_type="sort",
                context={"fields": len(sort_fields), "max_fields": self.max_sort_fields},
            )

    def _check(self, query: dict[str, Any], path: str, depth: int) -> None:
        if depth > self.max_depth:
            raise QueryValidationError(
                f"Query exceeds maximum nesting depth: {depth} > {self.max_depth}",
                query_type="filter",
                path=path,
                context={"depth": depth, "max_depth": self.max_depth},
            )

        for key, value in query.items():
            current_path = f"{path}.{key}" if path else str(key)

            if key in self.dangerous_operators:
                logger.warning(
                    f"Security: Dangerous operator '{key}' detected in query "
                    f"at path '{current_path}'"
                )
                raise QueryValidationError(
                    f"Dangerous operator '{key}' is not allowed for security reasons. "
                    f"Found at path: {current_path}",
                    query_type="filter",
                    operator=key,
                    path=current_path,
                )

            if key == "$regex":
                self.validate_regex(value, current_path)

            if isinstance(value, dict):
                self._check(value, current_path, depth + 1)
            elif isinstance(value, list):
                for idx, item in enumerate(value):
                    if isinstance(item, dict):
                        self._check(item, f"{current_path}[{idx}]", depth + 1)

    def _calculate_regex_complexity(self, pattern: str) -> int:
        """Heuristic score: quantifiers, alternations, nested groups and lookarounds."""
        complexity = 0
        complexity += len(re.findall(r"[*+?{]", pattern))
        complexity += len(re.findall(r"\|", pattern))
        complexity += len(re.findall(r"\([^)]*\([^)]*\)", pattern))
        complexity += len(re.findall(r"\(\?[=!<>]", pattern))
        return complexity

    def _extract_sort_fields(self, sort: Any) -> list[str]:
        if isinstance(sort, list):
            return [pair[0] for pair in sort if isinstance(pair, (list, tuple)) and pair]
        if isinstance(sort, dict):
            return list(sort.keys())
        return []
