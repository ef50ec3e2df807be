"""
Unit tests for QueryValidator.

Tests dangerous operator blocking, depth limits, regex limits and sort limits.
"""

import pytest

from mdb_gateway.database.query_validator import QueryValidator
from mdb_gateway.exceptions import QueryValidationError


@pytest.mark.unit
class TestQueryValidator:
    """Test QueryValidator functionality."""

    def test_validate_filter_empty(self):
        """Test that empty filters are allowed."""
        validator = QueryValidator()
        validator.validate_filter(None)
        validator.validate_filter({})

    @pytest.mark.parametrize("operator", ["$where", "$eval", "$function", "$accumulator"])
    def test_dangerous_operators_blocked(self, operator):
        """Test that each dangerous operator is blocked."""
        with pytest.raises(QueryValidationError, match="Dangerous operator") as exc_info:
            QueryValidator().validate_filter({operator: "code"})
        assert exc_info.value.operator == operator

    def test_dangerous_operator_nested(self):
        """Test that dangerous operators are detected in nested documents."""
        with pytest.raises(QueryValidationError, match="Dangerous operator"):
            QueryValidator().validate_filter({"status": "open", "nested": {"$where": "true"}})

    def test_dangerous_operator_in_array(self):
        """Test that dangerous operators are detected in arrays."""
        with pytest.raises(QueryValidationError, match="Dangerous operator"):
            QueryValidator().validate_filter({"$or": [{"$where": "true"}, {"a": 1}]})

    def test_custom_dangerous_operator(self):
        """Test that extra operators can be blocked."""
        validator = QueryValidator(dangerous_operators={"$expr"})
        with pytest.raises(QueryValidationError):
            validator.validate_filter({"$expr": {"$eq": ["$a", 1]}})

    def test_depth_limit(self):
        """Test that deeply nested filters are rejected."""
        validator = QueryValidator(max_depth=2)
        with pytest.raises(QueryValidationError, match="maximum nesting depth"):
            validator.validate_filter({"a": {"b": {"c": {"d": 1}}}})

    def test_filter_must_be_dict(self):
        """Test that non-dict filters are rejected."""
        with pytest.raises(QueryValidationError, match="must be a dictionary"):
            QueryValidator().validate_filter(["a"])

    def test_regex_too_long(self):
        """Test that long regex patterns are rejected."""
        validator = QueryValidator(max_regex_length=5)
        with pytest.raises(QueryValidationError, match="maximum length"):
            validator.validate_filter({"name": {"$regex": "abcdefgh"}})

    def test_regex_too_complex(self):
        """Test that complex regex patterns are rejected."""
        validator = QueryValidator(max_regex_complexity=2)
        with pytest.raises(QueryValidationError, match="maximum complexity"):
            validator.validate_regex("(a+)+|b*|c?")

    def test_simple_regex_allowed(self):
        """Test that simple patterns pass."""
        QueryValidator().validate_filter({"name": {"$regex": "^Jo.*n$"}})

    def test_sort_field_limit(self):
        """Test that sort specifications are bounded."""
        validator = QueryValidator(max_sort_fields=2)
        validator.validate_sort([("a", 1), ("b", -1)])
        with pytest.raises(QueryValidationError, match="Sort specification"):
            validator.validate_sort({"a": 1, "b": 1, "c": 1})
