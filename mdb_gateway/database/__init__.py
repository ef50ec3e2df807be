"""
Database layer: tenant naming, query translation and the Motor-backed store.
"""

from .naming import (
    check_params,
    check_tenant_scope,
    is_valid_entity_type_length,
    is_valid_tenant_id,
    recover_entity_type,
    resolve_collection_name,
    validate_entity_type,
)
from .query_translator import QueryOperator, translate_operand, translate_query
from .query_validator import QueryValidator
from .store import DocumentStore

__all__ = [
    "DocumentStore",
    "QueryOperator",
    "QueryValidator",
    "check_params",
    "check_tenant_scope",
    "is_valid_entity_type_length",
    "is_valid_tenant_id",
    "recover_entity_type",
    "resolve_collection_name",
    "translate_operand",
    "translate_query",
    "validate_entity_type",
]
