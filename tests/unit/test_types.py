"""
Unit tests for request and response types.
"""

from datetime import datetime

import pytest
from bson import ObjectId

from mdb_gateway.types import CollectionDescriptor, OperationParams, Record, normalize_document
from mdb_gateway.utils import clean_mongo_doc

TENANT_ID = "acme-5f0c6d1e2a3b4c5d6e7f8091-dev"


@pytest.mark.unit
class TestOperationParams:
    """Test request parameter parsing."""

    def test_aliases(self):
        """Test that 'in' and 'type' map to their attributes."""
        params = OperationParams.from_mapping(
            {"tenant_id": TENANT_ID, "type": "orders", "in": {"tag": ["a"]}}
        )
        assert params.entity_type == "orders"
        assert params.in_ == {"tag": ["a"]}
        assert params.criteria()["in"] == {"tag": ["a"]}

    def test_unknown_keys_ignored(self):
        """Test that unknown request keys are dropped."""
        params = OperationParams.from_mapping({"tenant_id": TENANT_ID, "bogus": 1})
        assert params.tenant_id == TENANT_ID

    def test_dedicated_coerced(self):
        """Test that dedicated is coerced to a bool."""
        assert OperationParams.from_mapping({"dedicated": 1}).dedicated is True
        assert OperationParams.from_mapping({}).dedicated is False

    def test_coerce_passes_instances_through(self):
        """Test that coerce returns existing params unchanged."""
        params = OperationParams(tenant_id=TENANT_ID)
        assert OperationParams.coerce(params) is params


@pytest.mark.unit
class TestRecord:
    """Test document normalization."""

    def test_object_id_guid(self):
        """Test that ObjectId ids become hex strings and values are cleaned."""
        oid = ObjectId()
        created = datetime(2024, 1, 1, 12, 0, 0)
        doc = {"_id": oid, "created": created, "owner": oid}

        assert normalize_document(doc, "orders") == {
            "type": "orders",
            "guid": str(oid),
            "fields": {"created": "2024-01-01T12:00:00", "owner": str(oid)},
        }

    def test_custom_id_kept(self):
        """Test that non-ObjectId ids are kept as stored."""
        assert Record.from_document({"_id": 42, "a": 1}, "orders").guid == 42

    def test_id_only_document_has_no_fields(self):
        """Test that a document with only _id omits fields."""
        assert normalize_document({"_id": 1}, "orders") == {"type": "orders", "guid": 1}

    def test_missing_document(self):
        """Test that a missing document normalizes to {}."""
        assert normalize_document(None, "orders") == {}
        assert Record.from_document(None, "orders") is None

    def test_descriptor(self):
        """Test collection descriptor rendering."""
        assert CollectionDescriptor("orders", 10, 2).to_dict() == {
            "name": "orders",
            "size": 10,
            "count": 2,
        }

    def test_clean_doc_nested_lists(self):
        """Test cleaning a document with ObjectIds inside nested lists."""
        oid = ObjectId()
        assert clean_mongo_doc({"refs": [oid, {"x": oid}]}) == {
            "refs": [str(oid), {"x": str(oid)}]
        }

    def test_clean_doc_none(self):
        """Test that a missing document stays None."""
        assert clean_mongo_doc(None) is None
