"""
Request and response types for MDB_GATEWAY.

OperationParams is the parameter bag every gateway operation accepts.
Record and CollectionDescriptor are the normalized shapes returned to
callers (always as plain dictionaries via to_dict()).
"""

from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any

from .utils.mongo import clean_mongo_doc, clean_value

# Request keys that differ from attribute names
_PARAM_ALIASES: dict[str, str] = {
    "in": "in_",
    "type": "entity_type",
}


@dataclass
class OperationParams:
    """
    Parameters of a single gateway request.

    Optional values default to None; the gateway never relies on truthiness
    of a missing value.
    """

    tenant_id: str | None = None
    entity_type: Any = None
    dedicated: bool = False
    guid: Any = None
    fields: Any = None
    eq: Mapping[str, Any] | None = None
    ne: Mapping[str, Any] | None = None
    lt: Mapping[str, Any] | None = None
    le: Mapping[str, Any] | None = None
    gt: Mapping[str, Any] | None = None
    ge: Mapping[str, Any] | None = None
    like: Mapping[str, Any] | None = None
    in_: Mapping[str, Any] | None = None
    geo: Mapping[str, Any] | None = None
    skip: Any = None
    limit: Any = None
    sort: Any = None
    index: Mapping[str, Any] | None = None
    format: str | None = None
    files: list[Any] | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "OperationParams":
        """Build params from a request mapping; unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}
        for key, value in data.items():
            name = _PARAM_ALIASES.get(key, key)
            if name in known:
                values[name] = value
        if "dedicated" in values:
            values["dedicated"] = bool(values["dedicated"])
        return cls(**values)

    @classmethod
    def coerce(cls, params: "OperationParams | Mapping[str, Any]") -> "OperationParams":
        if isinstance(params, OperationParams):
            return params
        return cls.from_mapping(params)

    def criteria(self) -> dict[str, Any]:
        """Operator groups keyed by their request names."""
        return {
            "eq": self.eq,
            "ne": self.ne,
            "lt": self.lt,
            "le": self.le,
            "gt": self.gt,
            "ge": self.ge,
            "like": self.like,
            "in": self.in_,
            "geo": self.geo,
        }


@dataclass
class Record:
    """A stored document in its normalized form."""

    type: str
    guid: Any
    fields: dict[str, Any] | None = None

    @classmethod
    def from_document(cls, doc: Mapping[str, Any] | None, entity_type: str) -> "Record | None":
        """
        Normalize a raw document.

        The guid is the string form of an ObjectId ``_id``; any other id is
        kept as stored. ``fields`` is left empty when the document has
        nothing besides ``_id``.
        """
        if doc is None:
            return None
        guid = clean_value(doc.get("_id"))
        rest = {key: value for key, value in doc.items() if key != "_id"}
        return cls(type=entity_type, guid=guid, fields=clean_mongo_doc(rest) if rest else None)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"type": self.type, "guid": self.guid}
        if self.fields:
            result["fields"] = self.fields
        return result


def normalize_document(doc: Mapping[str, Any] | None, entity_type: str) -> dict[str, Any]:
    """Normalize a raw document to a response dictionary; a missing document gives {}."""
    record = Record.from_document(doc, entity_type)
    return record.to_dict() if record is not None else {}


@dataclass
class CollectionDescriptor:
    """Summary of one tenant collection."""

    name: str
    size: int = 0
    count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "size": self.size, "count": self.count}
