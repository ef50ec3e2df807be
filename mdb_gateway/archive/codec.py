"""
Archive codec for bulk export and import.

An export archive is a zip file with one entry per entity type, named
``<entity_type>.<format>``. Supported entry formats:

- ``json``: a MongoDB extended JSON array (bson.json_util)
- ``bson``: concatenated BSON documents, as written by mongodump
- ``csv``: one row per document; the header is the union of top-level keys.
  Non-string values, and strings that would parse as JSON, are written as
  extended JSON

Imports accept the same archives, or bare .json/.bson/.csv files. The
entity type of every entry is its file name without extension.
"""

import csv
import io
import logging
import os
import zipfile
from collections.abc import Iterable, Mapping
from pathlib import Path, PurePosixPath
from typing import Any, NamedTuple, Protocol

import bson
from bson import json_util
from bson.errors import BSONError

from ..constants import SUPPORTED_EXPORT_FORMATS
from ..exceptions import ArchiveError

logger = logging.getLogger(__name__)

ARCHIVE_EXTENSION = ".zip"

# json_util raises TypeError for malformed $-wrappers and
# decimal.InvalidOperation (an ArithmeticError) for bad $numberDecimal
_EXTENDED_JSON_ERRORS = (BSONError, ValueError, TypeError, ArithmeticError)


class ArchiveFile(NamedTuple):
    """An uploaded file: its original name and raw content."""

    name: str
    data: bytes


ImportSource = ArchiveFile | str | os.PathLike


class ArchiveCodec(Protocol):
    """Encodes collections into an archive and decodes uploaded files back."""

    def zip_export(self, collections: Mapping[str, list[dict[str, Any]]], format: str) -> bytes:
        ...

    def import_file(self, files: Iterable[ImportSource]) -> dict[str, list[dict[str, Any]]]:
        ...


# ============================================================================
# ENTRY ENCODERS / DECODERS
# ============================================================================


def _encode_json(documents: list[dict[str, Any]]) -> bytes:
    return json_util.dumps(documents).encode("utf-8")


def _decode_json(data: bytes) -> list[dict[str, Any]]:
    loaded = json_util.loads(data.decode("utf-8"))
    if isinstance(loaded, dict):
        return [loaded]
    if not isinstance(loaded, list) or not all(isinstance(doc, dict) for doc in loaded):
        raise ValueError("JSON content must be an object or an array of objects")
    return loaded


def _encode_bson(documents: list[dict[str, Any]]) -> bytes:
    return b"".join(bson.encode(document) for document in documents)


def _decode_bson(data: bytes) -> list[dict[str, Any]]:
    return bson.decode_all(data)


def _decode_cell(cell: str) -> Any:
    try:
        return json_util.loads(cell)
    except _EXTENDED_JSON_ERRORS:
        return cell


def _encode_cell(value: Any) -> str:
    if value is None:
        return ""
    # strings that would read back as another value are written JSON-quoted
    if isinstance(value, str) and value and _decode_cell(value) == value:
        return value
    return json_util.dumps(value)


def _encode_csv(documents: list[dict[str, Any]]) -> bytes:
    header: dict[str, None] = {}
    for document in documents:
        header.update(dict.fromkeys(document))

    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(header))
    writer.writeheader()
    for document in documents:
        writer.writerow({key: _encode_cell(value) for key, value in document.items()})
    return buffer.getvalue().encode("utf-8")


def _decode_csv(data: bytes) -> list[dict[str, Any]]:
    reader = csv.DictReader(io.StringIO(data.decode("utf-8")))
    return [
        {key: _decode_cell(cell) for key, cell in row.items() if key and cell not in (None, "")}
        for row in reader
    ]


_ENCODERS = {"json": _encode_json, "bson": _encode_bson, "csv": _encode_csv}
_DECODERS = {"json": _decode_json, "bson": _decode_bson, "csv": _decode_csv}


# ============================================================================
# CODEC
# ============================================================================


class ZipArchiveCodec:
    """Default ArchiveCodec backed by in-memory zip files."""

    def zip_export(self, collections: Mapping[str, list[dict[str, Any]]], format: str) -> bytes:
        """
        Build a zip archive holding one entry per entity type.

        Raises:
            ArchiveError: If the format is unsupported or a document cannot be encoded
        """
        encoder = _ENCODERS.get(format)
        if encoder is None:
            raise ArchiveError(
                f"Unsupported export format '{format}' "
                f"(expected one of: {', '.join(SUPPORTED_EXPORT_FORMATS)})",
                archive_format=format,
            )

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for entity_type, documents in collections.items():
                entry_name = f"{entity_type}.{format}"
                try:
                    archive.writestr(entry_name, encoder(list(documents)))
                except (BSONError, TypeError, ValueError) as e:
                    raise ArchiveError(
                        f"Failed to encode '{entity_type}': {e}",
                        archive_format=format,
                        filename=entry_name,
                    ) from e
                logger.debug(f"Archived {len(documents)} document(s) as {entry_name}")

        return buffer.getvalue()

    def import_file(self, files: Iterable[ImportSource]) -> dict[str, list[dict[str, Any]]]:
        """
        Decode uploaded files into {entity_type: [documents]}.

        Raises:
            ArchiveError: If a file cannot be read or decoded
        """
        collections: dict[str, list[dict[str, Any]]] = {}
        for source in files:
            upload = self._load(source)
            for entity_type, documents in self._decode_upload(upload):
                collections.setdefault(entity_type, []).extend(documents)
        return collections

    def _load(self, source: ImportSource) -> ArchiveFile:
        if isinstance(source, ArchiveFile):
            return source
        path = Path(source)
        try:
            return ArchiveFile(name=path.name, data=path.read_bytes())
        except OSError as e:
            raise ArchiveError(f"Failed to read import file: {e}", filename=str(path)) from e

    def _decode_upload(self, upload: ArchiveFile):
        if upload.name.lower().endswith(ARCHIVE_EXTENSION):
            try:
                with zipfile.ZipFile(io.BytesIO(upload.data)) as archive:
                    for info in archive.infolist():
                        entry = PurePosixPath(info.filename)
                        # directories, dotfiles and macOS resource forks
                        if (
                            info.is_dir()
                            or entry.name.startswith(".")
                            or "__MACOSX" in entry.parts
                        ):
                            continue
                        yield self._decode_entry(entry.name, archive.read(info))
            except zipfile.BadZipFile as e:
                raise ArchiveError(f"Invalid zip archive: {e}", filename=upload.name) from e
        else:
            yield self._decode_entry(PurePosixPath(upload.name).name, upload.data)

    def _decode_entry(self, filename: str, data: bytes) -> tuple[str, list[dict[str, Any]]]:
        entry = PurePosixPath(filename)
        entry_format = entry.suffix.lstrip(".").lower()
        decoder = _DECODERS.get(entry_format)
        if decoder is None or not entry.stem:
            raise ArchiveError(
                f"Unsupported import file '{filename}'",
                archive_format=entry_format or None,
                filename=filename,
            )
        try:
            return entry.stem, decoder(data)
        except (*_EXTENDED_JSON_ERRORS, csv.Error) as e:
            raise ArchiveError(
                f"Failed to decode '{filename}': {e}",
                archive_format=entry_format,
                filename=filename,
            ) from e
