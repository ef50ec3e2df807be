"""
Unit tests for ZipArchiveCodec.

Tests archive layout, per-format entries, import of archives and bare
files, and decoding failures.
"""

import io
import zipfile

import bson
import pytest
from bson import Int64, ObjectId, json_util

from mdb_gateway.archive import ArchiveFile, ZipArchiveCodec
from mdb_gateway.exceptions import ArchiveError


@pytest.fixture
def codec():
    return ZipArchiveCodec()


def make_zip(entries):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, data in entries.items():
            archive.writestr(name, data)
    return buffer.getvalue()


@pytest.mark.unit
class TestZipExport:
    """Test archive creation."""

    def test_one_entry_per_type(self, codec):
        """Test that each entity type becomes <type>.<format>."""
        data = codec.zip_export({"orders": [{"a": 1}], "users": []}, "json")

        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            assert archive.namelist() == ["orders.json", "users.json"]
            assert json_util.loads(archive.read("users.json")) == []

    def test_json_keeps_bson_types(self, codec):
        """Test that extended JSON preserves ObjectIds and 64-bit integers."""
        oid = ObjectId()
        doc = {"_id": oid, "big": Int64(2**40)}

        data = codec.zip_export({"orders": [doc]}, "json")

        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            assert json_util.loads(archive.read("orders.json")) == [doc]

    def test_bson_entries(self, codec):
        """Test that bson entries hold concatenated documents."""
        data = codec.zip_export({"orders": [{"n": 1}, {"n": 2}]}, "bson")

        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            assert bson.decode_all(archive.read("orders.bson")) == [{"n": 1}, {"n": 2}]

    def test_csv_header_is_union_of_keys(self, codec):
        """Test that csv entries use the union of document keys."""
        data = codec.zip_export({"orders": [{"a": "x"}, {"b": 2}]}, "csv")

        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            lines = archive.read("orders.csv").decode("utf-8").splitlines()
        assert lines == ["a,b", "x,", ",2"]

    def test_unsupported_format(self, codec):
        """Test that unknown formats are rejected."""
        with pytest.raises(ArchiveError, match="Unsupported export format 'xml'"):
            codec.zip_export({"orders": []}, "xml")


@pytest.mark.unit
class TestImportFile:
    """Test decoding uploads."""

    def test_import_archive(self, codec):
        """Test that every entry of a zip becomes an entity type."""
        upload = ArchiveFile(
            name="backup.zip",
            data=make_zip(
                {
                    "orders.json": json_util.dumps([{"n": 1}]),
                    "users.bson": bson.encode({"name": "ada"}),
                    "notes.csv": "title,pages\nhello,3\n",
                }
            ),
        )

        assert codec.import_file([upload]) == {
            "orders": [{"n": 1}],
            "users": [{"name": "ada"}],
            "notes": [{"title": "hello", "pages": 3}],
        }

    def test_export_then_import_same_data(self, codec):
        """Test that an exported archive imports back to the same documents."""
        oid = ObjectId()
        collections = {"orders": [{"_id": oid, "total": 12.5, "tags": ["a"]}]}
        for archive_format in ("json", "bson", "csv"):
            data = codec.zip_export(collections, archive_format)
            assert codec.import_file([ArchiveFile("export.zip", data)]) == collections

    def test_csv_keeps_json_like_strings(self, codec):
        """Test that strings which look like JSON survive a csv export and import."""
        collections = {
            "orders": [
                {
                    "code": "123",
                    "flag": "true",
                    "name": "null",
                    "tags": "[1]",
                    "quoted": '"x"',
                    "blank": "",
                    "plain": "ada",
                }
            ]
        }
        data = codec.zip_export(collections, "csv")
        assert codec.import_file([ArchiveFile("export.zip", data)]) == collections

    def test_csv_malformed_extended_json_stays_text(self, codec):
        """Test that a cell with a malformed $-wrapper is imported as a string."""
        upload = ArchiveFile("orders.csv", b'v\n"{""$timestamp"": {""t"": 1}}"\n')
        assert codec.import_file([upload]) == {"orders": [{"v": '{"$timestamp": {"t": 1}}'}]}

    def test_skips_directories_and_metadata(self, codec):
        """Test that directories, dotfiles and macOS metadata are ignored."""
        upload = ArchiveFile(
            name="backup.ZIP",
            data=make_zip(
                {
                    "data/": "",
                    "data/orders.json": "[]",
                    ".DS_Store": "junk",
                    "__MACOSX/data/._orders.json": "junk",
                }
            ),
        )
        assert codec.import_file([upload]) == {"orders": []}

    def test_bare_files_merge(self, codec):
        """Test that bare files are imported and repeated types merged."""
        uploads = [
            ArchiveFile("orders.json", b'{"n": 1}'),
            ArchiveFile("orders.csv", b"n\n2\n"),
        ]
        assert codec.import_file(uploads) == {"orders": [{"n": 1}, {"n": 2}]}

    def test_csv_empty_cells_omitted(self, codec):
        """Test that empty csv cells are left out and text stays text."""
        upload = ArchiveFile("people.csv", b"name,age,city\nada,,London\n")
        assert codec.import_file([upload]) == {"people": [{"name": "ada", "city": "London"}]}

    def test_import_from_path(self, codec, tmp_path):
        """Test that filesystem paths are read."""
        path = tmp_path / "orders.json"
        path.write_text('[{"n": 1}]')
        assert codec.import_file([path, str(path)]) == {"orders": [{"n": 1}, {"n": 1}]}

    @pytest.mark.parametrize(
        "upload,message",
        [
            (ArchiveFile("orders.txt", b"x"), "Unsupported import file"),
            (ArchiveFile(".json", b"[]"), "Unsupported import file"),
            (ArchiveFile("orders.json", b"{not json"), "Failed to decode"),
            (ArchiveFile("orders.json", b"[1, 2]"), "Failed to decode"),
            (
                ArchiveFile("orders.json", b'[{"v": {"$numberDecimal": "abc"}}]'),
                "Failed to decode",
            ),
            (ArchiveFile("orders.json", b'[{"v": {"$timestamp": {"t": 1}}}]'), "Failed to decode"),
            (ArchiveFile("orders.bson", b"\x05\x00"), "Failed to decode"),
            (ArchiveFile("backup.zip", b"not a zip"), "Invalid zip archive"),
        ],
    )
    def test_invalid_uploads(self, codec, upload, message):
        """Test that unreadable uploads raise ArchiveError."""
        with pytest.raises(ArchiveError, match=message):
            codec.import_file([upload])

    def test_missing_path(self, codec, tmp_path):
        """Test that a missing file raises ArchiveError."""
        with pytest.raises(ArchiveError, match="Failed to read import file"):
            codec.import_file([tmp_path / "missing.json"])
