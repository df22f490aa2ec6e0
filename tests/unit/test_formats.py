"""
Unit tests for the format descriptors and in-memory files.
"""

import json

import pytest

from tests.unit.mock import make_format
from transmute.formats import FileData, Format, merge_formats, normalize_mime


class TestFormat:
    @pytest.mark.smoke
    def test_key_and_identity(self):
        first = make_format("png", internal="image/png")
        second = make_format("png", internal="image/png", mime="image/x-png")
        other = make_format("png", internal="png")

        assert first.key == ("png", "image/png")
        assert first.same_identity(second)
        assert not first.same_identity(other)

    @pytest.mark.smoke
    def test_from_alias(self):
        by_alias = Format.model_validate(
            {
                "name": "Portable Network Graphics",
                "format": "png",
                "internal": "png",
                "extension": "png",
                "from": True,
                "to": False,
            }
        )
        by_name = make_format("png", from_=True, to=False)

        assert by_alias.from_ is True
        assert by_alias.to is False
        assert by_name.from_ is True
        assert json.loads(by_alias.model_dump_json(by_alias=True))["from"] is True

    @pytest.mark.sanity
    @pytest.mark.parametrize(
        ("category", "expected"),
        [
            (None, "other"),
            ("image", "image"),
            (("document", "text"), "document"),
            ((), "other"),
        ],
    )
    def test_primary_category(self, category, expected):
        assert make_format("x", category=category).primary_category == expected

    @pytest.mark.sanity
    def test_frozen(self):
        fmt = make_format("png")

        with pytest.raises(ValueError):
            fmt.format = "jpg"  # type: ignore[misc]


class TestFileData:
    @pytest.mark.smoke
    def test_derive(self):
        file = FileData(name="archive.tar.gz", bytes=b"abc")

        derived = file.derive("zip")
        replaced = file.derive("txt", b"xyz")

        assert derived.name == "archive.tar.zip"
        assert derived.bytes == b"abc"
        assert replaced.name == "archive.tar.txt"
        assert replaced.bytes == b"xyz"
        assert file.bytes == b"abc"

    @pytest.mark.sanity
    def test_empty_and_extension(self):
        assert FileData(name="a.PNG", bytes=b"").is_empty
        assert FileData(name="a.PNG", bytes=b"").extension == "png"
        assert FileData(name="README", bytes=b"x").extension == ""
        assert not FileData(name="README", bytes=b"x").is_empty


@pytest.mark.smoke
def test_merge_formats_flags_are_order_independent():
    readable = make_format("webp", from_=True, to=False, lossless=False)
    writable = make_format("webp", from_=False, to=True, lossless=True)

    for formats in ([readable, writable], [writable, readable]):
        merged = merge_formats(formats)

        assert len(merged) == 1
        assert merged[0].from_ is True
        assert merged[0].to is True
        assert merged[0].lossless is True

    assert readable.to is False
    assert writable.from_ is False


@pytest.mark.sanity
def test_merge_formats_keeps_first_seen_order():
    formats = [
        make_format("png"),
        make_format("jpg"),
        make_format("png", from_=False, mime="image/other"),
        make_format("png", internal="png-alt"),
    ]

    merged = merge_formats(formats)

    assert [fmt.key for fmt in merged] == [
        ("png", "png"),
        ("jpg", "jpg"),
        ("png", "png-alt"),
    ]
    assert merged[0].mime == "application/x-png"


@pytest.mark.sanity
@pytest.mark.parametrize(
    ("mime", "expected"),
    [
        (None, ""),
        ("", ""),
        ("Text/HTML; charset=UTF-8", "text/html"),
        ("image/png", "image/png"),
        ("application/octet-stream", ""),
    ],
)
def test_normalize_mime(mime, expected):
    assert normalize_mime(mime) == expected


@pytest.mark.sanity
def test_declared_mime_is_normalized():
    assert make_format("csv", mime="Text/CSV; charset=utf-8").mime == "text/csv"
    assert make_format("bin", mime="application/octet-stream").mime == ""
    from_snapshot = Format.model_validate(
        {
            "name": "CSV",
            "format": "csv",
            "internal": "csv",
            "extension": "csv",
            "mime": None,
        }
    )

    assert from_snapshot.mime == ""
