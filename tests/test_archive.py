"""Tests for the in-memory archive."""

import io
import logging
import zipfile

import pytest

from website_source.crawler.archive import Archive, format_bytes


def test_last_write_wins():
    archive = Archive()
    archive.put("index.html", b"old")
    archive.put("index.html", "new")

    assert archive.get("index.html") == b"new"
    assert archive.get_text("index.html") == "new"
    assert len(archive) == 1


def test_missing_path():
    archive = Archive()

    assert archive.get("nope") is None
    assert archive.get_text("nope") is None
    assert archive.size_of("nope") == 0
    assert "nope" not in archive


def test_serialize_produces_zip_with_nested_paths():
    archive = Archive()
    archive.put("index.html", b"<html></html>")
    archive.put("js/app.js", b"console.log(1)")

    with zipfile.ZipFile(io.BytesIO(archive.serialize())) as zf:
        assert sorted(zf.namelist()) == ["index.html", "js/app.js"]
        assert zf.read("js/app.js") == b"console.log(1)"


def test_save_writes_file(tmp_path):
    archive = Archive()
    archive.put("index.html", b"hi")

    target = archive.save(str(tmp_path / "out"), "x_com_source.zip")

    assert target.endswith("x_com_source.zip")
    assert zipfile.is_zipfile(target)


def test_sizes():
    archive = Archive()
    archive.put("a", b"12345")
    archive.put("b", b"123")

    assert archive.total_size == 8
    assert archive.files() == [("a", 5), ("b", 3)]


@pytest.mark.parametrize("size,expected", [
    (0, "0 Bytes"),
    (512, "512 Bytes"),
    (1024, "1 KB"),
    (1536, "1.5 KB"),
    (1048576, "1 MB"),
    (1234567, "1.18 MB"),
])
def test_format_bytes(size, expected):
    assert format_bytes(size) == expected


def test_replacing_a_path_is_logged(caplog):
    archive = Archive()
    archive.put("index.js", b"site")

    with caplog.at_level(logging.DEBUG, logger="website_source.archive"):
        archive.put("index.js", b"cdn")

    assert "Replacing index.js in archive" in caplog.text
    assert archive.get("index.js") == b"cdn"
