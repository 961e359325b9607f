#!/usr/bin/env python3
import zipfile

from memzip.__main__ import main


def test_create_list_extract(tmp_path, capsys):
    first = tmp_path / "hello.txt"
    first.write_bytes(b"Hello, ZIP!\n")
    second = tmp_path / "world.txt"
    second.write_bytes(b"World.\n")
    archive = str(tmp_path / "example.zip")

    assert main(["create", archive, str(first), str(second)]) == 0
    with zipfile.ZipFile(archive) as zf:
        assert zf.namelist() == ["hello.txt", "world.txt"]

    assert main(["list", archive]) == 0
    out = capsys.readouterr().out
    assert "hello.txt  (12 bytes, stored)" in out
    assert "world.txt  (7 bytes, stored)" in out
    assert "2 entries" in out

    target = tmp_path / "out.txt"
    assert main(["extract", archive, "world.txt", "-o", str(target)]) == 0
    assert target.read_bytes() == b"World.\n"

    assert main(["test", archive]) == 0
    assert main(["extract", archive, "missing.txt"]) == 1


def test_invalid_archive(tmp_path):
    bad = tmp_path / "bad.zip"
    bad.write_bytes(b"not a zip at all, just some text")
    assert main(["-v", "list", str(bad)]) == 1


def test_missing_files(tmp_path):
    missing = str(tmp_path / "missing.zip")
    assert main(["list", missing]) == 1
    assert main(["create", str(tmp_path / "out.zip"), str(tmp_path / "nope.txt")]) == 1
