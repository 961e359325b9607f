#!/usr/bin/env python3
import asyncio

import memzip
import pytest
from memzip.aiozip import AioZipArchive, save_archive


def test_save_and_load(tmp_path):
    path = str(tmp_path / "out.zip")

    async def scenario():
        size = await save_archive(path, ["a.txt", "b.txt"], [b"alpha", b"beta"])
        async with await AioZipArchive.load(path) as azip:
            assert azip.archive.list() == [(b"a.txt", 5), (b"b.txt", 4)]
            assert await azip.read("b.txt") == b"beta"
            entry = azip.archive.find("a.txt")
            dest = bytearray(8)
            assert await azip.extract(entry, dest) == 5
            assert dest[:5] == b"alpha"
            assert await azip.test() is None
        assert azip.archive.closed
        return size

    size = asyncio.run(scenario())
    with open(path, "rb") as fh:
        assert len(fh.read()) == size


def test_load_invalid(tmp_path):
    path = tmp_path / "bad.zip"
    path.write_bytes(b"\x00\x00\x00")
    with pytest.raises(memzip.InvalidArchiveError):
        asyncio.run(AioZipArchive.load(str(path)))
