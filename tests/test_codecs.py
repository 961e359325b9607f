#!/usr/bin/env python3
import struct
import zlib

import memzip
import pytest
from memzip import consts


def raw_deflate(data):
    compr = zlib.compressobj(5, zlib.DEFLATED, -15)
    return compr.compress(data) + compr.flush(zlib.Z_FINISH)


def test_store_codec():
    codec = memzip.StoreCodec()
    dest = bytearray(8)
    assert codec.decode(memoryview(b"abc"), memoryview(dest)) == 3
    assert dest[:3] == b"abc"
    with pytest.raises(memzip.InsufficientSpaceError):
        codec.decode(memoryview(b"abc"), memoryview(dest)[:2])


def test_deflate_codec():
    codec = memzip.DeflateCodec()
    text = b"deflate " * 64
    src = memoryview(raw_deflate(text))
    dest = bytearray(len(text))
    assert codec.decode(src, memoryview(dest)) == len(text)
    assert dest == text

    with pytest.raises(memzip.InsufficientSpaceError):
        codec.decode(src, memoryview(bytearray(len(text) - 1)))
    with pytest.raises(memzip.InvalidArchiveError):
        codec.decode(src[:len(src) // 2], memoryview(dest))
    with pytest.raises(memzip.InvalidArchiveError):
        codec.decode(memoryview(b"\xff\xff\xff"), memoryview(dest))


def test_deflate_codec_empty_payload():
    dest = bytearray(0)
    assert memzip.DeflateCodec().decode(memoryview(raw_deflate(b"")), memoryview(dest)) == 0


def test_default_registry():
    assert set(memzip.DEFAULT_CODECS) == {consts.COMPRESSION_STORE, consts.COMPRESSION_DEFLATE}
    assert set(memzip.store_only()) == {consts.COMPRESSION_STORE}


def test_crc32():
    assert memzip.crc32(b"hello") == zlib.crc32(b"hello") & 0xffffffff
    assert memzip.crc32(b"lo", memzip.crc32(b"hel")) == memzip.crc32(b"hello")


class ReverseCodec(memzip.Codec):
    method = 99

    def decode(self, src, dest):
        data = bytes(src)[::-1]
        if len(data) > dest.nbytes:
            raise memzip.InsufficientSpaceError("too small")
        dest[:len(data)] = data
        return len(data)


def test_pluggable_codec():
    data = bytearray(memzip.build(["r"], [b"olleh"]))
    cd = struct.unpack_from("<L", data, len(data) - 6)[0]
    struct.pack_into("<H", data, 8, ReverseCodec.method)
    struct.pack_into("<H", data, cd + 10, ReverseCodec.method)

    with pytest.raises(memzip.UnsupportedCompressionError):
        memzip.open(data).read("r")

    codecs = dict(memzip.DEFAULT_CODECS)
    codecs[ReverseCodec.method] = ReverseCodec()
    assert memzip.open(data, codecs=codecs).read("r") == b"hello"


def test_base_codec_is_abstract():
    with pytest.raises(NotImplementedError):
        memzip.Codec().decode(memoryview(b""), memoryview(bytearray()))


def test_deflate_codec_zlib_wrapped():
    codec = memzip.DeflateCodec()
    text = b"wrapped " * 16
    wrapped = zlib.compress(text)
    assert codec.has_zlib_header(memoryview(wrapped))
    assert not codec.has_zlib_header(memoryview(raw_deflate(text)))
    dest = bytearray(len(text))
    assert codec.decode(memoryview(wrapped), memoryview(dest)) == len(text)
    assert dest == text

    corrupt = bytearray(wrapped)
    corrupt[-1] ^= 0xff  # adler-32 trailer
    with pytest.raises(memzip.InvalidArchiveError):
        codec.decode(memoryview(bytes(corrupt)), memoryview(dest))


def zlib_wrapped_archive(name, plain):
    """One deflate entry compressed with a zlib header, crc left at zero."""
    comp = zlib.compress(plain)
    fname = name.encode("ascii")
    local = consts.LF_STRUCT.pack(
        consts.LF_MAGIC, 20, 0, consts.COMPRESSION_DEFLATE, 0, 0, 0,
        len(comp), len(plain), len(fname), 0,
    )
    cd_offset = len(local) + len(fname) + len(comp)
    cdir = consts.CDLF_STRUCT.pack(
        consts.CDFH_MAGIC, 20, 0, 20, 0, consts.COMPRESSION_DEFLATE, 0, 0, 0,
        len(comp), len(plain), len(fname), 0, 0, 0, 0, 0, 0,
    ) + fname
    cdend = consts.CD_END_STRUCT.pack(consts.CD_END_MAGIC, 0, 0, 1, 1, len(cdir), cd_offset, 0)
    return local + fname + comp + cdir + cdend


def test_extract_zlib_wrapped_entry():
    archive = memzip.open(zlib_wrapped_archive("test", b"test"))
    entry = archive.find("test")
    assert entry.is_compressed
    out = bytearray(16)
    assert memzip.extract(entry, out) == 4
    assert bytes(out[:4]) == b"test"
