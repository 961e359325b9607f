#!/usr/bin/env python3
import struct

import pytest

from memzip.cursor import ByteCursor, byte_view
from memzip.errors import CursorBoundsError


def test_read_little_endian():
    cur = ByteCursor(b"\x01\x02\x03\x04\x05")
    assert cur.read_u16(0) == 0x0201
    assert cur.read_u32(1) == 0x05040302
    assert bytes(cur.read_bytes(3, 2)) == b"\x04\x05"
    assert cur.read_bytes(5, 0).nbytes == 0


def test_reads_fail_closed():
    cur = ByteCursor(b"\x01\x02\x03\x04\x05")
    with pytest.raises(CursorBoundsError):
        cur.read_u32(2)
    with pytest.raises(CursorBoundsError):
        cur.read_u16(-1)
    with pytest.raises(CursorBoundsError):
        cur.read_bytes(4, 2)
    with pytest.raises(CursorBoundsError):
        cur.read_struct(struct.Struct("<LL"), 0)


def test_limit_below_buffer_length():
    cur = ByteCursor(b"\x01\x02\x03\x04\x05", 3)
    assert len(cur) == 3
    assert cur.read_u16(1) == 0x0302
    with pytest.raises(CursorBoundsError):
        cur.read_u16(2)
    assert cur.fits(0, 3)
    assert not cur.fits(1, 3)
    with pytest.raises(ValueError):
        ByteCursor(b"\x00", 2)


def test_writes_fail_closed():
    buf = bytearray(6)
    cur = ByteCursor(buf, 5)
    assert cur.write_u16(0, 0xbeef) == 2
    assert cur.write_u32(1, 0x11223344) == 5
    assert buf == bytearray(b"\xef\x44\x33\x22\x11\x00")
    with pytest.raises(CursorBoundsError):
        cur.write_u16(4, 0xffff)
    with pytest.raises(CursorBoundsError):
        cur.write_bytes(3, b"abc")
    with pytest.raises(CursorBoundsError):
        cur.write_struct(struct.Struct("<HL"), 0, 1, 2)
    # nothing was written by the failed calls
    assert buf == bytearray(b"\xef\x44\x33\x22\x11\x00")


def test_write_read_only_buffer():
    cur = ByteCursor(b"\x00\x00")
    with pytest.raises(TypeError):
        cur.write_u16(0, 1)


def test_find_last():
    cur = ByteCursor(b"PK..PK..PK")
    assert cur.find_last(b"PK", 0, 8) == 8
    assert cur.find_last(b"PK", 0, 7) == 4
    assert cur.find_last(b"PK", 5, 7) == -1
    assert cur.find_last(b"PK", -10, 0) == 0
    assert cur.find_last(b"ZZ", 0, 8) == -1


def test_byte_view_casts():
    view = byte_view(memoryview(bytearray(8)).cast("H"))
    assert view.format == "B"
    assert view.nbytes == 8
