#
# Store-only ZIP archive building into caller-owned memory
# based on official ZIP File Format Specification version 6.3.4
# https://pkware.cachefly.net/webdocs/casestudies/APPNOTE.TXT
#
import logging
import time
from typing import List, Optional, Sequence, Tuple, Union

from . import consts
from .codecs import crc32
from .cursor import Buffer, ByteCursor, byte_view
from .errors import CursorBoundsError, InsufficientSpaceError

__all__ = ("create", "build", "archive_size")

logger = logging.getLogger(__name__)

Name = Union[str, bytes]
DateTime = Tuple[int, int, int, int, int, int]


class _EntryStruct:
    """Per-entry metadata gathered while the local records are written."""

    def __init__(self, fname: bytes, flags: int, payload: memoryview) -> None:
        self.fname = fname
        self.flags = flags
        self.payload = payload
        self.size = payload.nbytes
        self.crc = crc32(payload)
        self.offset = 0  # will be determined at write time


def _encode_name(name: Name) -> Tuple[bytes, int]:
    """
    Returns:
        Encoded name and the general purpose flags it needs.
    """
    if isinstance(name, (bytes, bytearray, memoryview)):
        return bytes(name), 0
    try:
        return name.encode("ascii"), 0
    except UnicodeError:
        return name.encode("utf-8"), consts.UTF8_FLAG


def _dos_date_time(date_time: Optional[DateTime]) -> Tuple[int, int]:
    dt = date_time or time.localtime()[:6]
    dosdate = ((dt[0] - 1980) << 9 | dt[1] << 5 | dt[2]) & 0xffff
    dostime = (dt[3] << 11 | dt[4] << 5 | (dt[5] // 2)) & 0xffff
    return dosdate, dostime


def _prepare(names: Sequence[Name], payloads: Sequence[Buffer]) -> List[_EntryStruct]:
    """
    Raises:
        ValueError: If the entries cannot be described without ZIP64 fields.
    """
    if len(names) != len(payloads):
        raise ValueError(f"Got {len(names)} names for {len(payloads)} payloads.")
    if len(names) > consts.ZIP16_LIMIT:
        raise ValueError(f"{len(names)} entries exceed the limit of {consts.ZIP16_LIMIT}.")
    entries = []
    offset = 0
    for name, payload in zip(names, payloads):
        fname, flags = _encode_name(name)
        if len(fname) > consts.ZIP16_LIMIT:
            raise ValueError(f"Name of {len(fname)} bytes exceeds {consts.ZIP16_LIMIT} bytes.")
        view = byte_view(payload)
        if view.nbytes > consts.ZIP32_LIMIT:
            raise ValueError(f"Payload of {view.nbytes} bytes exceeds {consts.ZIP32_LIMIT} bytes.")
        if offset > consts.ZIP32_LIMIT:
            raise ValueError(f"Local header offset {offset} exceeds {consts.ZIP32_LIMIT}.")
        offset += consts.LF_STRUCT.size + len(fname) + view.nbytes
        entries.append(_EntryStruct(fname, flags, view))
    cd_size = sum(consts.CDLF_STRUCT.size + len(entry.fname) for entry in entries)
    if offset > consts.ZIP32_LIMIT or cd_size > consts.ZIP32_LIMIT:
        raise ValueError("Archive too large without ZIP64 extensions.")
    return entries


def _write_local_file_header(cursor: ByteCursor, pos: int, entry: _EntryStruct,
                             dosdate: int, dostime: int) -> int:
    fields = {
        "signature": consts.LF_MAGIC,
        "version": consts.ZIP32_VERSION,
        "flags": entry.flags,
        "compression": consts.COMPRESSION_STORE,
        "mod_time": dostime,
        "mod_date": dosdate,
        "crc": entry.crc,
        "comp_size": entry.size,
        "uncomp_size": entry.size,
        "fname_len": len(entry.fname),
        "extra_len": 0
    }
    head = consts.LF_TUPLE(**fields)
    pos = cursor.write_struct(consts.LF_STRUCT, pos, *head)
    return cursor.write_bytes(pos, entry.fname)


def _write_cdir_file_header(cursor: ByteCursor, pos: int, entry: _EntryStruct,
                            dosdate: int, dostime: int) -> int:
    """
    Write a central directory file header mirroring the entry's local header.
    Version (low byte) and system (high byte) form "version made by".
    """
    fields = {
        "signature": consts.CDFH_MAGIC,
        "version": consts.ZIP32_VERSION,
        "system": consts.SYSTEM_UNIX,
        "version_ndd": consts.ZIP32_VERSION,
        "flags": entry.flags,
        "compression": consts.COMPRESSION_STORE,
        "mod_time": dostime,
        "mod_date": dosdate,
        "crc": entry.crc,
        "comp_size": entry.size,
        "uncomp_size": entry.size,
        "fname_len": len(entry.fname),
        "extra_len": 0,
        "fcomm_len": 0,
        "disk_start": 0,
        "attrs_int": 0,
        "attrs_ext": 0,
        "offset": entry.offset
    }
    cdfh = consts.CDLF_TUPLE(**fields)
    pos = cursor.write_struct(consts.CDLF_STRUCT, pos, *cdfh)
    return cursor.write_bytes(pos, entry.fname)


def _write_cdend(cursor: ByteCursor, pos: int, count: int, cd_size: int, cd_offset: int) -> int:
    fields = {
        "signature": consts.CD_END_MAGIC,
        "disk_num": 0,
        "disk_cdstart": 0,
        "disk_entries": count,
        "total_entries": count,
        "cd_size": cd_size,
        "cd_offset": cd_offset,
        "comment_len": 0
    }
    cdend = consts.CD_END_TUPLE(**fields)
    return cursor.write_struct(consts.CD_END_STRUCT, pos, *cdend)


def create(names: Sequence[Name], payloads: Sequence[Buffer], dest: Buffer,
           capacity: Optional[int] = None, date_time: Optional[DateTime] = None) -> int:
    """
    Write a store-only zip archive into ``dest``.

    Entries are written in input order. Empty and duplicate names are allowed.

    Args:
        names: Entry names; str is encoded as ASCII, or UTF-8 with flag bit 11.
        payloads: Entry contents, one per name.
        dest: Writable destination buffer.
        capacity: Usable bytes of ``dest`` (default: all of it).
        date_time: (year, month, day, hour, minute, second) stamped on every
            entry (default: local time now).

    Returns:
        Number of bytes written.

    Raises:
        InsufficientSpaceError: As soon as a write would exceed capacity. The
            content of ``dest`` is then unspecified.
        ValueError: If names and payloads differ in length, capacity exceeds dest,
            or a name, payload, entry count or offset overflows its header field.
    """
    entries = _prepare(names, payloads)
    out = byte_view(dest)
    if out.readonly:
        raise TypeError("Destination buffer is read-only.")
    cursor = ByteCursor(out, capacity)
    dosdate, dostime = _dos_date_time(date_time)

    pos = 0
    try:
        for entry in entries:
            entry.offset = pos
            pos = _write_local_file_header(cursor, pos, entry, dosdate, dostime)
            pos = cursor.write_bytes(pos, entry.payload)
        cd_offset = pos
        for entry in entries:
            pos = _write_cdir_file_header(cursor, pos, entry, dosdate, dostime)
        pos = _write_cdend(cursor, pos, len(entries), pos - cd_offset, cd_offset)
    except CursorBoundsError as e:
        raise InsufficientSpaceError(
            f"Archive of {len(entries)} entries does not fit in {len(cursor)} bytes."
        ) from e
    logger.debug("Created archive of %d bytes with %d entries", pos, len(entries))
    return pos


def archive_size(names: Sequence[Name], payloads: Sequence[Buffer]) -> int:
    """
    Returns:
        Exact number of bytes :func:`create` writes for these entries.
    """
    if len(names) != len(payloads):
        raise ValueError(f"Got {len(names)} names for {len(payloads)} payloads.")
    total = consts.CD_END_STRUCT.size
    for name, payload in zip(names, payloads):
        fname_len = len(_encode_name(name)[0])
        total += consts.LF_STRUCT.size + consts.CDLF_STRUCT.size + 2 * fname_len
        total += byte_view(payload).nbytes
    return total


def build(names: Sequence[Name], payloads: Sequence[Buffer],
          date_time: Optional[DateTime] = None) -> bytes:
    """
    Returns:
        A new store-only archive holding the given entries.
    """
    out = bytearray(archive_size(names, payloads))
    written = create(names, payloads, out, date_time=date_time)
    return bytes(out[:written])
