#
# ZIP archive reading over caller-owned memory
# based on official ZIP File Format Specification version 6.3.4
# https://pkware.cachefly.net/webdocs/casestudies/APPNOTE.TXT
#
import logging
from typing import Iterator, List, Mapping, NamedTuple, Optional, Tuple, Union

from . import consts
from .codecs import DEFAULT_CODECS, Codec, crc32
from .cursor import Buffer, ByteCursor, byte_view
from .errors import (
    CursorBoundsError,
    InsufficientSpaceError,
    InvalidArchiveError,
    UnsupportedCompressionError,
)

__all__ = ("ZipArchive", "ZipEntry", "open", "extract", "verify",
           "locate_eocd", "parse_central_directory")

logger = logging.getLogger(__name__)


class ZipEntry(NamedTuple):
    """
    One central-directory record.

    The name is not copied; ``name_offset`` and ``name_length`` locate it in
    the archive buffer. The payload is found through ``header_offset``.
    """
    archive: "ZipArchive"
    position: int
    name_offset: int
    name_length: int
    flags: int
    method: int
    crc: int
    compressed_size: int
    size: int
    header_offset: int
    mod_time: int
    mod_date: int

    @property
    def name(self) -> bytes:
        return bytes(self.name_view)

    @property
    def name_view(self) -> memoryview:
        return self.archive._cursor.read_bytes(self.name_offset, self.name_length)

    @property
    def filename(self) -> str:
        """Name decoded as UTF-8 when flag bit 11 is set, cp437 otherwise."""
        if self.flags & consts.UTF8_FLAG:
            return self.name.decode("utf-8", errors="replace")
        return self.name.decode("cp437")

    @property
    def is_compressed(self) -> bool:
        return self.method != consts.COMPRESSION_STORE

    def extract(self, dest: Buffer, capacity: Optional[int] = None) -> int:
        return extract(self, dest, capacity)

    def read(self) -> bytes:
        """
        Returns:
            Decoded payload in a newly allocated bytes object.
        """
        out = bytearray(self.size)
        extract(self, out)
        return bytes(out)

    def verify(self, data: Buffer) -> bool:
        return verify(self, data)

    def __repr__(self) -> str:
        return (f"<ZipEntry {self.name!r} method={self.method} "
                f"size={self.size} compressed={self.compressed_size}>")


def locate_eocd(cursor: ByteCursor) -> Tuple[int, consts.CdEnd]:
    """
    Find and validate the end of central directory record.

    The trailing ``22 + 65535`` bytes are scanned from the end towards the
    start, and the signature closest to the end wins.

    Args:
        cursor: Cursor over the whole archive.

    Returns:
        Offset of the record and its parsed fields.

    Raises:
        InvalidArchiveError: If no usable record is found.
    """
    size = len(cursor)
    last = size - consts.CD_END_STRUCT.size
    if last < 0:
        raise InvalidArchiveError(f"Buffer of {size} bytes is too short for a zip archive.")
    offset = cursor.find_last(consts.CD_END_MAGIC, last - consts.MAX_COMMENT_LEN, last)
    if offset < 0:
        raise InvalidArchiveError("End of central directory signature not found.")

    cdend = consts.CD_END_TUPLE(*cursor.read_struct(consts.CD_END_STRUCT, offset))
    if cdend.disk_num != 0 or cdend.disk_cdstart != 0:
        raise InvalidArchiveError("Multi-disk archives are not supported.")
    if cdend.disk_entries != cdend.total_entries:
        raise InvalidArchiveError(
            f"Entry count on disk ({cdend.disk_entries}) differs from total ({cdend.total_entries})."
        )
    if not cursor.fits(offset + consts.CD_END_STRUCT.size, cdend.comment_len):
        raise InvalidArchiveError("Archive comment runs past the end of the buffer.")
    if cdend.cd_offset + cdend.cd_size > offset:
        raise InvalidArchiveError("Central directory overlaps the end record.")
    return offset, cdend


def parse_central_directory(archive: "ZipArchive", cd_offset: int, cd_size: int,
                            count: int) -> Tuple[ZipEntry, ...]:
    """
    Walk ``count`` central-directory records inside ``[cd_offset, cd_offset + cd_size)``.

    Local file headers are not consulted; they are checked at extraction.

    Args:
        archive: Archive the entries belong to.
        cd_offset: Start of the central directory.
        cd_size: Declared size of the central directory.
        count: Declared number of records.

    Returns:
        Entries in on-disk order.

    Raises:
        InvalidArchiveError: On a bad signature, a record crossing the
            directory end, a payload outside the buffer, or a count/size mismatch.
    """
    # records are confined to the declared directory region
    cd = ByteCursor(archive._cursor.view, cd_offset + cd_size)
    buffer_size = len(archive._cursor)
    entries: List[ZipEntry] = []
    pos = cd_offset
    for index in range(count):
        try:
            head = consts.CDLF_TUPLE(*cd.read_struct(consts.CDLF_STRUCT, pos))
        except CursorBoundsError as e:
            raise InvalidArchiveError(f"Central directory record {index} is truncated.") from e
        if head.signature != consts.CDFH_MAGIC:
            raise InvalidArchiveError(f"Bad central directory signature in record {index}.")
        name_offset = pos + consts.CDLF_STRUCT.size
        var_len = head.fname_len + head.extra_len + head.fcomm_len
        if not cd.fits(name_offset, var_len):
            raise InvalidArchiveError(
                f"Central directory record {index} runs past the directory end."
            )

        payload_start = (head.offset + consts.LF_STRUCT.size
                         + head.fname_len + head.extra_len)
        if payload_start + head.comp_size > buffer_size:
            raise InvalidArchiveError(f"Payload of record {index} lies outside the archive.")

        entries.append(ZipEntry(
            archive=archive,
            position=index,
            name_offset=name_offset,
            name_length=head.fname_len,
            flags=head.flags,
            method=head.compression,
            crc=head.crc,
            compressed_size=head.comp_size,
            size=head.uncomp_size,
            header_offset=head.offset,
            mod_time=head.mod_time,
            mod_date=head.mod_date,
        ))
        pos = name_offset + var_len

    if pos != cd_offset + cd_size:
        raise InvalidArchiveError(
            f"Central directory holds {pos - cd_offset} bytes for {count} records, "
            f"end record declares {cd_size}."
        )
    return tuple(entries)


class ZipArchive:
    """
    Read-only view of a zip archive held in a caller-owned buffer.

    The buffer is never copied. It must not be mutated while the archive is
    in use; :meth:`close` drops the entry table and releases the view.

    Args:
        buffer: Archive bytes (bytes, bytearray, memoryview, ...).
        codecs: Mapping of compression method to Codec (default: store and deflate).

    Raises:
        InvalidArchiveError: If the buffer is None or not a well-formed archive.
    """

    def __init__(self, buffer: Optional[Buffer],
                 codecs: Optional[Mapping[int, Codec]] = None) -> None:
        if buffer is None:
            raise InvalidArchiveError("No archive buffer given.")
        self.codecs = DEFAULT_CODECS if codecs is None else codecs
        self._cursor = ByteCursor(byte_view(buffer).toreadonly())
        try:
            self._eocd_offset, cdend = locate_eocd(self._cursor)
            self._cdend = cdend
            self._entries = parse_central_directory(
                self, cdend.cd_offset, cdend.cd_size, cdend.total_entries
            )
        except InvalidArchiveError as e:
            logger.debug("Rejected archive of %d bytes: %s", len(self._cursor), e)
            self._cursor.view.release()
            raise
        self.closed = False
        logger.debug("Opened archive of %d bytes with %d entries",
                     len(self._cursor), len(self._entries))

    def __enter__(self) -> "ZipArchive":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[ZipEntry]:
        return iter(self.entries)

    def __getitem__(self, index: int) -> ZipEntry:
        return self.entries[index]

    def __repr__(self) -> str:
        if self.closed:
            return "<ZipArchive closed>"
        return f"<ZipArchive {len(self._cursor)} bytes, {len(self._entries)} entries>"

    def _check_open(self) -> None:
        if self.closed:
            raise ValueError("Operation on a closed archive.")

    def close(self) -> None:
        """Release the entry table and the buffer view. The buffer itself is untouched."""
        if self.closed:
            return
        self.closed = True
        self._entries = ()
        self._cursor.view.release()

    @property
    def entries(self) -> Tuple[ZipEntry, ...]:
        self._check_open()
        return self._entries

    @property
    def comment(self) -> bytes:
        self._check_open()
        start = self._eocd_offset + consts.CD_END_STRUCT.size
        return bytes(self._cursor.read_bytes(start, self._cdend.comment_len))

    def find(self, name: Union[str, bytes]) -> Optional[ZipEntry]:
        """
        Find the first entry whose name equals ``name`` byte for byte.

        Args:
            name: Entry name; str is UTF-8 encoded before comparison.

        Returns:
            The entry, or None if absent.
        """
        if isinstance(name, str):
            name = name.encode("utf-8")
        for entry in self.entries:
            if entry.name_length == len(name) and entry.name_view == name:
                return entry
        return None

    def list(self) -> List[Tuple[bytes, int]]:
        """
        Returns:
            (name, uncompressed size) for every entry, in directory order.
        """
        return [(entry.name, entry.size) for entry in self.entries]

    def namelist(self) -> List[str]:
        return [entry.filename for entry in self.entries]

    def extract(self, entry: Union[ZipEntry, str, bytes], dest: Buffer,
                capacity: Optional[int] = None) -> int:
        """
        Extract an entry, given directly or by name, into ``dest``.

        Raises:
            KeyError: If a name is given and no entry has it.
        """
        if not isinstance(entry, ZipEntry):
            found = self.find(entry)
            if found is None:
                raise KeyError(entry)
            entry = found
        return extract(entry, dest, capacity)

    def read(self, name: Union[str, bytes]) -> bytes:
        entry = self.find(name)
        if entry is None:
            raise KeyError(name)
        return entry.read()

    def test(self) -> Optional[str]:
        """
        Extract every entry and check its CRC-32.

        Entries that are encrypted or use a method without a codec cannot be
        checked and are skipped.

        Returns:
            Name of the first entry whose checksum disagrees, or None.

        Raises:
            InvalidArchiveError: If an entry's headers or payload are malformed.
        """
        for entry in self.entries:
            if entry.flags & consts.ENCRYPTED_FLAG or entry.method not in self.codecs:
                logger.debug("Skipping %r: no codec for method %d", entry.name, entry.method)
                continue
            out = bytearray(entry.size)
            extract(entry, out)
            if not verify(entry, out):
                logger.debug("CRC mismatch in %r", entry.name)
                return entry.filename
        return None


def open(buffer: Optional[Buffer], codecs: Optional[Mapping[int, Codec]] = None) -> ZipArchive:
    """
    Open an archive held in ``buffer``.

    Raises:
        InvalidArchiveError: If the buffer is None or malformed.
    """
    return ZipArchive(buffer, codecs)


def extract(entry: ZipEntry, dest: Buffer, capacity: Optional[int] = None) -> int:
    """
    Decode an entry's payload into ``dest``.

    The local file header is checked against the central-directory record
    before any output is produced. CRC-32 is not checked; see :func:`verify`.

    Args:
        entry: Entry of an open archive.
        dest: Writable buffer.
        capacity: Usable bytes of ``dest`` (default: all of it).

    Returns:
        Number of bytes written (always ``entry.size``).

    Raises:
        InvalidArchiveError: If local and central metadata disagree or the payload is corrupt.
        InsufficientSpaceError: If capacity is below the entry's size.
        UnsupportedCompressionError: If no codec handles the entry's method.
        ValueError: If capacity exceeds the destination or the archive is closed.
    """
    archive = entry.archive
    archive._check_open()
    out = byte_view(dest)
    if out.readonly:
        raise TypeError("Destination buffer is read-only.")
    if capacity is None:
        capacity = out.nbytes
    if capacity < 0 or capacity > out.nbytes:
        raise ValueError(f"Capacity {capacity} outside destination of {out.nbytes} bytes.")

    cursor = archive._cursor
    try:
        local = consts.LF_TUPLE(*cursor.read_struct(consts.LF_STRUCT, entry.header_offset))
    except CursorBoundsError as e:
        raise InvalidArchiveError(f"Local header of {entry.name!r} is truncated.") from e
    if local.signature != consts.LF_MAGIC:
        raise InvalidArchiveError(f"Bad local header signature for {entry.name!r}.")
    if local.compression != entry.method:
        raise InvalidArchiveError(f"Local and central compression methods differ for {entry.name!r}.")
    if not local.flags & consts.DATA_DESCRIPTOR_FLAG:
        if (local.crc, local.comp_size, local.uncomp_size) != (entry.crc, entry.compressed_size, entry.size):
            raise InvalidArchiveError(f"Local and central sizes differ for {entry.name!r}.")

    data_offset = (entry.header_offset + consts.LF_STRUCT.size
                   + local.fname_len + local.extra_len)
    try:
        src = cursor.read_bytes(data_offset, entry.compressed_size)
    except CursorBoundsError as e:
        raise InvalidArchiveError(f"Payload of {entry.name!r} runs past the archive end.") from e

    if entry.flags & consts.ENCRYPTED_FLAG:
        raise UnsupportedCompressionError(f"Entry {entry.name!r} is encrypted.")
    codec = archive.codecs.get(entry.method)
    if codec is None:
        raise UnsupportedCompressionError(
            f"Unsupported compression method {entry.method} for {entry.name!r}."
        )
    if capacity < entry.size:
        raise InsufficientSpaceError(
            f"Entry {entry.name!r} needs {entry.size} bytes, destination holds {capacity}."
        )

    try:
        written = codec.decode(src, out[:entry.size])
    except InsufficientSpaceError as e:
        # output is bounded by the declared size, so overflow means bad metadata
        raise InvalidArchiveError(f"Payload of {entry.name!r} exceeds its declared size.") from e
    if written != entry.size:
        raise InvalidArchiveError(
            f"Payload of {entry.name!r} decoded to {written} bytes, {entry.size} declared."
        )
    return written


def verify(entry: ZipEntry, data: Buffer) -> bool:
    """
    Returns:
        True if ``data`` has the entry's size and CRC-32.
    """
    view = byte_view(data)
    return view.nbytes == entry.size and crc32(view) == entry.crc
