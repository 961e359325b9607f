import struct
from typing import Optional, Tuple, Union

from .errors import CursorBoundsError

__all__ = ("ByteCursor", "byte_view")

U16_STRUCT: struct.Struct = struct.Struct(b"<H")
U32_STRUCT: struct.Struct = struct.Struct(b"<L")

Buffer = Union[bytes, bytearray, memoryview]


def byte_view(buffer: Buffer) -> memoryview:
    """
    Returns:
        A flat unsigned-byte memoryview over ``buffer`` (no copy).
    """
    view = buffer if isinstance(buffer, memoryview) else memoryview(buffer)
    if view.ndim != 1 or view.format != 'B':
        view = view.cast('B')
    return view


class ByteCursor:
    """
    Bounds-checked little-endian access to a borrowed buffer.

    Every read or write is checked against ``limit`` before it happens;
    an access that would end past the limit raises CursorBoundsError and
    leaves the buffer untouched.

    Args:
        buffer: Object supporting the buffer protocol. Not copied.
        limit: Upper bound for accesses (default: buffer length). May be
            lower than the buffer length, never higher.

    Raises:
        ValueError: If limit is negative or exceeds the buffer length.
    """

    def __init__(self, buffer: Buffer, limit: Optional[int] = None) -> None:
        view = byte_view(buffer)
        if limit is None:
            limit = view.nbytes
        if limit < 0 or limit > view.nbytes:
            raise ValueError(f"Cursor limit {limit} outside buffer of {view.nbytes} bytes.")
        self.view = view
        self.limit = limit

    def __len__(self) -> int:
        return self.limit

    def _check(self, offset: int, width: int) -> None:
        if offset < 0 or width < 0 or offset + width > self.limit:
            raise CursorBoundsError(
                f"Access of {width} bytes at offset {offset} exceeds limit {self.limit}."
            )

    def fits(self, offset: int, width: int) -> bool:
        """
        Returns:
            True if ``width`` bytes at ``offset`` lie inside the limit.
        """
        return offset >= 0 and width >= 0 and offset + width <= self.limit

    def read_u16(self, offset: int) -> int:
        self._check(offset, 2)
        return U16_STRUCT.unpack_from(self.view, offset)[0]

    def read_u32(self, offset: int) -> int:
        self._check(offset, 4)
        return U32_STRUCT.unpack_from(self.view, offset)[0]

    def read_bytes(self, offset: int, length: int) -> memoryview:
        """
        Returns:
            A zero-copy view of ``length`` bytes starting at ``offset``.
        """
        self._check(offset, length)
        return self.view[offset:offset + length]

    def read_struct(self, layout: struct.Struct, offset: int) -> Tuple:
        self._check(offset, layout.size)
        return layout.unpack_from(self.view, offset)

    def write_u16(self, offset: int, value: int) -> int:
        self._check(offset, 2)
        U16_STRUCT.pack_into(self.view, offset, value)
        return offset + 2

    def write_u32(self, offset: int, value: int) -> int:
        self._check(offset, 4)
        U32_STRUCT.pack_into(self.view, offset, value)
        return offset + 4

    def write_bytes(self, offset: int, data: Buffer) -> int:
        """
        Copy ``data`` to ``offset``.

        Returns:
            Offset just past the written bytes.
        """
        data = byte_view(data)
        length = data.nbytes
        self._check(offset, length)
        self.view[offset:offset + length] = data
        return offset + length

    def write_struct(self, layout: struct.Struct, offset: int, *fields) -> int:
        self._check(offset, layout.size)
        layout.pack_into(self.view, offset, *fields)
        return offset + layout.size

    def find_last(self, signature: bytes, start: int, stop: int) -> int:
        """
        Find the highest offset in ``[start, stop]`` where ``signature`` begins.

        The signature must fit entirely below the limit.

        Returns:
            The offset, or -1 if there is no occurrence.
        """
        start = max(start, 0)
        end = min(stop + len(signature), self.limit)
        if start >= end:
            return -1
        found = bytes(self.view[start:end]).rfind(signature)
        return -1 if found < 0 else start + found
