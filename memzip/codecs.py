import zlib
from typing import Dict, Mapping

from . import consts
from .errors import InsufficientSpaceError, InvalidArchiveError

__all__ = ("Codec", "StoreCodec", "DeflateCodec", "DEFAULT_CODECS", "crc32")


def crc32(data, crc: int = 0) -> int:
    """
    Returns:
        Unsigned CRC-32 of ``data``, continuing from ``crc``.
    """
    return zlib.crc32(data, crc) & 0xffffffff


class Codec:
    """
    Payload decoder for one compression method.

    Subclasses implement :meth:`decode`. A codec writes only into ``dest``
    and reports failures by raising:

    * InsufficientSpaceError if the decoded payload does not fit in ``dest``;
    * InvalidArchiveError if ``src`` is not a valid stream for the method.
    """

    method: int = -1

    def decode(self, src: memoryview, dest: memoryview) -> int:
        """
        Decode ``src`` into the start of ``dest``.

        Returns:
            Number of bytes written to ``dest``.
        """
        raise NotImplementedError


class StoreCodec(Codec):
    """Method 0: payload stored verbatim."""

    method = consts.COMPRESSION_STORE

    def decode(self, src: memoryview, dest: memoryview) -> int:
        size = src.nbytes
        if size > dest.nbytes:
            raise InsufficientSpaceError(
                f"Stored payload of {size} bytes does not fit in {dest.nbytes} bytes."
            )
        dest[:size] = src
        return size


class DeflateCodec(Codec):
    """
    Method 8: raw deflate stream, decoded with zlib.

    Decoding stops one byte past the destination capacity, so an oversized
    stream is detected without inflating all of it. Payloads written with a
    zlib header and Adler-32 trailer (as ``zlib.compress`` or miniz's
    ``mz_compress`` produce) are accepted as well.
    """

    method = consts.COMPRESSION_DEFLATE

    @staticmethod
    def has_zlib_header(src: memoryview) -> bool:
        """
        Returns:
            True if ``src`` starts with a deflate zlib header without preset dictionary.
        """
        if src.nbytes < 2:
            return False
        cmf, flg = src[0], src[1]
        return (cmf & 0x0f == 8 and cmf >> 4 <= 7 and not flg & 0x20
                and ((cmf << 8) | flg) % 31 == 0)

    def decode(self, src: memoryview, dest: memoryview) -> int:
        capacity = dest.nbytes
        dobj = zlib.decompressobj(15 if self.has_zlib_header(src) else -15)
        try:
            chunk = dobj.decompress(src, capacity + 1)
        except zlib.error as e:
            raise InvalidArchiveError(f"Corrupt deflate stream: {e}") from e
        if len(chunk) > capacity:
            raise InsufficientSpaceError(
                f"Inflated payload exceeds {capacity} bytes."
            )
        if not dobj.eof:
            raise InvalidArchiveError("Truncated deflate stream.")
        dest[:len(chunk)] = chunk
        return len(chunk)


DEFAULT_CODECS: Mapping[int, Codec] = {
    consts.COMPRESSION_STORE: StoreCodec(),
    consts.COMPRESSION_DEFLATE: DeflateCodec(),
}


def store_only() -> Dict[int, Codec]:
    """
    Returns:
        A codec registry without deflate support.
    """
    return {consts.COMPRESSION_STORE: StoreCodec()}
