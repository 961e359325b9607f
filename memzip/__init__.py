from . import consts
from .codecs import Codec, DeflateCodec, StoreCodec, DEFAULT_CODECS, crc32, store_only
from .errors import (
    Status,
    MemZipError,
    InvalidArchiveError,
    InsufficientSpaceError,
    UnsupportedCompressionError,
)
from .reader import ZipArchive, ZipEntry, open, extract, verify
from .writer import create, build, archive_size
from .aiozip import AioZipArchive, save_archive

version = "0.1"

__all__ = (
    "ZipArchive", "ZipEntry", "open", "extract", "verify",
    "create", "build", "archive_size",
    "Codec", "StoreCodec", "DeflateCodec", "DEFAULT_CODECS", "crc32", "store_only",
    "Status", "MemZipError", "InvalidArchiveError", "InsufficientSpaceError",
    "UnsupportedCompressionError",
    "AioZipArchive", "save_archive",
    "version",
)
