import struct
from typing import Dict, NamedTuple

# zip constants
ZIP32_VERSION: int = 20
SYSTEM_UNIX: int = 0x03
MAX_COMMENT_LEN: int = 0xffff
ZIP16_LIMIT: int = 0xffff       # largest name length and entry count
ZIP32_LIMIT: int = 0xffffffff   # largest size and offset

# general purpose bit flags
ENCRYPTED_FLAG: int = 0x001
DATA_DESCRIPTOR_FLAG: int = 0x008
UTF8_FLAG: int = 0x800   # utf-8 filename encoding flag

# zip compression methods
COMPRESSION_STORE: int = 0
COMPRESSION_DEFLATE: int = 8
METHOD_NAMES: Dict[int, str] = {
    COMPRESSION_STORE: "stored",
    1: "shrunk",
    6: "imploded",
    COMPRESSION_DEFLATE: "deflated",
    9: "deflate64",
    12: "bzip2",
    14: "lzma",
    93: "zstd",
    95: "xz",
}

# local file header
LF_STRUCT: struct.Struct = struct.Struct(b"<4sHHHHHLLLHH")
class FileHeader(NamedTuple):
    signature: bytes
    version: int
    flags: int
    compression: int
    mod_time: int
    mod_date: int
    crc: int
    comp_size: int
    uncomp_size: int
    fname_len: int
    extra_len: int
LF_TUPLE = FileHeader
LF_MAGIC: bytes = b'\x50\x4b\x03\x04'

# central directory file header
# Note: version and system fields represent "version made by"
CDLF_STRUCT: struct.Struct = struct.Struct(b"<4sBBHHHHHLLLHHHHHLL")
class CdFileHeader(NamedTuple):
    signature: bytes
    version: int    # low-order byte of 'version made by'
    system: int     # high-order byte (host OS)
    version_ndd: int
    flags: int
    compression: int
    mod_time: int
    mod_date: int
    crc: int
    comp_size: int
    uncomp_size: int
    fname_len: int
    extra_len: int
    fcomm_len: int
    disk_start: int
    attrs_int: int
    attrs_ext: int
    offset: int
CDLF_TUPLE = CdFileHeader
CDFH_MAGIC: bytes = b'\x50\x4b\x01\x02'

# end of central directory record
CD_END_STRUCT: struct.Struct = struct.Struct(b"<4sHHHHLLH")
class CdEnd(NamedTuple):
    signature: bytes
    disk_num: int
    disk_cdstart: int
    disk_entries: int
    total_entries: int
    cd_size: int
    cd_offset: int
    comment_len: int
CD_END_TUPLE = CdEnd
CD_END_MAGIC: bytes = b'\x50\x4b\x05\x06'
