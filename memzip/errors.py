import enum


class Status(enum.Enum):
    """
    Outcome codes for archive operations.

    Every failing operation raises a :class:`MemZipError` subclass whose
    ``status`` attribute holds one of the failure members.
    """
    OK = "ok"
    INVALID_ARCHIVE = "invalid_archive"
    INSUFFICIENT_SPACE = "insufficient_output_space"
    UNSUPPORTED_METHOD = "unsupported_compression_method"


# Define custom exceptions
class MemZipError(Exception):
    """Base class for exceptions in memzip."""
    status: Status = Status.INVALID_ARCHIVE

class InvalidArchiveError(MemZipError):
    """Raised when the buffer does not hold a well-formed archive."""
    status = Status.INVALID_ARCHIVE

class InsufficientSpaceError(MemZipError):
    """Raised when a destination buffer is too small for the output."""
    status = Status.INSUFFICIENT_SPACE

class UnsupportedCompressionError(MemZipError):
    """Raised when an entry uses a compression method with no codec."""
    status = Status.UNSUPPORTED_METHOD

class CursorBoundsError(MemZipError):
    """Raised by ByteCursor when an access would cross its limit."""
