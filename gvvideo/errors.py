"""
Exception hierarchy for GV container reading and frame decoding.

Every failure is raised to the caller; nothing is retried internally.
"""


class GVError(Exception):
    """Base class for all GV reader errors."""
    pass


class GVIOError(GVError, OSError):
    """Underlying read or seek on the byte source failed."""
    pass


class TruncatedError(GVError):
    """Fewer bytes were available than a structural read requires."""
    pass


class CorruptHeaderError(GVError):
    """Header fields violate the container invariants (e.g. zero width)."""
    pass


class CorruptIndexError(GVError):
    """Footer location or an index entry lies outside the file."""
    pass


class OutOfRangeError(GVError, IndexError):
    """Requested frame id is not below the frame count."""
    pass


class BufferTooSmallError(GVError, ValueError):
    """Caller-supplied buffer is smaller than the required size."""
    pass


class UnsupportedFormatError(GVError):
    """Header format tag is not a known codec tag."""
    pass


class DecompressionFailedError(GVError):
    """Block decompression failed or overflowed the frame size."""
    pass


class DecodeFailedError(GVError):
    """Texture decoder rejected the data for the declared tag/dimensions."""
    pass


class UnexpectedPixelLayoutError(GVError):
    """Texture decoder produced a pixel layout that cannot be normalized."""
    pass
