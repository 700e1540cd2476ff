"""gvvideo package entrypoints."""

from .codecs import (
    BlockDecompressor,
    GVFormat,
    LZ4BlockDecompressor,
    PillowDXTDecoder,
    TextureDecoder,
    fourcc_for_format,
    lz4_block_content_size,
    normalize_to_rgba,
)
from .errors import (
    BufferTooSmallError,
    CorruptHeaderError,
    CorruptIndexError,
    DecodeFailedError,
    DecompressionFailedError,
    GVError,
    GVIOError,
    OutOfRangeError,
    TruncatedError,
    UnexpectedPixelLayoutError,
    UnsupportedFormatError,
)
from .header import GVAddressSizeBlock, GVHeader, read_address_size_blocks, read_header
from .video import GVVideo, load_gv_video

__all__ = [
    'GVVideo', 'load_gv_video',
    'GVHeader', 'GVAddressSizeBlock', 'read_header', 'read_address_size_blocks',
    'GVFormat', 'fourcc_for_format', 'normalize_to_rgba',
    'BlockDecompressor', 'LZ4BlockDecompressor', 'lz4_block_content_size', 'TextureDecoder', 'PillowDXTDecoder',
    'GVError', 'GVIOError', 'TruncatedError', 'CorruptHeaderError', 'CorruptIndexError',
    'OutOfRangeError', 'BufferTooSmallError', 'UnsupportedFormatError',
    'DecompressionFailedError', 'DecodeFailedError', 'UnexpectedPixelLayoutError',
]
