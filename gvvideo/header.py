"""
GV container header and trailing frame index.

Layout (little-endian):

    offset 0   width        u32
    offset 4   height       u32
    offset 8   frame_count  u32
    offset 12  fps          f32
    offset 16  format       u32
    offset 20  frame_bytes  u32   (advisory)
    offset 24  frame payloads, addressed only through the index
    footer     frame_count x {address: u64, size: u64}

The index sits in the last ``frame_count * 16`` bytes of the file, so it
can be located from the header alone without a separate offset field.
"""

import io
import logging
from struct import Struct
from typing import BinaryIO, NamedTuple, Optional, Tuple

from .errors import CorruptHeaderError, CorruptIndexError, GVIOError, TruncatedError


logger = logging.getLogger(__name__)

HEADER_STRUCT = Struct('<IIIfII')
HEADER_SIZE = HEADER_STRUCT.size  # 24
BLOCK_STRUCT = Struct('<QQ')
BLOCK_SIZE = BLOCK_STRUCT.size  # 16


class GVHeader(NamedTuple):
    """Fixed 24-byte header at the start of a GV file."""
    width: int
    height: int
    frame_count: int
    fps: float
    format: int
    frame_bytes: int

    @property
    def uncompressed_frame_size(self) -> int:
        """Size of one decompressed frame, always ``width * height * 4``."""
        return self.width * self.height * 4

    @property
    def frame_duration_ms(self) -> Optional[float]:
        if not self.fps > 0:  # also catches NaN
            return None
        return 1000.0 / self.fps

    @property
    def duration_seconds(self) -> Optional[float]:
        if not self.fps > 0:
            return None
        return self.frame_count / self.fps


class GVAddressSizeBlock(NamedTuple):
    """Location of one compressed frame payload."""
    address: int
    size: int

    @property
    def end(self) -> int:
        return self.address + self.size


def read_exact(fp: BinaryIO, size: int, what: str) -> bytes:
    """
    Read exactly ``size`` bytes from ``fp``.

    Args:
        fp: Binary stream positioned at the data
        size: Number of bytes required
        what: Description used in error messages

    Returns:
        The bytes read

    Raises:
        TruncatedError: If the stream ends early
        GVIOError: If the underlying read fails
    """
    chunks = []
    remaining = size
    try:
        while remaining > 0:
            chunk = fp.read(remaining)
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
    except OSError as e:
        raise GVIOError(f'Failed to read {what}: {e}') from e

    data = b''.join(chunks)
    if len(data) < size:
        raise TruncatedError(f'{what}: expected {size} bytes, got {len(data)}')
    return data


def read_header(fp: BinaryIO) -> GVHeader:
    """
    Parse the 24-byte GV header from the current stream position.

    Raises:
        TruncatedError: If fewer than 24 bytes are available
        GVIOError: If the underlying read fails
        CorruptHeaderError: If width or height is zero
    """
    header = GVHeader(*HEADER_STRUCT.unpack(read_exact(fp, HEADER_SIZE, 'header')))
    if header.width == 0 or header.height == 0:
        raise CorruptHeaderError(f'Invalid dimensions: {header.width}x{header.height}')
    return header


def read_address_size_blocks(fp: BinaryIO, frame_count: int) -> Tuple[GVAddressSizeBlock, ...]:
    """
    Locate and parse the trailing frame index.

    The footer starts ``frame_count * 16`` bytes before the end of the
    stream and may not overlap the header.

    Args:
        fp: Seekable binary stream
        frame_count: Number of frames declared by the header

    Returns:
        Tuple of blocks, entry ``i`` describing frame ``i``

    Raises:
        CorruptIndexError: If the footer or any entry lies outside the file
        TruncatedError: If the footer cannot be read completely
        GVIOError: If seeking or reading fails
    """
    try:
        file_length = fp.seek(0, io.SEEK_END)
    except OSError as e:
        raise GVIOError(f'Failed to seek to end of stream: {e}') from e

    footer_start = file_length - frame_count * BLOCK_SIZE
    if footer_start < HEADER_SIZE:
        raise CorruptIndexError(
            f'Index for {frame_count} frames does not fit in a {file_length}-byte file '
            f'(footer would start at {footer_start})'
        )

    try:
        fp.seek(footer_start, io.SEEK_SET)
    except OSError as e:
        raise GVIOError(f'Failed to seek to index at {footer_start}: {e}') from e

    raw = read_exact(fp, frame_count * BLOCK_SIZE, 'frame index')
    blocks = tuple(GVAddressSizeBlock(*entry) for entry in BLOCK_STRUCT.iter_unpack(raw))

    for frame_id, block in enumerate(blocks):
        if block.end > footer_start:
            raise CorruptIndexError(
                f'Frame {frame_id} payload [{block.address}, {block.end}) '
                f'overruns the index at {footer_start}'
            )

    logger.debug('Parsed %d index entries at offset %d', len(blocks), footer_start)
    return blocks
