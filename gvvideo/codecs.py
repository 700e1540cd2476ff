"""
Decode stages used by the GV reader.

Two narrow interfaces sit between the container logic and the native
libraries that do the heavy lifting:

- BlockDecompressor: expands one compressed frame payload into at most
  a known capacity (LZ4 block format via the ``lz4`` package).
- TextureDecoder: turns a DXT-compressed texture into a Pillow image
  (Pillow's built-in ``bcn`` decoder).

Any implementation honouring the same contracts can be passed to GVVideo.
"""

from enum import Enum
from typing import Optional, Union

import lz4.block
import numpy as np
from PIL import Image

from .errors import (
    DecodeFailedError,
    DecompressionFailedError,
    UnexpectedPixelLayoutError,
    UnsupportedFormatError,
)


BytesLike = Union[bytes, bytearray, memoryview]


class GVFormat(Enum):
    DXT1 = 1  # no alpha
    DXT3 = 3  # explicit (sharp) alpha
    DXT5 = 5  # interpolated alpha


FOURCC_BY_FORMAT = {
    GVFormat.DXT1: 'DXT1',
    GVFormat.DXT3: 'DXT3',
    GVFormat.DXT5: 'DXT5',
}


def fourcc_for_format(value: int) -> str:
    """
    Map a header format tag to the FourCC understood by texture decoders.

    Raises:
        UnsupportedFormatError: If the tag is not a known GV format
    """
    try:
        return FOURCC_BY_FORMAT[GVFormat(value)]
    except ValueError as e:
        raise UnsupportedFormatError(f'Unsupported GV format: {value}') from e


class BlockDecompressor(object):
    def decompress(self, data: BytesLike, capacity: int, size_hint: Optional[int] = None) -> bytes:
        """
        Expand one compressed block into at most ``capacity`` bytes.

        Args:
            data: Compressed block
            capacity: Largest acceptable output size
            size_hint: Likely output size; may be stale and must be verified

        Returns:
            The decompressed bytes (possibly shorter than capacity)

        Raises:
            DecompressionFailedError: On corrupt input or output above capacity
        """
        raise NotImplementedError('Not implemented!')


def lz4_block_content_size(data: BytesLike) -> int:
    """
    Walk the sequence headers of a raw LZ4 block and total its output size.

    Only token, length and offset fields are read; no data is copied.

    Raises:
        DecompressionFailedError: If a length or offset field runs past the block
    """
    src = memoryview(data).cast('B')
    end = len(src)
    pos = 0
    total = 0
    while pos < end:
        token = src[pos]
        pos += 1

        literals = token >> 4
        if literals == 15:
            while True:
                if pos >= end:
                    raise DecompressionFailedError('LZ4 block ends inside a literal length')
                extra = src[pos]
                pos += 1
                literals += extra
                if extra != 255:
                    break
        pos += literals
        total += literals
        if pos == end:
            return total  # last sequence carries literals only
        if pos + 2 > end:
            raise DecompressionFailedError('LZ4 block ends inside a sequence')
        pos += 2  # match offset

        match = token & 0x0F
        if match == 15:
            while True:
                if pos >= end:
                    raise DecompressionFailedError('LZ4 block ends inside a match length')
                extra = src[pos]
                pos += 1
                match += extra
                if extra != 255:
                    break
        total += match + 4
    raise DecompressionFailedError('LZ4 block does not end with a literal run')


class LZ4BlockDecompressor(BlockDecompressor):
    """
    Raw LZ4 block decompression (no frame header, no stored size).

    lz4.block.decompress needs the exact output size. The hint and the
    capacity are tried first; otherwise the size is read off the block's
    sequence headers.
    """

    def _decompress_exact(self, data: BytesLike, size: int) -> Optional[bytes]:
        try:
            return lz4.block.decompress(data, uncompressed_size=size)
        except lz4.block.LZ4BlockError:
            return None

    def decompress(self, data: BytesLike, capacity: int, size_hint: Optional[int] = None) -> bytes:
        for size in (size_hint, capacity):
            if size and 0 < size <= capacity:
                out = self._decompress_exact(data, size)
                if out is not None:
                    return out

        size = lz4_block_content_size(data)
        if size > capacity:
            raise DecompressionFailedError(
                f'LZ4 block decompresses to {size} bytes, more than the {capacity}-byte frame'
            )
        try:
            out = lz4.block.decompress(data, uncompressed_size=size)
        except (lz4.block.LZ4BlockError, ValueError) as e:
            raise DecompressionFailedError(f'LZ4 block of {len(data)} bytes is corrupt: {e}') from e

        if len(out) != size:
            raise DecompressionFailedError(f'LZ4 block decompressed to {len(out)} bytes, expected {size}')
        return out


class TextureDecoder(object):
    def decode(self, fourcc: str, width: int, height: int, data: BytesLike) -> Image.Image:
        """Decode a block-compressed texture into an ``RGBA`` or ``RGBa`` image."""
        raise NotImplementedError('Not implemented!')


class PillowDXTDecoder(TextureDecoder):
    """DXT1/DXT3/DXT5 decoding through Pillow's BCn decoder (BC1/BC2/BC3)."""

    BCN_BY_FOURCC = {
        'DXT1': 1,
        'DXT3': 2,
        'DXT5': 3,
    }

    def decode(self, fourcc: str, width: int, height: int, data: BytesLike) -> Image.Image:
        n = self.BCN_BY_FOURCC.get(fourcc)
        if n is None:
            raise DecodeFailedError(f'No BCn decoder for FourCC {fourcc!r}')

        try:
            return Image.frombytes('RGBA', (width, height), bytes(data), 'bcn', n)
        except (ValueError, OSError) as e:
            raise DecodeFailedError(f'{fourcc} decode of {width}x{height} texture failed: {e}') from e


def normalize_to_rgba(img: Image.Image) -> np.ndarray:
    """
    Convert a decoded texture to canonical straight-alpha RGBA.

    Args:
        img: Image in ``RGBA`` (kept as is) or premultiplied ``RGBa`` mode

    Returns:
        C-contiguous uint8 array of shape (height, width, 4)

    Raises:
        UnexpectedPixelLayoutError: For any other mode
    """
    if img.mode == 'RGBa':
        img = img.convert('RGBA')
    elif img.mode != 'RGBA':
        raise UnexpectedPixelLayoutError(f'Cannot normalize pixel layout {img.mode!r} to RGBA')

    return np.ascontiguousarray(np.asarray(img, dtype=np.uint8))
