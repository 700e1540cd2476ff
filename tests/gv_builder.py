"""
Helpers that synthesize GV files and DXT blocks for the tests.
"""

import struct
from typing import Dict, List, Optional, Sequence, Tuple

import lz4.block


RED = (255, 0, 0)
GREEN = (0, 255, 0)
BLUE = (0, 0, 255)
YELLOW = (231, 255, 0)
BLACK = (0, 0, 0)


def rgb565(rgb: Tuple[int, int, int]) -> int:
    r, g, b = rgb
    return ((r >> 3) << 11) | ((g >> 2) << 5) | (b >> 3)


def dxt1_block(rgb: Tuple[int, int, int]) -> bytes:
    """Solid-colour DXT1 block: color0 = rgb, color1 = black, all indices 0."""
    return struct.pack('<HHI', rgb565(rgb), 0, 0)


def dxt3_block(rgb: Tuple[int, int, int], alpha_nibble: int) -> bytes:
    nibbles = (alpha_nibble & 0xF) * 0x11
    return bytes([nibbles] * 8) + dxt1_block(rgb)


def dxt5_block(rgb: Tuple[int, int, int], alpha: int) -> bytes:
    return struct.pack('<BB6s', alpha, 0, b'\x00' * 6) + dxt1_block(rgb)


def dxt1_texture(width: int, height: int, colors: Dict[Tuple[int, int], Tuple[int, int, int]]) -> bytes:
    """
    Build a DXT1 texture from per-block colours.

    Args:
        colors: Mapping of (block_x, block_y) to RGB; missing blocks are black
    """
    blocks_x = (width + 3) // 4
    blocks_y = (height + 3) // 4
    out = bytearray()
    for by in range(blocks_y):
        for bx in range(blocks_x):
            out += dxt1_block(colors.get((bx, by), BLACK))
    return bytes(out)


def pad_texture(texture: bytes, width: int, height: int) -> bytes:
    size = width * height * 4
    assert len(texture) <= size
    return texture + b'\x00' * (size - len(texture))


def compress_frame(raw: bytes) -> bytes:
    return lz4.block.compress(raw, store_size=False)


def build_gv(
    width: int,
    height: int,
    payloads: Sequence[bytes],
    fps: float = 1.0,
    fmt: int = 1,
    frame_bytes: int = 0,
    disk_order: Optional[List[int]] = None,
) -> bytes:
    """
    Assemble a GV file from already compressed payloads.

    Args:
        disk_order: Order in which frame payloads are laid out on disk
            (default: frame id order); the index stays in frame id order
    """
    if disk_order is None:
        disk_order = list(range(len(payloads)))

    data = bytearray(struct.pack('<IIIfII', width, height, len(payloads), fps, fmt, frame_bytes))
    index = [None] * len(payloads)
    for frame_id in disk_order:
        index[frame_id] = (len(data), len(payloads[frame_id]))
        data += payloads[frame_id]
    for address, size in index:
        data += struct.pack('<QQ', address, size)
    return bytes(data)


def asset_frame(frame_id: int) -> bytes:
    """
    Uncompressed 72-byte DXT1 texture for frame ``frame_id`` of the 10x10 asset.

    Quadrants: red top-left, blue top-right, green bottom-left, yellow
    bottom-right; the bottom-right corner block carries a per-frame grey.
    """
    grey = min(255, frame_id * 50)
    texture = dxt1_texture(10, 10, {
        (0, 0): RED,
        (1, 0): BLUE,
        (0, 1): GREEN,
        (1, 1): YELLOW,
        (2, 2): (grey, grey, grey),
    })
    return texture


def build_asset() -> bytes:
    """10x10, 5 frames, 1 fps, DXT1, 72-byte advisory frame size, stored out of order."""
    payloads = [compress_frame(asset_frame(i)) for i in range(5)]
    return build_gv(10, 10, payloads, fps=1.0, fmt=1, frame_bytes=72, disk_order=[2, 0, 4, 1, 3])
