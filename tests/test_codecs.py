"""
Codec Tests
===========

Format tag mapping, LZ4 block stage, Pillow DXT stage and RGBA normalization.
"""

import numpy as np
import pytest
from PIL import Image

from gvvideo import (
    DecodeFailedError,
    DecompressionFailedError,
    GVFormat,
    LZ4BlockDecompressor,
    PillowDXTDecoder,
    UnexpectedPixelLayoutError,
    UnsupportedFormatError,
    fourcc_for_format,
    lz4_block_content_size,
    normalize_to_rgba,
)

from gv_builder import (
    BLUE,
    RED,
    compress_frame,
    dxt1_texture,
    dxt3_block,
    dxt5_block,
    pad_texture,
)


def assert_close(pixel, expected, tolerance=8):
    assert len(pixel) == len(expected)
    for got, want in zip(pixel, expected):
        assert abs(int(got) - int(want)) <= tolerance, f'{tuple(pixel)} != {expected}'


class TestFormatMapping:

    @pytest.mark.parametrize('value, fourcc', [(1, 'DXT1'), (3, 'DXT3'), (5, 'DXT5')])
    def test_known_formats(self, value, fourcc):
        assert fourcc_for_format(value) == fourcc

    @pytest.mark.parametrize('value', [0, 2, 4, 6, 0xFFFFFFFF])
    def test_unknown_formats_rejected(self, value):
        with pytest.raises(UnsupportedFormatError):
            fourcc_for_format(value)

    def test_enum_values(self):
        assert GVFormat.DXT1.value == 1
        assert GVFormat.DXT3.value == 3
        assert GVFormat.DXT5.value == 5


class TestLZ4BlockDecompressor:

    def test_decompress_exact_size(self):
        raw = bytes(range(256)) * 4
        out = LZ4BlockDecompressor().decompress(compress_frame(raw), len(raw))
        assert out == raw

    def test_accepts_memoryview(self):
        raw = b'abc' * 100
        out = LZ4BlockDecompressor().decompress(memoryview(compress_frame(raw)), len(raw))
        assert out == raw

    def test_shorter_than_capacity(self):
        raw = dxt1_texture(10, 10, {(0, 0): RED})
        out = LZ4BlockDecompressor().decompress(compress_frame(raw), 400)
        assert len(out) == 72
        assert out == raw

    @pytest.mark.parametrize('hint', [None, 0, 50, 72, 100, 400])
    def test_hint_is_verified(self, hint):
        raw = bytes(range(72))
        out = LZ4BlockDecompressor().decompress(compress_frame(raw), 400, size_hint=hint)
        assert out == raw

    def test_larger_than_capacity(self):
        raw = b'\x01' * 400
        with pytest.raises(DecompressionFailedError):
            LZ4BlockDecompressor().decompress(compress_frame(raw), 100)
        with pytest.raises(DecompressionFailedError):
            LZ4BlockDecompressor().decompress(compress_frame(raw), 100, size_hint=400)

    def test_content_size(self):
        for raw in (b'\x01' * 72, bytes(range(256)) * 4, dxt1_texture(12, 8, {(1, 1): BLUE})):
            assert lz4_block_content_size(compress_frame(raw)) == len(raw)

    def test_content_size_truncated(self):
        compressed = compress_frame(b'\x01' * 400)
        with pytest.raises(DecompressionFailedError):
            lz4_block_content_size(compressed[:3])

    def test_corrupt_input(self):
        with pytest.raises(DecompressionFailedError):
            LZ4BlockDecompressor().decompress(b'\xff' * 10, 400)


class TestPillowDXTDecoder:

    def test_dxt1(self):
        texture = pad_texture(dxt1_texture(8, 4, {(0, 0): RED, (1, 0): BLUE}), 8, 4)
        img = PillowDXTDecoder().decode('DXT1', 8, 4, texture)
        assert img.size == (8, 4)
        assert img.mode == 'RGBA'
        assert_close(img.getpixel((0, 0)), (255, 0, 0, 255))
        assert_close(img.getpixel((5, 2)), (0, 0, 255, 255))

    def test_dxt3_explicit_alpha(self):
        texture = dxt3_block(RED, 0x0) + dxt3_block(BLUE, 0xF)
        img = PillowDXTDecoder().decode('DXT3', 8, 4, texture)
        assert_close(img.getpixel((1, 1)), (255, 0, 0, 0))
        assert_close(img.getpixel((6, 1)), (0, 0, 255, 255))

    def test_dxt5_interpolated_alpha(self):
        texture = dxt5_block(RED, 128)
        img = PillowDXTDecoder().decode('DXT5', 4, 4, texture)
        assert_close(img.getpixel((3, 3)), (255, 0, 0, 128))

    def test_non_multiple_of_four(self):
        texture = dxt1_texture(10, 10, {(2, 2): BLUE})
        img = PillowDXTDecoder().decode('DXT1', 10, 10, texture)
        assert img.size == (10, 10)
        assert_close(img.getpixel((9, 9)), (0, 0, 255, 255))

    def test_short_data(self):
        with pytest.raises(DecodeFailedError):
            PillowDXTDecoder().decode('DXT1', 10, 10, b'\x00' * 10)

    def test_unknown_fourcc(self):
        with pytest.raises(DecodeFailedError):
            PillowDXTDecoder().decode('ATI2', 4, 4, b'\x00' * 16)


class TestNormalize:

    def test_rgba_kept(self):
        img = Image.new('RGBA', (3, 2), (10, 20, 30, 40))
        pixels = normalize_to_rgba(img)
        assert pixels.shape == (2, 3, 4)
        assert pixels.dtype == np.uint8
        assert pixels.flags['C_CONTIGUOUS']
        assert tuple(pixels[1, 2]) == (10, 20, 30, 40)

    def test_premultiplied_is_unpremultiplied(self):
        img = Image.new('RGBa', (2, 2), (64, 0, 0, 128))
        pixels = normalize_to_rgba(img)
        assert_close(pixels[0, 0], (127, 0, 0, 128), tolerance=2)

    @pytest.mark.parametrize('mode', ['RGB', 'L', 'LA', 'CMYK'])
    def test_other_layouts_rejected(self, mode):
        with pytest.raises(UnexpectedPixelLayoutError):
            normalize_to_rgba(Image.new(mode, (2, 2)))
