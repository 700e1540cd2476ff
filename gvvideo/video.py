"""
Random-access reader for GV videos.

A GVVideo owns one seekable stream plus the header and index parsed from
it. The header and index are immutable and can be shared freely; the
stream's seek cursor cannot. Retrieval calls on one instance must not run
concurrently. Use reopen() to give each consumer its own handle.
"""

import io
import logging
import os
from typing import BinaryIO, Iterator, Optional, Tuple, Union

import numpy as np
from PIL import Image
from tqdm import tqdm

from .codecs import (
    BlockDecompressor,
    LZ4BlockDecompressor,
    PillowDXTDecoder,
    TextureDecoder,
    fourcc_for_format,
    normalize_to_rgba,
)
from .config import Config
from .errors import BufferTooSmallError, DecompressionFailedError, GVError, GVIOError, OutOfRangeError
from .header import (
    GVAddressSizeBlock,
    GVHeader,
    read_address_size_blocks,
    read_exact,
    read_header,
)


logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


class GVVideo(object):
    """
    A GV file opened for random frame access.

    Can be created in two ways:
    1. GVVideo.open(path): opens and owns the file
    2. GVVideo.from_stream(fp): wraps an already open seekable binary stream
    """

    @property
    def header(self) -> GVHeader:
        """Parsed container header."""
        return self._header

    @property
    def blocks(self) -> Tuple[GVAddressSizeBlock, ...]:
        """Frame index, entry i describing frame i."""
        return self._blocks

    @property
    def frame_count(self) -> int:
        return self._header.frame_count

    @property
    def width(self) -> int:
        return self._header.width

    @property
    def height(self) -> int:
        return self._header.height

    @property
    def fps(self) -> float:
        return self._header.fps

    @property
    def frame_size(self) -> int:
        """Bytes in one decoded (or decompressed) frame."""
        return self._header.uncompressed_frame_size

    @property
    def path(self) -> Optional[str]:
        """Path the video was opened from (None for caller-provided streams)."""
        return self._path

    @property
    def closed(self) -> bool:
        return self._fp is None

    def __init__(
        self,
        fp: BinaryIO,
        header: GVHeader,
        blocks: Tuple[GVAddressSizeBlock, ...],
        decompressor: Optional[BlockDecompressor] = None,
        texture_decoder: Optional[TextureDecoder] = None,
        path: Optional[str] = None,
        owns_stream: bool = False,
    ):
        """
        Initialize GVVideo from already parsed parts.

        Args:
            fp: Seekable binary stream holding the GV data
            header: Parsed header
            blocks: Parsed index (must have header.frame_count entries)
            decompressor: Block decompressor (default: LZ4BlockDecompressor)
            texture_decoder: Texture decoder (default: PillowDXTDecoder)
            path: Source path, enables reopen()
            owns_stream: Close fp when this video is closed

        Note:
            Most callers want GVVideo.open() or GVVideo.from_stream().
        """
        if len(blocks) != header.frame_count:
            raise ValueError(f'Index has {len(blocks)} entries, header declares {header.frame_count} frames')

        self._fp = fp
        self._header = header
        self._blocks = tuple(blocks)
        self._decompressor = decompressor or LZ4BlockDecompressor()
        self._texture_decoder = texture_decoder or PillowDXTDecoder()
        self._path = path
        self._owns_stream = owns_stream

    @classmethod
    def open(cls, path: PathLike, **kwargs) -> 'GVVideo':
        """
        Open a GV file by path.

        Args:
            path: Path to the .gv file
            **kwargs: decompressor / texture_decoder overrides

        Raises:
            GVIOError: If the file cannot be opened
            GVError: Any header or index parsing error
        """
        path = os.fspath(path)
        try:
            fp = open(path, 'rb')
        except OSError as e:
            raise GVIOError(f'Cannot open {path}: {e}') from e

        try:
            return cls.from_stream(fp, path=path, owns_stream=True, **kwargs)
        except BaseException:
            fp.close()
            raise

    @classmethod
    def from_stream(
        cls,
        fp: BinaryIO,
        header: Optional[GVHeader] = None,
        blocks: Optional[Tuple[GVAddressSizeBlock, ...]] = None,
        **kwargs,
    ) -> 'GVVideo':
        """
        Wrap a seekable binary stream positioned anywhere in a GV file.

        Passing header and blocks taken from another GVVideo skips parsing,
        so several independent handles can share one parsed index.
        """
        if header is None:
            try:
                fp.seek(0, io.SEEK_SET)
            except OSError as e:
                raise GVIOError(f'Failed to seek to header: {e}') from e
            header = read_header(fp)
        if blocks is None:
            blocks = read_address_size_blocks(fp, header.frame_count)

        video = cls(fp, header, blocks, **kwargs)
        logger.info(
            'Opened GV video %s: %dx%d, %d frames @ %.3g fps, format %d',
            kwargs.get('path') or '<stream>',
            header.width,
            header.height,
            header.frame_count,
            header.fps,
            header.format,
        )
        return video

    def reopen(self) -> 'GVVideo':
        """
        Open an independent handle on the same file, sharing header and index.

        Raises:
            ValueError: If this video was not opened from a path
            GVIOError: If the file cannot be opened
        """
        if self._path is None:
            raise ValueError('Cannot reopen a GV video that was not opened from a path')
        try:
            fp = open(self._path, 'rb')
        except OSError as e:
            raise GVIOError(f'Cannot open {self._path}: {e}') from e

        return GVVideo(
            fp,
            self._header,
            self._blocks,
            decompressor=self._decompressor,
            texture_decoder=self._texture_decoder,
            path=self._path,
            owns_stream=True,
        )

    def close(self) -> None:
        if self._fp is None:
            return
        if self._owns_stream:
            self._fp.close()
        self._fp = None

    def __enter__(self) -> 'GVVideo':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __len__(self) -> int:
        return self.frame_count

    def __repr__(self) -> str:
        h = self._header
        return f'<GVVideo {h.width}x{h.height} frames={h.frame_count} fps={h.fps:g} format={h.format}>'

    # ------------------------------------------------------------------
    # Frame retrieval
    # ------------------------------------------------------------------

    def resolve(self, frame_id: int) -> GVAddressSizeBlock:
        """
        Look up where a frame's compressed payload is stored. No I/O.

        Raises:
            OutOfRangeError: If frame_id is negative or >= frame_count
        """
        if frame_id < 0 or frame_id >= self._header.frame_count:
            raise OutOfRangeError(f'Frame {frame_id} out of range (frame count {self._header.frame_count})')
        return self._blocks[frame_id]

    def _read_compressed(self, block: GVAddressSizeBlock, frame_id: int) -> bytes:
        if self._fp is None:
            raise ValueError('I/O operation on closed GV video')

        logger.debug('Frame %d: reading %d bytes at offset %d', frame_id, block.size, block.address)
        try:
            self._fp.seek(block.address, io.SEEK_SET)
        except OSError as e:
            raise GVIOError(f'Failed to seek to frame {frame_id} at {block.address}: {e}') from e
        return read_exact(self._fp, block.size, f'frame {frame_id} payload')

    def _decompress(self, frame_id: int) -> bytes:
        block = self.resolve(frame_id)
        compressed = self._read_compressed(block, frame_id)
        # frame_bytes is only a hint; width*height*4 bounds the output
        raw = self._decompressor.decompress(compressed, self.frame_size, size_hint=self._header.frame_bytes)
        if len(raw) > self.frame_size:
            raise DecompressionFailedError(
                f'Frame {frame_id} decompressed to {len(raw)} bytes, more than {self.frame_size}'
            )
        if len(raw) < self.frame_size:
            raw = raw + bytes(self.frame_size - len(raw))
        return raw

    def _decode(self, frame_id: int, raw: bytes) -> np.ndarray:
        fourcc = fourcc_for_format(self._header.format)
        logger.debug('Frame %d: decoding %s texture', frame_id, fourcc)
        img = self._texture_decoder.decode(fourcc, self._header.width, self._header.height, raw)
        pixels = normalize_to_rgba(img)
        expected = (self._header.height, self._header.width, 4)
        if pixels.shape != expected:
            raise GVError(f'Decoder returned shape {pixels.shape}, expected {expected}')
        return pixels

    def _writable_view(self, buffer, frame_id: int) -> memoryview:
        view = memoryview(buffer)
        if view.readonly:
            raise TypeError('Frame buffer must be writable')
        view = view.cast('B')
        if view.nbytes < self.frame_size:
            raise BufferTooSmallError(
                f'Buffer of {view.nbytes} bytes is too small for frame {frame_id} ({self.frame_size} bytes)'
            )
        return view

    def read_frame(self, frame_id: int) -> np.ndarray:
        """
        Decode a frame to canonical RGBA.

        Args:
            frame_id: Frame number (0-indexed)

        Returns:
            New uint8 array of shape (height, width, 4), straight alpha
        """
        raw = self._decompress(frame_id)
        return self._decode(frame_id, raw)

    def read_frame_into(self, frame_id: int, buffer) -> int:
        """
        Decode a frame to canonical RGBA, writing into a caller buffer.

        Args:
            frame_id: Frame number (0-indexed)
            buffer: Writable C-contiguous buffer of at least width*height*4 bytes
                (bytearray, memoryview, numpy array, mmap...)

        Returns:
            Number of bytes written (width*height*4)

        Raises:
            BufferTooSmallError: If the buffer is smaller than one frame
        """
        self.resolve(frame_id)
        view = self._writable_view(buffer, frame_id)
        pixels = self._decode(frame_id, self._decompress(frame_id))

        n = self.frame_size
        out = np.frombuffer(view, dtype=np.uint8, count=n).reshape(pixels.shape)
        out[...] = pixels
        return n

    def read_frame_raw_compressed(self, frame_id: int) -> bytes:
        """
        Decompress a frame without texture decoding.

        Returns:
            width*height*4 bytes of DXT texture data, for handing directly
            to a GPU upload path
        """
        return self._decompress(frame_id)

    def read_frame_raw_compressed_into(self, frame_id: int, buffer) -> int:
        """
        Decompress a frame without texture decoding, writing into a caller buffer.

        Returns:
            Number of bytes written (width*height*4)

        Raises:
            BufferTooSmallError: If the buffer is smaller than one frame
        """
        self.resolve(frame_id)
        view = self._writable_view(buffer, frame_id)
        raw = self._decompress(frame_id)
        view[:len(raw)] = raw
        return len(raw)

    def iter_frames(self, start: int = 0, stop: Optional[int] = None, reuse: bool = False) -> Iterator[Tuple[int, np.ndarray]]:
        """
        Yield (frame_id, pixels) for frames in [start, stop).

        With reuse=True the same array is refilled for every frame, so
        callers must copy it if they keep it past the next iteration.
        """
        if stop is None:
            stop = self.frame_count
        buffer = np.empty((self.height, self.width, 4), dtype=np.uint8) if reuse else None

        for frame_id in range(start, stop):
            if buffer is None:
                yield frame_id, self.read_frame(frame_id)
            else:
                self.read_frame_into(frame_id, buffer)
                yield frame_id, buffer

    # ------------------------------------------------------------------
    # Pillow helpers
    # ------------------------------------------------------------------

    def get_frame_image(
        self,
        frame_id: int,
        scale: Union[int, float] = 1,
        target_width: int = None,
        target_height: int = None,
    ) -> Image.Image:
        """
        Get Pillow Image of a frame.

        Args:
            frame_id: Frame number (0-indexed)
            scale: Optional scale factor
            target_width: Optional target width
            target_height: Optional target height

        Returns:
            RGBA PIL Image
        """
        img = Image.fromarray(self.read_frame(frame_id))
        size = self.output_size(scale=scale, target_width=target_width, target_height=target_height)
        if size != img.size:
            img = img.resize(size, Image.NEAREST)
        return img

    def output_size(
        self,
        scale: Union[int, float] = 1,
        target_width: int = None,
        target_height: int = None,
    ) -> Tuple[int, int]:
        """
        (width, height) of exported frames.

        Explicit targets win over ``scale``; a single target keeps the
        frame's aspect ratio. Each side is at least 1 pixel.
        """
        w, h = self._header.width, self._header.height
        if target_width is not None and target_height is not None:
            return target_width, target_height
        if target_width is not None:
            return target_width, max(1, int(h * target_width / w))
        if target_height is not None:
            return max(1, int(w * target_height / h)), target_height
        return max(1, int(w * scale)), max(1, int(h * scale))

    def save_frame_png(self, frame_id: int, output_path: PathLike, **resize_kwargs) -> None:
        """Save one decoded frame as a PNG file."""
        self.get_frame_image(frame_id, **resize_kwargs).save(output_path, format='PNG')

    def save_to_webp(
        self,
        output_path: PathLike,
        scale: Union[int, float] = 1,
        target_width: int = None,
        target_height: int = None,
        progress: bool = False,
    ) -> None:
        """
        Convert the whole video to an animated WebP file.

        Args:
            output_path: Path to save WebP file
            scale: Optional scale factor
            target_width: Optional target width
            target_height: Optional target height
            progress: Show a tqdm progress bar while decoding

        Raises:
            ValueError: If the video has no frames
        """
        if self.frame_count == 0:
            raise ValueError('GV video has no frames to export')

        duration = self._header.frame_duration_ms or Config.FALLBACK_FRAME_DURATION_MS

        webp_frames = []
        for frame_id in tqdm(range(self.frame_count), desc='Decoding', unit='frame', disable=not progress):
            webp_frames.append(
                self.get_frame_image(
                    frame_id,
                    scale=scale,
                    target_width=target_width,
                    target_height=target_height,
                )
            )

        webp_frames[0].save(
            output_path,
            format='WEBP',
            append_images=webp_frames[1:],
            duration=int(round(duration)),
            save_all=True,
            loop=Config.WEBP_LOOP,
            lossless=Config.WEBP_LOSSLESS,
        )


def load_gv_video(path: PathLike, **kwargs) -> GVVideo:
    """Open a GV file by path (shorthand for GVVideo.open)."""
    return GVVideo.open(path, **kwargs)
