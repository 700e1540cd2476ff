"""
Test Configuration
==================

Pytest fixtures for gvvideo: GV files are synthesized per test in tmp_path.
"""

import pytest

from gv_builder import build_asset, build_gv, compress_frame


@pytest.fixture
def asset_path(tmp_path):
    """Path to the 10x10, 5-frame DXT1 test asset."""
    path = tmp_path / 'test-10px.gv'
    path.write_bytes(build_asset())
    return path


@pytest.fixture
def video(asset_path):
    """Opened GVVideo on the test asset, closed after the test."""
    from gvvideo import GVVideo

    with GVVideo.open(asset_path) as v:
        yield v


@pytest.fixture
def write_gv(tmp_path):
    """Factory writing raw GV bytes to a file and returning its path."""
    counter = {'n': 0}

    def _write(data: bytes):
        counter['n'] += 1
        path = tmp_path / f"case-{counter['n']}.gv"
        path.write_bytes(data)
        return path

    return _write


@pytest.fixture
def make_gv(write_gv):
    """Factory building a GV file from raw (uncompressed) frame textures."""

    def _make(width, height, raw_frames, **kwargs):
        payloads = [compress_frame(raw) for raw in raw_frames]
        return write_gv(build_gv(width, height, payloads, **kwargs))

    return _make
