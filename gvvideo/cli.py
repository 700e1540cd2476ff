"""
GV Video command line tool.

Subcommands:
- info:  print header and index summary
- frame: export one decoded frame as PNG
- webp:  export whole videos as lossless animated WebP
- raw:   dump the decompressed (still DXT-compressed) bytes of one frame
"""

import argparse
import logging
import os
import sys
from typing import List, Optional, Union

from .codecs import GVFormat
from .config import Config
from .errors import GVError
from .video import GVVideo


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================

def output_path_for(gv_path: str, output_dir: Optional[str], suffix: str) -> str:
    """
    Build an output path next to Config.OUTPUT_DIR for a GV input file.

    Args:
        gv_path: Input .gv path
        output_dir: Directory for the output (default: Config.OUTPUT_DIR)
        suffix: Suffix including extension, e.g. '.webp' or '_0003.png'

    Returns:
        Output file path (directory is created if needed)
    """
    if output_dir is None:
        output_dir = Config.OUTPUT_DIR
    os.makedirs(output_dir, exist_ok=True)
    base_name = os.path.splitext(os.path.basename(gv_path))[0]
    return os.path.join(output_dir, f"{base_name}{suffix}")


def format_name(value: int) -> str:
    try:
        return GVFormat(value).name
    except ValueError:
        return f"unknown ({value})"


# ============================================================================
# COMMANDS
# ============================================================================

def print_gv_info(gv_path: str, show_index: bool = False) -> None:
    """Print header fields and an index summary for a GV file."""
    with GVVideo.open(gv_path) as video:
        header = video.header
        print(f"File: {gv_path}")
        print(f"  Size:        {header.width}x{header.height}")
        print(f"  Frames:      {header.frame_count}")
        print(f"  FPS:         {header.fps:g}")
        print(f"  Format:      {format_name(header.format)}")
        print(f"  Frame bytes: {header.frame_bytes} (advisory)")
        if header.duration_seconds is not None:
            print(f"  Duration:    {header.duration_seconds:.2f} s")

        if video.frame_count:
            sizes = [block.size for block in video.blocks]
            print(f"  Payloads:    min {min(sizes)} / max {max(sizes)} / total {sum(sizes)} bytes")

        if show_index:
            limit = Config.INFO_INDEX_PREVIEW
            for frame_id, block in enumerate(video.blocks[:limit]):
                print(f"    [{frame_id}] address={block.address} size={block.size}")
            if video.frame_count > limit:
                print(f"    ... {video.frame_count - limit} more")


def export_gv_frame(
    gv_path: str,
    frame_id: int,
    output_dir: str = None,
    scale: Union[int, float] = 1,
) -> str:
    """
    Decode a single frame of a GV file into a PNG.

    Returns:
        Path to the generated .png file
    """
    out_path = output_path_for(gv_path, output_dir, f"_{frame_id:04d}.png")
    with GVVideo.open(gv_path) as video:
        video.save_frame_png(frame_id, out_path, scale=scale)
    print(f"  [OK] Frame {frame_id} -> {out_path}")
    return out_path


def dump_raw_frame(gv_path: str, frame_id: int, output_dir: str = None) -> str:
    """
    Write the decompressed DXT texture bytes of one frame to a .dxt file.

    Returns:
        Path to the generated file
    """
    with GVVideo.open(gv_path) as video:
        fourcc = format_name(video.header.format).lower()
        out_path = output_path_for(gv_path, output_dir, f"_{frame_id:04d}.{fourcc}")
        data = video.read_frame_raw_compressed(frame_id)
    with open(out_path, 'wb') as fp:
        fp.write(data)
    print(f"  [OK] Frame {frame_id} raw ({len(data)} bytes) -> {out_path}")
    return out_path


def export_gv_files(
    file_paths: List[str],
    output_dir: str = None,
    scale: Union[int, float] = 1,
) -> List[str]:
    """
    Export GV files to lossless animated WebP.

    Args:
        file_paths: List of .gv file paths
        output_dir: Output directory for .webp files (default: Config.OUTPUT_DIR)
        scale: Optional scale factor

    Returns:
        List of generated .webp file paths
    """
    if not file_paths:
        print("No .gv files to export.")
        return []

    outputs: List[str] = []
    for i, path in enumerate(file_paths, 1):
        print(f"  [{i}/{len(file_paths)}] {os.path.basename(path)}")
        try:
            out_path = output_path_for(path, output_dir, '.webp')
            with GVVideo.open(path) as video:
                video.save_to_webp(out_path, scale=scale, progress=True)
            print(f"  [OK] Exported -> {out_path}")
            outputs.append(out_path)
        except (GVError, ValueError) as e:
            print(f"  [ERROR] Export failed: {e}")

    print(f"\n[OK] Exported {len(outputs)}/{len(file_paths)} files")
    return outputs


def collect_gv_paths(paths: List[str]) -> List[str]:
    """Expand directories to the .gv files they contain."""
    gv_paths = []
    for p in paths:
        if os.path.isdir(p):
            for name in sorted(os.listdir(p)):
                if name.lower().endswith(Config.GV_EXTENSION):
                    gv_paths.append(os.path.join(p, name))
        else:
            gv_paths.append(p)
    return gv_paths


# ============================================================================
# ENTRY POINT
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='gvvideo', description='Inspect and export GV videos')
    parser.add_argument('-v', '--verbose', action='store_true', help='enable debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    info = subparsers.add_parser('info', help='print header and index summary')
    info.add_argument('path', nargs='+', help='GV files')
    info.add_argument('--index', action='store_true', help='list index entries')

    frame = subparsers.add_parser('frame', help='export one frame as PNG')
    frame.add_argument('path', help='GV file')
    frame.add_argument('frame_id', type=int, help='frame number (0-indexed)')
    frame.add_argument('-o', '--output', help=f'output folder (default: {Config.OUTPUT_DIR})')
    frame.add_argument('-s', '--scale', type=float, default=Config.DEFAULT_SCALE, help='scale factor')

    webp = subparsers.add_parser('webp', help='export videos as animated WebP')
    webp.add_argument('path', nargs='+', help='GV files or folders')
    webp.add_argument('-o', '--output', help=f'output folder (default: {Config.OUTPUT_DIR})')
    webp.add_argument('-s', '--scale', type=float, default=Config.DEFAULT_SCALE, help='scale factor')

    raw = subparsers.add_parser('raw', help='dump decompressed DXT bytes of one frame')
    raw.add_argument('path', help='GV file')
    raw.add_argument('frame_id', type=int, help='frame number (0-indexed)')
    raw.add_argument('-o', '--output', help=f'output folder (default: {Config.OUTPUT_DIR})')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(levelname)s %(name)s: %(message)s')

    try:
        if args.command == 'info':
            for path in args.path:
                print_gv_info(path, show_index=args.index)
        elif args.command == 'frame':
            export_gv_frame(args.path, args.frame_id, output_dir=args.output, scale=args.scale)
        elif args.command == 'raw':
            dump_raw_frame(args.path, args.frame_id, output_dir=args.output)
        elif args.command == 'webp':
            paths = collect_gv_paths(args.path)
            outputs = export_gv_files(paths, output_dir=args.output, scale=args.scale)
            if len(outputs) != len(paths):
                return 1
    except GVError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
