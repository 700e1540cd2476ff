"""
Configuration constants for the GV video tools.
"""


class Config:
    """Configuration constants for the GV video tools."""

    # File naming
    GV_EXTENSION = '.gv'

    # Output directory for exported frames/animations
    OUTPUT_DIR = 'out'

    # Export defaults
    DEFAULT_SCALE = 1
    WEBP_LOSSLESS = True
    WEBP_LOOP = 0  # loop forever
    FALLBACK_FRAME_DURATION_MS = 100  # used when the header fps is not positive

    # Number of index entries listed by `gvvideo info` before truncating
    INFO_INDEX_PREVIEW = 10
