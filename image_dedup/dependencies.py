"""
Dependency initialization for Image Dedup.

Handles the Pillow, imagehash and numpy imports with a helpful message when
they are missing, and configures Pillow for large photo collections.
"""

from __future__ import annotations

import logging
import warnings

from .config import MAX_IMAGE_PIXELS

# Module-level logger
_logger = logging.getLogger(__name__)

# Check for required dependencies
try:
    from PIL import Image
    import imagehash
    import numpy as np
except ImportError:
    raise ImportError(
        "Required packages not found!\n"
        "Install with: pip install Pillow imagehash numpy"
    )

# Raise the decompression bomb limit for legitimate large images
Image.MAX_IMAGE_PIXELS = MAX_IMAGE_PIXELS

# The limit above is deliberate; Pillow still warns between the two thresholds
warnings.filterwarnings("ignore", category=Image.DecompressionBombWarning)

# Pillow >= 9.1 moved resampling filters into Image.Resampling
LANCZOS = getattr(Image, "Resampling", Image).LANCZOS


__all__ = [
    'Image',
    'imagehash',
    'np',
    'LANCZOS',
    '_logger',
]
