"""
Configuration constants for Image Dedup.

This module contains all configurable defaults including:
- Supported image extensions
- Pipeline sizing (concurrency, channel buffers, batch size)
- Perceptual hash defaults
"""

import os

# Extensions accepted by discovery (lowercase, without the leading dot)
IMAGE_EXTENSIONS = frozenset({
    'jpg', 'jpeg', 'png', 'gif', 'bmp', 'tiff', 'webp',
})

# Pipeline defaults
# Concurrency defaults to twice the CPU count; decode is partly I/O bound
DEFAULT_MAX_CONCURRENT_TASKS = max(1, os.cpu_count() or 1) * 2
DEFAULT_CHANNEL_BUFFER_SIZE = 100
DEFAULT_BATCH_SIZE = 50

# Progress is reported every N completed files (plus once on the last file)
PROGRESS_REPORT_INTERVAL = 100

# Perceptual hash defaults
DEFAULT_ALGORITHM = 'dct'
DEFAULT_HASH_SIZE = 8
DEFAULT_QUALITY_FACTOR = 1.0
MIN_HASH_SIZE = 1
MAX_HASH_SIZE = 64

# DCT working grid is this many times the hash size at quality_factor=1.0
DCT_HIGHFREQ_FACTOR = 4

# Default Hamming distance threshold used by find-dups
DEFAULT_THRESHOLD = 5

# Default output locations for the CLI
DEFAULT_HASH_DATABASE = 'hashes.json'
DEFAULT_DUPLICATES_FILE = 'duplicates.json'

# Increase PIL's decompression bomb limit for large images
# Default is ~89MP, raised to 500MP for photo collections (scans, panoramas)
MAX_IMAGE_PIXELS = 500_000_000
