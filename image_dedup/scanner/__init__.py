"""
Scanner package for Image Dedup.

Provides discovery, image loading and single-file processing used by the
scan pipeline.

Public API:
- StorageBackend / LocalStorageBackend: Enumerate and read items
- discover_image_files: Ordered list of candidate images under a root
- find_image_files: Candidate paths on the local filesystem
- ImageLoaderBackend / StandardImageLoader: Decode (and downscale) images
- LoadedImage: Decoded raster plus dimensions
- process_single_file: Decode, hash and describe one file
"""

from __future__ import annotations

from .file_discovery import (
    StorageBackend,
    LocalStorageBackend,
    discover_image_files,
    find_image_files,
)
from .loader import (
    LoadedImage,
    ImageLoaderBackend,
    StandardImageLoader,
    scaled_dimensions,
)
from .processing import process_single_file

__all__ = [
    'StorageBackend',
    'LocalStorageBackend',
    'discover_image_files',
    'find_image_files',
    'LoadedImage',
    'ImageLoaderBackend',
    'StandardImageLoader',
    'scaled_dimensions',
    'process_single_file',
]
