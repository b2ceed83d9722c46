"""
Single-file processing for the scanner package.

Turns one file identifier into a ProcessingOutcome: stat, decode, hash.
Every failure is converted into a ProcessingFailure so a bad file never
takes down the worker that handled it.
"""

from __future__ import annotations

import os
import time

from ..dependencies import _logger
from ..hashing import PerceptualHashBackend
from ..models import ProcessingFailure, ProcessingMetadata, ProcessingOutcome, ProcessingSuccess
from .loader import ImageLoaderBackend


def process_single_file(
    loader: ImageLoaderBackend,
    hasher: PerceptualHashBackend,
    file_path: str,
) -> ProcessingOutcome:
    """
    Decode and hash a single image.

    Args:
        loader: Image loader back-end
        hasher: Perceptual hash back-end
        file_path: Identifier of the file to process

    Returns:
        ProcessingSuccess with hash and metadata, or ProcessingFailure with the
        error message
    """
    start = time.perf_counter()

    try:
        file_size = os.stat(file_path).st_size
        loaded = loader.load_from_path(file_path)
        perceptual_hash = hasher.generate_hash(loaded.image)
    except Exception as e:
        _logger.debug(f"Processing failed for {file_path}: {e}")
        return ProcessingFailure(file_path=file_path, error=str(e) or type(e).__name__)

    metadata = ProcessingMetadata(
        file_size=file_size,
        processing_time_ms=int((time.perf_counter() - start) * 1000),
        image_dimensions=(loaded.width, loaded.height),
        was_resized=loaded.was_resized,
    )

    return ProcessingSuccess(
        file_path=file_path,
        hash=perceptual_hash.to_hex(),
        algorithm=perceptual_hash.algorithm.tag,
        hash_bits=perceptual_hash.to_u64(),
        metadata=metadata,
    )


__all__ = ['process_single_file']
