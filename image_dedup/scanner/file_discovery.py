"""
File discovery module for the scanner package.

Provides the storage abstraction used by the engine and the local
filesystem implementation, plus the discovery step that turns a storage
listing into the ordered list of candidate images.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Optional

from ..config import IMAGE_EXTENSIONS
from ..errors import FileDiscoveryError
from ..models import ImageItem
from ..dependencies import _logger

# Called with a human-readable message for every entry skipped during a walk
SkipCallback = Callable[[str], None]


def _log_skip(message: str) -> None:
    _logger.warning(message)


class StorageBackend(ABC):
    """Enumerates and reads items. Implementations must be thread safe."""

    @abstractmethod
    def list_items(self, prefix: str, on_skip: Optional[SkipCallback] = None) -> list[ImageItem]:
        """
        List every item below ``prefix``, directories included.

        Raises:
            FileDiscoveryError: If ``prefix`` itself cannot be enumerated
        """

    @abstractmethod
    def read_item(self, item_id: str) -> bytes:
        """Return the raw bytes of an item."""

    @abstractmethod
    def exists(self, item_id: str) -> bool:
        """Check whether an item exists."""

    def is_image_file(self, item: ImageItem) -> bool:
        """True for non-directory items with a supported image extension."""
        if item.is_directory or not item.extension:
            return False
        return item.extension.lower() in IMAGE_EXTENSIONS


class LocalStorageBackend(StorageBackend):
    """Storage backend for the local filesystem; identifiers are paths."""

    @staticmethod
    def path_to_item(path: str, stat_result: os.stat_result, is_directory: bool) -> ImageItem:
        name = os.path.basename(path)
        extension = None
        if not is_directory:
            suffix = os.path.splitext(name)[1]
            extension = suffix[1:].lower() if suffix else None
        return ImageItem(
            id=path,
            name=name,
            size=0 if is_directory else stat_result.st_size,
            is_directory=is_directory,
            extension=extension,
        )

    def list_items(self, prefix: str, on_skip: Optional[SkipCallback] = None) -> list[ImageItem]:
        """
        Recursively list ``prefix`` in lexicographic order.

        Unreadable subdirectories and entries that cannot be stat'ed are
        skipped and passed to ``on_skip``; only a failure on the root raises.
        """
        on_skip = on_skip or _log_skip
        root = str(prefix)

        try:
            with os.scandir(root):
                pass
        except OSError as e:
            raise FileDiscoveryError(root, e) from e

        items: list[ImageItem] = []

        def _on_walk_error(err: OSError) -> None:
            on_skip(f"Skipping unreadable directory {err.filename}: {err.strerror or err}")

        for dirpath, dirnames, filenames in os.walk(root, onerror=_on_walk_error):
            dirnames.sort()
            for dirname in dirnames:
                full = os.path.join(dirpath, dirname)
                try:
                    st = os.stat(full)
                except OSError as e:
                    on_skip(f"Skipping unreadable entry {full}: {e}")
                    continue
                items.append(self.path_to_item(full, st, is_directory=True))

            for filename in sorted(filenames):
                full = os.path.join(dirpath, filename)
                try:
                    st = os.stat(full)
                except OSError as e:
                    # Broken symlinks, races with deletion, permission problems
                    on_skip(f"Skipping unreadable entry {full}: {e}")
                    continue
                items.append(self.path_to_item(full, st, is_directory=False))

        items.sort(key=lambda item: item.id)
        return items

    def read_item(self, item_id: str) -> bytes:
        return Path(item_id).read_bytes()

    def exists(self, item_id: str) -> bool:
        return os.path.exists(item_id)


def discover_image_files(
    storage: StorageBackend,
    root_path: str | Path,
    on_skip: Optional[SkipCallback] = None,
) -> list[ImageItem]:
    """
    Find all image files below the given root.

    Args:
        storage: Storage backend to enumerate
        root_path: Directory (or prefix) to search
        on_skip: Optional callback receiving a message per skipped entry

    Returns:
        Candidate ImageItems sorted by identifier, so runs are reproducible

    Raises:
        FileDiscoveryError: If the root cannot be opened or enumerated
    """
    root = str(root_path)
    try:
        items = storage.list_items(root, on_skip)
    except FileDiscoveryError:
        raise
    except OSError as e:
        raise FileDiscoveryError(root, e) from e

    images = [item for item in items if storage.is_image_file(item)]
    images.sort(key=lambda item: item.id)
    return images


def find_image_files(root_path: str | Path) -> list[str]:
    """Convenience wrapper returning the candidate paths on the local filesystem."""
    return [item.id for item in discover_image_files(LocalStorageBackend(), root_path)]


__all__ = [
    'StorageBackend',
    'LocalStorageBackend',
    'discover_image_files',
    'find_image_files',
]
