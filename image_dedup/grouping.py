"""
Duplicate grouping over a finished scan document.

Entries whose full hashes lie within a Hamming threshold of each other are
merged with Union-Find; groups are transitive, so A~B and B~C puts A, B and
C in one group even if A and C are further apart than the threshold.
"""

from __future__ import annotations

import json
import logging
from collections import defaultdict
from pathlib import Path
from typing import Any, Callable, Optional

from tqdm import tqdm

from .errors import ConfigurationError, PersistenceError
from .hashing import HashAlgorithm, HashKind, PerceptualHash
from .models import DuplicateFile, DuplicateGroup, HashEntry, ScanInfo, ScanResult

logger = logging.getLogger(__name__)


def algorithm_from_scan_info(scan_info: ScanInfo) -> HashAlgorithm:
    """
    Rebuild the algorithm descriptor recorded in a scan header.

    Raises:
        ConfigurationError: If the header names an unknown algorithm or no size
    """
    try:
        kind = HashKind(scan_info.algorithm)
    except ValueError:
        raise ConfigurationError(f"Unknown hash algorithm in scan document: {scan_info.algorithm!r}")
    size = scan_info.parameters.get('size')
    if not isinstance(size, int) or size < 1:
        raise ConfigurationError(f"Scan document has no valid hash size: {size!r}")
    return HashAlgorithm(kind, size)


def find_duplicate_groups(
    entries: list[HashEntry],
    algorithm: HashAlgorithm,
    threshold: int,
    show_progress: bool = False,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> list[DuplicateGroup]:
    """
    Group entries whose hashes are within ``threshold`` bits of each other.

    Identical hashes are bucketed first, so the pairwise pass only runs over
    distinct hash values.

    Args:
        entries: Hash entries from one scan document
        algorithm: Algorithm that produced every entry
        threshold: Maximum Hamming distance for two files to be duplicates
        show_progress: Whether to show a tqdm bar for the comparisons
        progress_callback: Optional callback(current, total) over comparisons

    Returns:
        Groups with at least two members, ordered by their reference file.
        Within a group, files are sorted by path and the first is the reference.
    """
    if threshold < 0:
        raise ConfigurationError(f"Threshold must be >= 0, got {threshold}")

    # Exact matches share a bucket
    buckets: dict[str, list[HashEntry]] = defaultdict(list)
    for entry in entries:
        buckets[entry.hash.lower()].append(entry)

    keys = sorted(buckets)
    hashes = [PerceptualHash.from_hex(key, algorithm) for key in keys]

    parent = list(range(len(keys)))

    def find(x: int) -> int:
        while parent[x] != x:
            parent[x] = parent[parent[x]]
            x = parent[x]
        return x

    def union(x: int, y: int) -> None:
        px, py = find(x), find(y)
        if px != py:
            parent[px] = py

    n = len(keys)
    total_comparisons = n * (n - 1) // 2
    pbar: Optional[Any] = None
    if show_progress and total_comparisons > 1000:
        pbar = tqdm(total=total_comparisons, desc="Comparing hashes", unit="cmp", ncols=80)

    comparison_count = 0
    for i in range(n):
        for j in range(i + 1, n):
            if find(i) != find(j) and hashes[i].distance(hashes[j]) <= threshold:
                union(i, j)
            comparison_count += 1
            if pbar is not None and comparison_count % 1000 == 0:
                pbar.update(1000)
            if progress_callback and comparison_count % 10000 == 0:
                progress_callback(comparison_count, total_comparisons)

    if pbar is not None:
        pbar.update(comparison_count % 1000)
        pbar.close()

    members: dict[int, list[int]] = defaultdict(list)
    for index in range(n):
        members[find(index)].append(index)

    groups: list[DuplicateGroup] = []
    for indexes in members.values():
        files = [
            (entry, hashes[index])
            for index in indexes
            for entry in buckets[keys[index]]
        ]
        if len(files) < 2:
            continue
        files.sort(key=lambda pair: pair[0].file_path)
        reference_hash = files[0][1]
        groups.append(DuplicateGroup(
            group_id=0,
            files=[
                DuplicateFile(
                    file_path=entry.file_path,
                    hash=entry.hash,
                    distance=reference_hash.distance(phash),
                )
                for entry, phash in files
            ],
        ))

    groups.sort(key=lambda group: group.files[0].file_path)
    for group_id, group in enumerate(groups):
        group.group_id = group_id

    logger.info(
        f"Found {len(groups):,} duplicate groups among {len(entries):,} files "
        f"({total_comparisons:,} comparisons)"
    )
    return groups


def find_duplicates_in_scan(
    scan: ScanResult,
    threshold: int,
    show_progress: bool = False,
) -> list[DuplicateGroup]:
    """Group the entries of a loaded scan document."""
    if not scan.images:
        return []
    algorithm = algorithm_from_scan_info(scan.scan_info)
    return find_duplicate_groups(scan.images, algorithm, threshold, show_progress=show_progress)


def build_duplicate_report(groups: list[DuplicateGroup], threshold: int) -> dict[str, Any]:
    return {
        'total_groups': len(groups),
        'total_duplicates': sum(len(group.duplicates) for group in groups),
        'threshold': threshold,
        'groups': [group.to_dict() for group in groups],
    }


def save_duplicate_report(
    groups: list[DuplicateGroup],
    threshold: int,
    output_path: str | Path,
) -> dict[str, Any]:
    """
    Write the duplicate report JSON.

    Raises:
        PersistenceError: If the report cannot be written
    """
    report = build_duplicate_report(groups, threshold)
    path = Path(output_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(report, f, indent=2)
    except OSError as e:
        raise PersistenceError(f"Cannot write duplicate report {path}: {e}") from e
    return report


__all__ = [
    'algorithm_from_scan_info',
    'find_duplicate_groups',
    'find_duplicates_in_scan',
    'build_duplicate_report',
    'save_duplicate_report',
]
