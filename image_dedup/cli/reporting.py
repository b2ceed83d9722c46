"""
Report formatting and display for the CLI interface.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..models import DuplicateGroup, ProcessingSummary, format_size

# Groups listed in full before the report is truncated
MAX_GROUPS_SHOWN = 20


def _print_section_header(title: str) -> None:
    """Print a section header with divider lines."""
    print("\n" + "-" * 70)
    print(title)
    print("-" * 70)


def print_scan_summary(summary: ProcessingSummary, output_path: Path, logger: logging.Logger) -> None:
    """Print the end-of-scan statistics."""
    _print_section_header("SCAN SUMMARY")
    print(f"Files found:      {summary.total_files:,}")
    print(f"Hashed:           {summary.processed_files:,}")
    print(f"Errors:           {summary.error_count:,}")
    print(f"Total time:       {summary.total_processing_time_ms / 1000:.2f}s")
    print(f"Average per file: {summary.average_time_per_file_ms:.2f}ms")
    if summary.total_files:
        print(f"Success rate:     {summary.success_rate:.1f}%")
    print(f"Output:           {output_path}")

    if summary.error_count:
        logger.warning(f"Could not process {summary.error_count:,} files")


def print_duplicate_report(
    groups: list[DuplicateGroup],
    threshold: int,
    logger: logging.Logger,
    file_sizes: dict[str, int] | None = None,
) -> None:
    """
    Print duplicate groups and totals.

    Args:
        groups: Duplicate groups to display
        threshold: Hamming threshold the groups were built with
        logger: Logger for the closing summary line
        file_sizes: Optional path -> size mapping used to estimate reclaimable space
    """
    if not groups:
        logger.info(f"No duplicates found (threshold={threshold}).")
        return

    _print_section_header(f"DUPLICATE GROUPS (threshold={threshold})")
    for group in groups[:MAX_GROUPS_SHOWN]:
        print(f"\nGroup {group.group_id + 1} ({group.file_count} files):")
        for index, duplicate in enumerate(group.files):
            marker = "  [KEEP]" if index == 0 else "  [DUPE]"
            print(f"{marker} {duplicate.file_path}  (distance {duplicate.distance})")

    if len(groups) > MAX_GROUPS_SHOWN:
        print(f"\n... and {len(groups) - MAX_GROUPS_SHOWN:,} more groups")

    total_duplicates = sum(len(group.duplicates) for group in groups)
    _print_section_header("SUMMARY")
    print(f"Duplicate groups: {len(groups):,}")
    print(f"Duplicate files:  {total_duplicates:,}")
    if file_sizes:
        waste = sum(
            file_sizes.get(duplicate.file_path, 0)
            for group in groups
            for duplicate in group.duplicates
        )
        print(f"Reclaimable:      {format_size(waste)}")


__all__ = ['print_scan_summary', 'print_duplicate_report']
