"""
Argument parsing for the CLI interface.

Options left unset on the command line default to None so that the user
configuration (environment variables, config file) can fill them in.
"""

from __future__ import annotations

import argparse
from pathlib import Path

from .. import __version__
from ..config import DEFAULT_DUPLICATES_FILE, DEFAULT_HASH_DATABASE
from ..hashing import available_algorithms


def _add_scan_parser(subparsers) -> None:
    scan = subparsers.add_parser(
        'scan',
        help='Hash every image in a directory tree',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s /path/to/photos
      Hash all images with the default DCT algorithm into hashes.json

  %(prog)s /path/to/photos -o photos.json -a difference --hash-size 16
      Use a 16x16 difference hash

  %(prog)s /path/to/photos -t 4 --max-dimension 1024 --force
      Four concurrent decodes, downscale large images, overwrite output
        """
    )

    scan.add_argument(
        'directory',
        type=Path,
        help='Directory to scan for images'
    )

    scan.add_argument(
        '-o', '--output',
        type=Path,
        default=Path(DEFAULT_HASH_DATABASE),
        help=f'Output hash document. Default: {DEFAULT_HASH_DATABASE}'
    )

    scan.add_argument(
        '-f', '--force',
        action='store_true',
        help='Overwrite the output file if it exists'
    )

    # Hashing options
    scan.add_argument(
        '-a', '--algorithm',
        choices=available_algorithms(),
        default=None,
        help='Perceptual hash algorithm. Default: dct'
    )

    scan.add_argument(
        '--hash-size',
        type=int,
        default=None,
        help='Hash grid edge, 1-64 (bits = size * size). Default: 8'
    )

    scan.add_argument(
        '--quality-factor',
        type=float,
        default=None,
        help='DCT working grid scale in (0.0, 1.0]. Default: 1.0'
    )

    scan.add_argument(
        '--max-dimension',
        type=int,
        default=None,
        help='Downscale images whose longer side exceeds this many pixels'
    )

    # Performance options
    scan.add_argument(
        '-t', '--threads',
        type=int,
        default=None,
        help='Maximum concurrent decode+hash operations. Default: 2 x CPU count'
    )

    scan.add_argument(
        '--batch-size',
        type=int,
        default=None,
        help='Entries written per persistence batch. Default: 50'
    )

    scan.add_argument(
        '--buffer-size',
        type=int,
        default=None,
        help='Capacity of the work and result channels. Default: 100'
    )

    scan.add_argument(
        '-c', '--config',
        type=Path,
        default=None,
        help='Read settings from this JSON config file'
    )

    scan.add_argument(
        '--no-progress',
        action='store_true',
        help='Disable the progress bar (errors are still reported)'
    )


def _add_find_dups_parser(subparsers) -> None:
    find_dups = subparsers.add_parser(
        'find-dups',
        help='Group similar images from a hash document',
    )

    find_dups.add_argument(
        'input',
        type=Path,
        nargs='?',
        default=Path(DEFAULT_HASH_DATABASE),
        help=f'Hash document produced by scan. Default: {DEFAULT_HASH_DATABASE}'
    )

    find_dups.add_argument(
        '-o', '--output',
        type=Path,
        default=Path(DEFAULT_DUPLICATES_FILE),
        help=f'Duplicate report to write. Default: {DEFAULT_DUPLICATES_FILE}'
    )

    find_dups.add_argument(
        '-t', '--threshold',
        type=int,
        default=None,
        help='Maximum Hamming distance for duplicates (lower=stricter). Default: 5'
    )

    find_dups.add_argument(
        '--no-progress',
        action='store_true',
        help='Disable the comparison progress bar'
    )


def _add_config_parser(subparsers) -> None:
    config = subparsers.add_parser(
        'config',
        help='Show the effective configuration or create an example file',
    )
    config.add_argument(
        '-i', '--init',
        action='store_true',
        help='Create an example config file'
    )


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance with scan, find-dups and config
        subcommands
    """
    parser = argparse.ArgumentParser(
        prog='image-dedup',
        description='Find visually similar images with perceptual hashes',
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Verbose output'
    )

    subparsers = parser.add_subparsers(dest='command', metavar='COMMAND')
    _add_scan_parser(subparsers)
    _add_find_dups_parser(subparsers)
    _add_config_parser(subparsers)

    # -v is accepted after the subcommand as well
    for subparser in subparsers.choices.values():
        subparser.add_argument(
            '-v', '--verbose',
            action='store_true',
            default=argparse.SUPPRESS,
            help='Verbose output'
        )

    return parser


def parse_arguments(argv=None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: List of argument strings (default: sys.argv)

    Examples:
        >>> args = parse_arguments(['scan', '/path/to/photos', '-t', '4'])
        >>> args.threads
        4
    """
    parser = create_parser()
    return parser.parse_args(argv)


__all__ = [
    'create_parser',
    'parse_arguments',
]
