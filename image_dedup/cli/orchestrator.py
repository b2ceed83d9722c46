"""
CLI workflow orchestration for Image Dedup.

Provides the CLIOrchestrator class that runs one subcommand from argument
parsing through final reporting and maps the outcome to an exit code.
"""

from __future__ import annotations

import argparse
import logging
from typing import Optional

from ..errors import ImageDedupError
from ..factories import EngineFactory
from ..grouping import find_duplicates_in_scan, save_duplicate_report
from ..persistence import load_scan_result
from ..reporting import ConsoleProgressReporter, TqdmProgressReporter
from ..user_config import get_user_config
from .arg_parser import create_parser
from .reporting import print_duplicate_report, print_scan_summary


def setup_logging(verbose: bool = False) -> logging.Logger:
    """
    Configure logging for the CLI.

    Args:
        verbose: Enable verbose (DEBUG level) logging

    Returns:
        Configured logger instance
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    return logging.getLogger(__name__)


class CLIOrchestrator:
    """
    Runs the scan, find-dups and config subcommands.

    Every subcommand returns 0 on success and 1 on failure; fatal errors are
    logged rather than raised.
    """

    def __init__(self, argv: Optional[list[str]] = None):
        self.argv = argv
        self.logger = logging.getLogger(__name__)
        self.args: Optional[argparse.Namespace] = None
        self.summary = None
        self.groups = []

    def run(self) -> int:
        """
        Parse arguments, configure logging and dispatch.

        Returns:
            Exit code (0 for success, 1 for error)
        """
        parser = create_parser()
        self.args = parser.parse_args(self.argv)
        self.logger = setup_logging(self.args.verbose)

        handlers = {
            'scan': self._scan_command,
            'find-dups': self._find_dups_command,
            'config': self._config_command,
        }
        handler = handlers.get(self.args.command)
        if handler is None:
            parser.print_help()
            return 1

        try:
            return handler()
        except KeyboardInterrupt:
            self.logger.error("Interrupted.")
            return 1

    def _scan_command(self) -> int:
        args = self.args
        user_config = get_user_config()

        try:
            if args.config is not None:
                user_config.use_config_file(args.config)
        except ImageDedupError as e:
            self.logger.error(str(e))
            return 1

        if not args.directory.is_dir():
            self.logger.error(f"Directory not found: {args.directory}")
            return 1

        if args.output.exists() and not args.force:
            self.logger.error(
                f"Output file already exists: {args.output}. Use --force to overwrite."
            )
            return 1

        show_progress = not args.no_progress
        try:
            hash_settings = user_config.hash_settings(
                algorithm=args.algorithm,
                size=args.hash_size,
                quality_factor=args.quality_factor,
            )
            hash_settings.validate()
            config = user_config.processing_config(
                max_concurrent_tasks=args.threads,
                channel_buffer_size=args.buffer_size,
                batch_size=args.batch_size,
                enable_progress_reporting=False if args.no_progress else None,
            )
            config.validate()
            max_dimension = (
                args.max_dimension if args.max_dimension is not None
                else user_config.max_dimension
            )

            reporter = TqdmProgressReporter() if show_progress else ConsoleProgressReporter()
            engine = EngineFactory.build(
                output_path=args.output,
                hash_settings=hash_settings,
                config=config,
                max_dimension=max_dimension,
                reporter=reporter,
            )

            self.logger.info(
                f"Algorithm: {engine.hasher.algorithm_name} "
                f"({engine.hasher.algorithm.bit_length} bits), "
                f"concurrency: {config.max_concurrent_tasks}"
            )
            self.summary = engine.process_directory(args.directory)
        except ImageDedupError as e:
            self.logger.error(f"Scan failed: {e}")
            return 1

        print_scan_summary(self.summary, args.output, self.logger)
        return 0

    def _find_dups_command(self) -> int:
        args = self.args
        threshold = args.threshold
        if threshold is None:
            threshold = get_user_config().default_threshold

        try:
            scan = load_scan_result(args.input)
            self.logger.info(
                f"Loaded {len(scan.images):,} hashes ({scan.scan_info.algorithm}) from {args.input}"
            )
            self.groups = find_duplicates_in_scan(
                scan, threshold, show_progress=not args.no_progress
            )
            save_duplicate_report(self.groups, threshold, args.output)
        except ImageDedupError as e:
            self.logger.error(f"find-dups failed: {e}")
            return 1

        file_sizes = {entry.file_path: entry.metadata.file_size for entry in scan.images}
        print_duplicate_report(self.groups, threshold, self.logger, file_sizes)
        self.logger.info(f"Duplicate report written to: {args.output}")
        return 0

    def _config_command(self) -> int:
        config = get_user_config()

        if self.args.init:
            if config.create_example_config():
                print("Created example configuration file at:")
                print(f"  {config.config_file_path}")
                return 0
            print("Failed to create configuration file.")
            return 1

        print(f"Configuration file: {config.config_file_path}")
        if config.config_file_path.exists():
            print("Status: found")
        else:
            print("Status: not found (using defaults)")
            print("\nRun 'image-dedup config --init' to create one.")

        print("\nCurrent settings:")
        print(f"  algorithm: {config.algorithm}")
        print(f"  hash_size: {config.hash_size}")
        print(f"  quality_factor: {config.quality_factor}")
        print(f"  max_concurrent_tasks: {config.max_concurrent_tasks}")
        print(f"  channel_buffer_size: {config.channel_buffer_size}")
        print(f"  batch_size: {config.batch_size}")
        print(f"  max_dimension: {config.max_dimension}")
        print(f"  default_threshold: {config.default_threshold}")
        return 0


__all__ = ['CLIOrchestrator', 'setup_logging']
