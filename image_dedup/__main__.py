"""
Allow running the package with: python -m image_dedup

Examples:
    python -m image_dedup scan /path/to/photos -o hashes.json
    python -m image_dedup find-dups hashes.json -t 5
    python -m image_dedup config --init
"""

import sys

from .cli import main


if __name__ == '__main__':
    sys.exit(main())
