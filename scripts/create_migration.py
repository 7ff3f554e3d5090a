#!/usr/bin/env python3
"""
Create an empty, timestamped migration file.

    python -m scripts.create_migration add_store_code
"""

import argparse
import sys
from pathlib import Path

# Add the app to the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from backoffice.core.config import get_settings
from backoffice.core.logging import setup_logging
from backoffice.database.migrations import create_migration


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("name", help="Short description, e.g. add_store_code")
    parser.add_argument("--dir", default=None, help="Migrations directory")
    args = parser.parse_args(argv)

    path = create_migration(args.name, args.dir or get_settings().migrations_dir)
    print(f"Created {path}")
    return 0


if __name__ == "__main__":
    setup_logging()
    sys.exit(main())
