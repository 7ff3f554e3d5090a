#!/usr/bin/env python3
"""
Apply every pending database migration, in file name order.

    python -m scripts.run_migrations
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add the app to the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from backoffice.core.logging import setup_logging
from backoffice.database.connection import Database
from backoffice.database.migrations import MigrationError, MigrationRunner

logger = logging.getLogger("scripts.run_migrations")


async def main() -> int:
    db = Database()
    try:
        ran = await MigrationRunner(db).run_migrations()
    except MigrationError as e:
        logger.error(f"Migration run failed: {e}")
        return 1
    finally:
        await db.close()
    logger.info(f"{len(ran)} migration(s) applied")
    return 0


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(main()))
