#!/usr/bin/env python3
"""
Revert the most recently applied database migration.

    python -m scripts.revert_migration
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add the app to the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from backoffice.core.logging import setup_logging
from backoffice.database.connection import Database
from backoffice.database.migrations import IrreversibleMigrationError, MigrationError, MigrationRunner

logger = logging.getLogger("scripts.revert_migration")


async def main() -> int:
    db = Database()
    try:
        name = await MigrationRunner(db).revert_last_migration()
    except IrreversibleMigrationError as e:
        logger.error(f"Cannot revert: {e}")
        return 2
    except MigrationError as e:
        logger.error(f"Revert failed: {e}")
        return 1
    finally:
        await db.close()
    if name:
        logger.info(f"Reverted {name}")
    return 0


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(main()))
