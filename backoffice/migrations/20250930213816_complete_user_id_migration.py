"""Switch users.id and the users audit columns from integers to CHAR(36) UUIDs.

Existing integer ids are replaced by fresh UUIDs and the integer audit
references are dropped, so the change cannot be undone.
"""
import logging

from backoffice.database.connection import Database
from backoffice.database.migrations import irreversible

logger = logging.getLogger(__name__)


async def _columns(db: Database) -> dict[str, str]:
    rows = await db.fetch_all("DESCRIBE users")
    return {row["Field"]: str(row["Type"]).lower() for row in rows}


async def up(db: Database) -> None:
    columns = await _columns(db)
    logger.info(f"Current users table columns: {list(columns)}")

    if columns.get("id", "").startswith("int") and "id_new" not in columns:
        logger.info("Adding id_new and filling it with UUIDs...")
        await db.execute("ALTER TABLE users ADD COLUMN id_new CHAR(36) NULL")
        await db.execute("UPDATE users SET id_new = UUID()")
        await db.execute("ALTER TABLE users MODIFY id INT NOT NULL")
        await db.execute("ALTER TABLE users DROP PRIMARY KEY, DROP COLUMN id")
        columns = await _columns(db)

    if "id_new" in columns:
        logger.info("Renaming id_new to id...")
        await db.execute("ALTER TABLE users CHANGE COLUMN id_new id CHAR(36) NOT NULL")
        await db.execute("ALTER TABLE users ADD PRIMARY KEY (id)")
    else:
        logger.info("id_new column does not exist, skipping...")

    for column in ("created_by_id", "updated_by_id"):
        if columns.get(column, "").startswith("int"):
            logger.info(f"Converting {column} to CHAR(36)...")
            await db.execute(f"UPDATE users SET {column} = NULL")
            await db.execute(f"ALTER TABLE users MODIFY {column} CHAR(36) NULL")

    logger.info("Users id migration completed")


down = irreversible(
    "This migration cannot be reversed automatically. Please restore from backup."
)
