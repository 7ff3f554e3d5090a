"""Store created_at and updated_at with microsecond precision.

Second-resolution TIMESTAMP columns let an update made in the same second as
the insert keep the original updated_at.
"""
from backoffice.database.connection import Database

TABLES = ("users", "stores", "planograms", "submissions", "uploads")


async def up(db: Database) -> None:
    for table in TABLES:
        await db.execute(
            f"""
            ALTER TABLE {table}
                MODIFY created_at TIMESTAMP(6) DEFAULT CURRENT_TIMESTAMP(6),
                MODIFY updated_at TIMESTAMP(6) DEFAULT CURRENT_TIMESTAMP(6) ON UPDATE CURRENT_TIMESTAMP(6)
            """
        )


async def down(db: Database) -> None:
    for table in reversed(TABLES):
        await db.execute(
            f"""
            ALTER TABLE {table}
                MODIFY created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                MODIFY updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP
            """
        )
