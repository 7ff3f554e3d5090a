"""
Sequential schema migrations tracked in a MySQL table.

Migration units are Python files in a directory, applied in ascending file
name order. Each module defines ``async def up(db)`` and ``async def down(db)``
taking the ``Database``. Applied unit names are recorded in the
``migrations`` table; the unique name constraint rejects a second record.
"""

import importlib.util
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, Optional, Sequence

from backoffice.core.config import get_settings
from backoffice.core.time_utils import utcnow
from backoffice.database.connection import Database

logger = logging.getLogger(__name__)

MigrationFn = Callable[[Database], Awaitable[None]]


class MigrationError(RuntimeError):
    """A migration run or revert could not complete."""


class IrreversibleMigrationError(MigrationError):
    """The unit's forward change cannot be undone automatically."""


@dataclass(frozen=True)
class Migration:
    name: str
    up: MigrationFn
    down: MigrationFn


@dataclass(frozen=True)
class MigrationStatus:
    executed: list[str]
    pending: list[str]


def irreversible(reason: str) -> MigrationFn:
    """Build a ``down`` that always refuses to revert."""
    async def down(db: Database) -> None:
        raise IrreversibleMigrationError(reason)
    return down


def load_migrations(directory: str | Path) -> list[Migration]:
    """Import every migration module in ``directory``, sorted by name."""
    path = Path(directory)
    if not path.is_dir():
        raise MigrationError(f"Migrations directory not found: {path}")

    migrations = []
    for file in sorted(path.glob("*.py")):
        if file.name.startswith("_"):
            continue
        spec = importlib.util.spec_from_file_location(f"_migration_{file.stem}", file)
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        up = getattr(module, "up", None)
        down = getattr(module, "down", None)
        if not callable(up) or not callable(down):
            raise MigrationError(f"Migration {file.name} must define up() and down()")
        migrations.append(Migration(name=file.stem, up=up, down=down))
    return migrations


class MigrationStorage:
    """Keeps the names of applied migrations in a table."""

    def __init__(self, db: Database, table_name: str = "migrations"):
        self.db = db
        self.table_name = table_name

    async def ensure_table(self) -> None:
        await self.db.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self.table_name} (
                id INT AUTO_INCREMENT PRIMARY KEY,
                name VARCHAR(255) NOT NULL UNIQUE,
                executed_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """
        )

    async def executed(self) -> list[str]:
        rows = await self.db.fetch_all(
            f"SELECT name FROM {self.table_name} ORDER BY executed_at ASC, name ASC"
        )
        return [row["name"] for row in rows]

    async def log(self, name: str) -> None:
        await self.db.execute(f"INSERT INTO {self.table_name} (name) VALUES (%s)", [name])

    async def unlog(self, name: str) -> None:
        await self.db.execute(f"DELETE FROM {self.table_name} WHERE name = %s", [name])


class MigrationRunner:

    def __init__(
        self,
        db: Database,
        migrations: Optional[Sequence[Migration]] = None,
        storage: Optional[MigrationStorage] = None,
        directory: str | Path | None = None,
    ):
        self.db = db
        if migrations is None:
            migrations = load_migrations(directory or get_settings().migrations_dir)
        names = [m.name for m in migrations]
        if len(set(names)) != len(names):
            raise MigrationError("Duplicate migration names")
        self.migrations = sorted(migrations, key=lambda m: m.name)
        self.storage = storage or MigrationStorage(db)

    async def _check_connection(self) -> None:
        try:
            await self.db.fetch_one("SELECT 1")
        except Exception as e:
            logger.error(f"Database connection not ready: {e}")
            raise MigrationError("Database is not reachable") from e

    async def status(self) -> MigrationStatus:
        await self.storage.ensure_table()
        executed = await self.storage.executed()
        applied = set(executed)
        pending = [m.name for m in self.migrations if m.name not in applied]
        logger.info(f"Executed migrations: {executed}")
        logger.info(f"Pending migrations: {pending}")
        return MigrationStatus(executed=executed, pending=pending)

    async def run_migrations(self) -> list[str]:
        """Apply every pending unit in order, stopping at the first failure."""
        await self._check_connection()
        status = await self.status()
        pending = set(status.pending)

        ran = []
        for migration in self.migrations:
            if migration.name not in pending:
                continue
            logger.info(f"Migrating {migration.name}")
            try:
                await migration.up(self.db)
            except Exception as e:
                logger.error(f"Migration {migration.name} failed: {e}")
                raise MigrationError(f"Migration {migration.name} failed: {e}") from e
            await self.storage.log(migration.name)
            ran.append(migration.name)
            logger.info(f"Migrated {migration.name}")

        if ran:
            logger.info(f"Successfully ran migrations: {ran}")
        else:
            logger.info("No pending migrations")
        return ran

    async def revert_last_migration(self) -> Optional[str]:
        """Revert the most recently applied unit; None when nothing is applied."""
        await self._check_connection()
        executed = (await self.status()).executed
        if not executed:
            logger.info("No executed migrations to revert")
            return None

        name = executed[-1]
        migration = next((m for m in self.migrations if m.name == name), None)
        if migration is None:
            raise MigrationError(f"Migration {name} is recorded but its file is missing")

        logger.info(f"Reverting {name}")
        try:
            await migration.down(self.db)
        except IrreversibleMigrationError:
            logger.error(f"Migration {name} cannot be reverted automatically")
            raise
        except Exception as e:
            logger.error(f"Reverting {name} failed: {e}")
            raise MigrationError(f"Reverting {name} failed: {e}") from e
        await self.storage.unlog(name)
        logger.info(f"Reverted {name}")
        return name


MIGRATION_TEMPLATE = '''from backoffice.database.connection import Database


async def up(db: Database) -> None:
    await db.execute(
        """
        -- SQL statements for migrating up
        """
    )


async def down(db: Database) -> None:
    await db.execute(
        """
        -- SQL statements for migrating down
        """
    )
'''


def create_migration(name: str, directory: str | Path, now: datetime | None = None) -> Path:
    """Write an empty migration file named ``YYYYMMDDHHMMSS_<name>.py``."""
    slug = re.sub(r"[^0-9a-zA-Z]+", "_", name).strip("_").lower()
    if not slug:
        raise ValueError("Migration name must contain letters or digits")
    timestamp = (now or utcnow()).strftime("%Y%m%d%H%M%S")
    path = Path(directory)
    path.mkdir(parents=True, exist_ok=True)
    target = path / f"{timestamp}_{slug}.py"
    if target.exists():
        raise FileExistsError(target)
    target.write_text(MIGRATION_TEMPLATE)
    logger.info(f"Migration file created: {target.name}")
    return target
