"""
Generic record store: CRUD, filtering, search and sort over one entity table.

Every field name is resolved through the entity's table mapping before it is
placed in statement text; values are always bound parameters.
"""

from typing import Any, Generic, Iterable, Mapping, Optional, Sequence, TypeVar

from backoffice.core.time_utils import utcnow
from backoffice.database.connection import Database, ExecuteResult
from backoffice.domain.entities import Entity, InvalidQueryError, table_mapping

E = TypeVar("E", bound=Entity)

SORT_ORDERS = ("ASC", "DESC")


def quote(identifier: str) -> str:
    return f"`{identifier}`"


def compact(fields: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    """Drop entries whose value is None or an empty string."""
    if not fields:
        return {}
    return {key: value for key, value in fields.items() if value is not None and value != ""}


class RecordStore(Generic[E]):
    """Data access for a single entity table."""

    def __init__(self, db: Database, entity: type[E]):
        self.db = db
        self.entity = entity
        self.mapping = table_mapping(entity)
        self.table = quote(self.mapping.table)
        self.id_column = quote(self.mapping.column("id"))

    def _to_entity(self, row: Mapping[str, Any]) -> E:
        return self.entity.model_validate(self.mapping.from_row(row))

    def _equalities(self, fields: Mapping[str, Any]) -> tuple[list[str], list[Any]]:
        conditions = []
        values = []
        for field, value in fields.items():
            conditions.append(f"{quote(self.mapping.column(field))} = %s")
            values.append(self.mapping.encode(field, value))
        return conditions, values

    async def _select(self, where: Sequence[str] = (), values: Sequence[Any] = (), suffix: str = "") -> list[E]:
        sql = f"SELECT * FROM {self.table}"
        if where:
            sql += " WHERE " + " AND ".join(where)
        if suffix:
            sql += " " + suffix
        rows = await self.db.fetch_all(sql, list(values))
        return [self._to_entity(row) for row in rows]

    async def find_all(self) -> list[E]:
        return await self._select()

    async def find_all_by_filter(self, filter: Optional[Mapping[str, Any]] = None) -> list[E]:
        """Rows matching equality on every non-empty filter entry."""
        entries = compact(filter)
        if not entries:
            return await self.find_all()
        conditions, values = self._equalities(entries)
        return await self._select(conditions, values)

    async def find_by_id(self, id: str | int) -> Optional[E]:
        rows = await self._select([f"{self.id_column} = %s"], [id])
        return rows[0] if rows else None

    async def find_by_ids(self, ids: Iterable[str | int]) -> list[E]:
        """Rows whose id is in ``ids``, in a single round trip."""
        unique = list(dict.fromkeys(i for i in ids if i is not None))
        if not unique:
            return []
        placeholders = ", ".join(["%s"] * len(unique))
        return await self._select([f"{self.id_column} IN ({placeholders})"], unique)

    async def find_by_condition(self, condition: Mapping[str, Any]) -> Optional[E]:
        """First row matching equality on all given fields."""
        if not condition:
            raise InvalidQueryError("find_by_condition requires at least one field")
        conditions, values = self._equalities(condition)
        rows = await self._select(conditions, values, suffix="LIMIT 1")
        return rows[0] if rows else None

    async def create(self, fields: Mapping[str, Any]) -> E:
        """Insert a row.

        When the caller supplied an id the stored row is read back, so column
        defaults are visible. Otherwise the input is returned merged with the
        id assigned by the database.
        """
        row = self.mapping.to_row(fields)
        columns = ", ".join(quote(column) for column in row)
        placeholders = ", ".join(["%s"] * len(row))
        result = await self.db.execute(
            f"INSERT INTO {self.table} ({columns}) VALUES ({placeholders})",
            list(row.values()),
        )
        if fields.get("id") is not None:
            return await self.find_by_id(fields["id"])
        # PyMySQL reports 0 when the table has no auto-increment column
        assigned = str(result.lastrowid) if result.lastrowid else None
        return self.entity.model_validate({**fields, "id": assigned})

    async def update(self, id: str | int, fields: Mapping[str, Any]) -> Optional[E]:
        """Set only the given fields (plus updated_at) and return the row as stored."""
        changes = dict(fields)
        if "updated_at" in self.mapping.columns and "updated_at" not in changes:
            changes["updated_at"] = utcnow()
        if changes:
            row = self.mapping.to_row(changes)
            assignments = ", ".join(f"{quote(column)} = %s" for column in row)
            await self.db.execute(
                f"UPDATE {self.table} SET {assignments} WHERE {self.id_column} = %s",
                [*row.values(), id],
            )
        return await self.find_by_id(id)

    async def delete(self, id: str | int) -> ExecuteResult:
        return await self.db.execute(f"DELETE FROM {self.table} WHERE {self.id_column} = %s", [id])

    async def find_all_with_search_and_sort(
        self,
        search: Optional[str] = None,
        search_columns: Sequence[str] = (),
        sort_by: Optional[str] = None,
        sort_order: str = "ASC",
        filter: Optional[Mapping[str, Any]] = None,
    ) -> list[E]:
        """Equality filter AND substring search across columns, sorted by one column."""
        conditions, values = self._equalities(compact(filter))

        if search and search_columns:
            likes = [f"{quote(self.mapping.column(field))} LIKE %s" for field in search_columns]
            conditions.append("(" + " OR ".join(likes) + ")")
            values.extend(f"%{search}%" for _ in search_columns)

        suffix = ""
        if sort_by:
            order = (sort_order or "ASC").upper()
            if order not in SORT_ORDERS:
                raise InvalidQueryError(f"Invalid sort order '{sort_order}', expected ASC or DESC")
            suffix = f"ORDER BY {quote(self.mapping.column(sort_by))} {order}"

        return await self._select(conditions, values, suffix)
