"""
Relation population: enrich a batch of rows with their related records.

Each relation is fetched with one multi-get over the distinct foreign keys
of the batch. A failed lookup nulls that relation for the batch and is
logged; it never fails the request.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from backoffice.database.record_store import RecordStore
from backoffice.domain.entities import Entity

logger = logging.getLogger(__name__)

SENSITIVE_FIELDS = frozenset({"password_hash"})

USER_SUMMARY_FIELDS = ("id", "email", "first_name", "last_name", "profile_picture", "role")
STORE_SUMMARY_FIELDS = ("id", "name", "address", "image_src")
PLANOGRAM_SUMMARY_FIELDS = ("id", "name", "description", "image_src")
UPLOAD_FIELDS = (
    "id",
    "filename",
    "size",
    "content_type",
    "uploaded_at",
    "uploaded_by_id",
    "store_id",
    "planogram_id",
    "submission_id",
    "created_at",
    "updated_at",
)


@dataclass(frozen=True)
class Relation:
    """A foreign key on the row resolved against another table.

    ``fields`` is the allow-list copied into the nested object. With
    ``many=True`` the foreign key holds a list of ids and the relation
    becomes a list in the same order, without the ids that were not found.
    """

    name: str
    foreign_key: str
    store: RecordStore
    fields: tuple[str, ...]
    many: bool = False
    decorate: Optional[Callable[[dict], dict]] = None

    def summarize(self, record: Entity) -> dict:
        summary = {field: getattr(record, field, None) for field in self.fields if field not in SENSITIVE_FIELDS}
        return self.decorate(summary) if self.decorate else summary


def to_payload(row: Entity) -> dict:
    """A row as a response dict, without sensitive fields."""
    return row.model_dump(exclude=set(SENSITIVE_FIELDS))


class RelationPopulator:

    def __init__(self, relations: Sequence[Relation]):
        self.relations = tuple(relations)

    async def _fetch(self, relation: Relation, rows: Sequence[Entity]) -> Optional[dict[Any, dict]]:
        ids = []
        for row in rows:
            value = getattr(row, relation.foreign_key, None)
            if relation.many:
                ids.extend(value or [])
            elif value:
                ids.append(value)
        if not ids:
            return {}
        try:
            records = await relation.store.find_by_ids(ids)
        except Exception as e:
            logger.warning(f"Failed to populate '{relation.name}' for {len(rows)} rows: {e}")
            return None
        return {record.id: relation.summarize(record) for record in records}

    async def populate(self, rows: Sequence[Entity]) -> list[dict]:
        """Return one payload per row, each carrying its nested relations."""
        payloads = [to_payload(row) for row in rows]
        if not rows:
            return payloads

        fetched = await asyncio.gather(*(self._fetch(relation, rows) for relation in self.relations))

        for relation, related in zip(self.relations, fetched):
            for row, payload in zip(rows, payloads):
                key = getattr(row, relation.foreign_key, None)
                if relation.many:
                    if related is None:
                        payload[relation.name] = []
                    else:
                        payload[relation.name] = [related[i] for i in key or [] if i in related]
                elif related is None or not key:
                    payload[relation.name] = None
                else:
                    payload[relation.name] = related.get(key)
        return payloads

    async def populate_one(self, row: Optional[Entity]) -> Optional[dict]:
        if row is None:
            return None
        payloads = await self.populate([row])
        return payloads[0]
