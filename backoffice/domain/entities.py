"""
Typed entity records and their table mappings.

Each entity declares its table and any logical field whose physical column
name differs. The field -> column mapping is built once per entity type by
``table_mapping`` and is the only way field names reach SQL text.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from functools import lru_cache
from typing import Any, ClassVar, Mapping, Optional

from pydantic import BaseModel, ValidationInfo, field_validator


class InvalidQueryError(ValueError):
    """A field name or sort order that an entity table does not allow."""


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    USER = "USER"


class Entity(BaseModel):
    table_name: ClassVar[str]
    column_overrides: ClassVar[dict[str, str]] = {}
    json_fields: ClassVar[frozenset[str]] = frozenset()

    id: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _keys_as_str(cls, value, info: ValidationInfo):
        """Integer keys (auto-increment ids and references to them) are read as strings."""
        if isinstance(value, int) and not isinstance(value, bool):
            if info.field_name == "id" or info.field_name.endswith("_id"):
                return str(value)
        return value


class User(Entity):
    table_name: ClassVar[str] = "users"
    column_overrides: ClassVar[dict[str, str]] = {"password_hash": "password"}

    email: str
    password_hash: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    google_id: Optional[str] = None
    profile_picture: Optional[str] = None
    is_confirmed: bool = False
    lang: Optional[str] = "en"
    theme: Optional[str] = "light"
    last_password_reset_at: Optional[datetime] = None
    last_email_confirmation_at: Optional[datetime] = None
    role: UserRole = UserRole.USER
    created_by_id: Optional[str] = None
    updated_by_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Store(Entity):
    table_name: ClassVar[str] = "stores"

    name: str
    address: Optional[str] = None
    image_src: Optional[str] = None
    created_by_id: Optional[str] = None
    updated_by_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Planogram(Entity):
    table_name: ClassVar[str] = "planograms"

    name: str
    description: str
    image_src: Optional[str] = None
    store_id: str
    created_by_id: Optional[str] = None
    updated_by_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Submission(Entity):
    table_name: ClassVar[str] = "submissions"
    json_fields: ClassVar[frozenset[str]] = frozenset({"upload_ids"})

    uploaded_at: Optional[datetime] = None
    uploaded_by_id: str
    store_id: str
    planogram_id: str
    upload_ids: list[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("upload_ids", mode="before")
    @classmethod
    def _null_upload_ids(cls, value):
        return [] if value is None else value


class Upload(Entity):
    table_name: ClassVar[str] = "uploads"
    column_overrides: ClassVar[dict[str, str]] = {
        "size": "filesize",
        "content_type": "file_type",
    }

    filename: str
    size: str
    content_type: str
    uploaded_at: Optional[datetime] = None
    uploaded_by_id: str
    store_id: str
    planogram_id: str
    submission_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class TableMapping:
    table: str
    columns: Mapping[str, str]
    json_fields: frozenset[str]

    @property
    def fields_by_column(self) -> dict[str, str]:
        return {column: field for field, column in self.columns.items()}

    def column(self, field: str) -> str:
        """Resolve a logical field name to its physical column."""
        try:
            return self.columns[field]
        except KeyError:
            raise InvalidQueryError(f"Unknown field '{field}' for table '{self.table}'") from None

    def encode(self, field: str, value: Any) -> Any:
        if value is None:
            return None
        if field in self.json_fields:
            return json.dumps(value)
        if isinstance(value, Enum):
            return value.value
        return value

    def to_row(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        """Translate logical fields to a column -> value dict ready for binding."""
        return {self.column(field): self.encode(field, value) for field, value in fields.items()}

    def from_row(self, row: Mapping[str, Any]) -> dict[str, Any]:
        """Translate a fetched row back to logical field names."""
        by_column = self.fields_by_column
        data = {}
        for column, value in row.items():
            field = by_column.get(column)
            if field is None:
                continue
            if field in self.json_fields and isinstance(value, (str, bytes)):
                value = json.loads(value)
            data[field] = value
        return data


@lru_cache(maxsize=None)
def table_mapping(entity: type[Entity]) -> TableMapping:
    columns = {
        name: entity.column_overrides.get(name, name)
        for name in entity.model_fields
    }
    return TableMapping(
        table=entity.table_name,
        columns=columns,
        json_fields=frozenset(entity.json_fields),
    )
