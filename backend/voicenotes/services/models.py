"""
Data models for notes storage and sync.

Uses Pydantic for validation and serialization. Field names are snake_case in
Python and camelCase on the wire, matching the index the browser app wrote.
"""

from typing import List

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class NoteRecord(BaseModel):
    """Index entry for one note; the text lives under ``content_key``."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    content_key: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("contentKey", "content_key", "filePath"),
        serialization_alias="contentKey",
    )
    title: str
    created_at: int = Field(
        ...,
        validation_alias=AliasChoices("createdAt", "created_at"),
        serialization_alias="createdAt",
        description="Epoch milliseconds",
    )
    updated_at: int = Field(
        ...,
        validation_alias=AliasChoices("updatedAt", "updated_at"),
        serialization_alias="updatedAt",
        description="Epoch milliseconds",
    )


class Tombstone(BaseModel):
    """Marks a locally deleted note so a stale remote copy is not merged back."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    deleted_at: int = Field(
        ...,
        validation_alias=AliasChoices("deletedAt", "deleted_at"),
        serialization_alias="deletedAt",
    )


class Note(BaseModel):
    """Complete note: index entry plus content"""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    id: str
    title: str
    content: str
    content_key: str
    created_at: int
    updated_at: int

    @classmethod
    def from_record(cls, record: NoteRecord, content: str) -> "Note":
        return cls(
            id=record.id,
            title=record.title,
            content=content,
            content_key=record.content_key,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


NoteIndexAdapter = TypeAdapter(List[NoteRecord])
TombstoneListAdapter = TypeAdapter(List[Tombstone])


def dump_index(records: List[NoteRecord]) -> str:
    return NoteIndexAdapter.dump_json(records, by_alias=True).decode()


def dump_tombstones(tombstones: List[Tombstone]) -> str:
    return TombstoneListAdapter.dump_json(tombstones, by_alias=True).decode()


def sort_index(records: List[NoteRecord]) -> List[NoteRecord]:
    """Canonical listing order: most recently updated first."""
    return sorted(records, key=lambda r: r.updated_at, reverse=True)
