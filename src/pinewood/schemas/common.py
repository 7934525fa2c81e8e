"""Shared schema pieces: camelCase wire models, flags, change descriptors.

Learn: The legacy schema and the browser clients both speak camelCase
(`eventId`, `enableVoting`), so every wire model uses an alias generator
while Python code keeps snake_case attributes.

MySQL returns BIT(1) columns as raw bytes (b"\\x01"); FlagBool converts
those to real booleans before a row reaches a response or a push.
"""

from collections.abc import Iterable, Sequence
from typing import Annotated, Any, Literal, Optional, Union, get_args

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel

TableName = Literal["user", "event", "car"]
TABLE_NAMES: frozenset[str] = frozenset(get_args(TableName))


def normalize_bool(value: Any) -> Any:
    """Turn a byte-sequence flag into a bool (first byte == 1)."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        value = bytes(value)
        return len(value) > 0 and value[0] == 1
    return value


FlagBool = Annotated[bool, BeforeValidator(normalize_bool)]


class CamelModel(BaseModel):
    """Base for wire models: camelCase aliases, readable from ORM objects."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class DeletedIds(BaseModel):
    ids: list[Union[int, str]]


class ChangeDescriptor(BaseModel):
    """What a successful write changed: one table, its rows or removed ids."""

    table: TableName
    data: Union[list[dict[str, Any]], DeletedIds]
    deleted: Optional[bool] = None

    @classmethod
    def rows(cls, table: TableName, rows: Sequence[CamelModel]) -> "ChangeDescriptor":
        return cls(table=table, data=[row.to_wire() for row in rows])

    @classmethod
    def removed(cls, table: TableName, ids: Iterable[Union[int, str]]) -> "ChangeDescriptor":
        return cls(table=table, data=DeletedIds(ids=list(ids)), deleted=True)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


def mutation_response(descriptors: Sequence[ChangeDescriptor]) -> dict[str, Any]:
    """Body returned by every successful create/update/delete."""
    return {"success": True, "update": [d.to_payload() for d in descriptors]}
