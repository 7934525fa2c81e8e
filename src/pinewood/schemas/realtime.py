"""Pydantic schemas for the subscribe endpoint."""

from pinewood.schemas.common import CamelModel, TableName


class SubscribeRequest(CamelModel):
    connection_id: str
    tables: list[TableName]


class SubscribeResponse(CamelModel):
    connection_id: str
    tables: list[TableName]
