"""Record-table schemas for the ERPAI data API."""

from typing import Any

from pydantic import BaseModel, Field


class ColumnOption(BaseModel):
    id: int
    name: str


class ColumnMeta(BaseModel):
    id: str
    name: str
    type: str
    options: list[ColumnOption] | None = None
    ref_table: dict[str, Any] | None = Field(None, alias="refTable")


class TableMeta(BaseModel):
    id: str = Field(..., alias="_id")
    name: str
    columns: list[ColumnMeta] = Field(default_factory=list, alias="columnsMetaData")


class RecordPage(BaseModel):
    """One page of friendly records."""
    data: list[dict[str, Any]]
    total_count: int


class RecordCount(BaseModel):
    table: str
    count: int
