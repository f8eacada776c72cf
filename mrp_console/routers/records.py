"""Record CRUD endpoints over the ERPAI tables."""

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from mrp_console.adapters.base import RecordBackend
from mrp_console.dependencies import get_erpai
from mrp_console.schemas.records import RecordCount, RecordPage
from mrp_console.tables import ALL_TABLES

router = APIRouter()


def known_table(table: str) -> str:
    if table not in ALL_TABLES:
        raise HTTPException(status_code=404, detail=f"Unknown table: {table}")
    return table


@router.get("/{table}", response_model=RecordPage)
async def list_records(
    table: str = Depends(known_table),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    q: str | None = None,
    backend: RecordBackend = Depends(get_erpai),
):
    return await backend.list_records(table, page, page_size, q)


@router.get("/{table}/all")
async def list_all_records(
    table: str = Depends(known_table), backend: RecordBackend = Depends(get_erpai)
) -> list[dict[str, Any]]:
    return await backend.list_all_records(table)


@router.get("/{table}/count", response_model=RecordCount)
async def count_records(table: str = Depends(known_table), backend: RecordBackend = Depends(get_erpai)):
    return RecordCount(table=table, count=await backend.count_records(table))


@router.get("/{table}/{record_id}")
async def get_record(
    record_id: str, table: str = Depends(known_table), backend: RecordBackend = Depends(get_erpai)
) -> dict[str, Any]:
    return await backend.get_record(table, record_id)


@router.post("/{table}", status_code=201)
async def create_record(
    data: dict[str, Any] = Body(...),
    table: str = Depends(known_table),
    backend: RecordBackend = Depends(get_erpai),
):
    return await backend.create_record(table, data)


@router.put("/{table}/{record_id}")
async def update_record(
    record_id: str,
    data: dict[str, Any] = Body(...),
    table: str = Depends(known_table),
    backend: RecordBackend = Depends(get_erpai),
):
    return await backend.update_record(table, record_id, data)


@router.delete("/{table}/{record_id}", status_code=204)
async def delete_record(
    record_id: str, table: str = Depends(known_table), backend: RecordBackend = Depends(get_erpai)
):
    await backend.delete_record(table, record_id)
