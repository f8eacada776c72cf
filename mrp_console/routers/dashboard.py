"""Dashboard KPI endpoints."""

from fastapi import APIRouter, Depends

from mrp_console.adapters.base import RecordBackend
from mrp_console.adapters.erpai import dashboard_stats
from mrp_console.dependencies import get_erpai

router = APIRouter()


@router.get("/stats")
async def get_stats(backend: RecordBackend = Depends(get_erpai)) -> dict[str, int]:
    """Record counts per KPI table; tables that fail to count are omitted."""
    return await dashboard_stats(backend)
