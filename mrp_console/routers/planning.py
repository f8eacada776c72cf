"""Planning endpoints — BOM explosion and MRP simulation."""

from fastapi import APIRouter, Depends, HTTPException

from mrp_console.adapters.base import RecordBackend
from mrp_console.dependencies import get_erpai
from mrp_console.schemas.planning import BomExplosion, MrpRequest, MrpSimulation
from mrp_console.services import planning_service

router = APIRouter()


@router.get("/bom-explosion/{bom_id}", response_model=BomExplosion)
async def bom_explosion(bom_id: str, backend: RecordBackend = Depends(get_erpai)):
    result = await planning_service.load_bom_explosion(backend, bom_id)
    if result is None:
        raise HTTPException(status_code=404, detail="BOM not found")
    return result


@router.post("/mrp-simulation", response_model=MrpSimulation)
async def mrp_simulation(req: MrpRequest, backend: RecordBackend = Depends(get_erpai)):
    result = await planning_service.run_mrp_simulation(backend, req.item_id, req.demand_qty)
    if result is None:
        raise HTTPException(status_code=404, detail="Item not found")
    return result
