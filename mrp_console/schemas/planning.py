"""Planning view schemas: BOM explosion and MRP simulation."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class BomNode(BaseModel):
    id: str
    item_name: str
    sku: str = ""
    bom_code: str = ""
    quantity: float
    scrap_pct: float
    level: int
    effective_qty: float
    is_leaf: bool
    children: list[BomNode] = Field(default_factory=list)


class BomExplosion(BaseModel):
    bom_id: str
    bom_code: str = ""
    total_components: int
    nodes: list[BomNode]


class MrpAction(StrEnum):
    PURCHASE = "Purchase"
    PRODUCTION = "Production"
    NONE = "None"


class MrpPriority(StrEnum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class MrpRequest(BaseModel):
    item_id: str
    demand_qty: float = Field(100, gt=0)


class MrpResult(BaseModel):
    item_id: str
    item_name: str
    item_code: str
    gross_requirement: float
    on_hand: float
    safety_stock: float
    net_requirement: float
    planned_order_qty: float
    action: MrpAction
    priority: MrpPriority
    children: list[MrpResult] = Field(default_factory=list)


class MrpRow(BaseModel):
    """One flattened row of an MRP result tree."""
    item_id: str
    item_name: str
    item_code: str
    level: int
    gross_requirement: float
    on_hand: float
    safety_stock: float
    net_requirement: float
    planned_order_qty: float
    action: MrpAction
    priority: MrpPriority


class MrpSimulation(BaseModel):
    root: MrpResult
    rows: list[MrpRow]
    total_actions: int
    purchase_actions: int
    production_actions: int
    critical_items: int
