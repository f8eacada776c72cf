"""Planning service — BOM explosion and MRP simulation over ERP records."""

from __future__ import annotations

import asyncio
import logging
import math
from collections import defaultdict
from typing import Any

from mrp_console import tables
from mrp_console.adapters.base import RecordBackend
from mrp_console.schemas.planning import (
    BomExplosion,
    BomNode,
    MrpAction,
    MrpPriority,
    MrpResult,
    MrpRow,
    MrpSimulation,
)

logger = logging.getLogger(__name__)

# Deepest BOM level explored (guards against runaway structures)
MAX_DEPTH = 10

_PURCHASED_CATEGORIES = frozenset({"Raw Material", "Consumable"})


def _ref(value: Any) -> str:
    """Reference cells may still arrive as ``[id]``."""
    if isinstance(value, list):
        return str(value[0]) if value else ""
    return "" if value is None else str(value)


def _num(value: Any, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _item_name(item: dict[str, Any] | None) -> str:
    item = item or {}
    return item.get("Item Name") or item.get("Name") or item.get("SKU") or "Unknown Component"


# ── BOM explosion ────────────────────────────────────────────────────


def explode_bom(
    bom_id: str,
    boms: list[dict[str, Any]],
    bom_lines: list[dict[str, Any]],
    items: list[dict[str, Any]],
) -> BomExplosion | None:
    """Expand a BOM into its multi-level component tree.

    Quantities compound down the tree, each level inflated by its line's
    scrap percentage. A BOM already on the current path is not re-entered.
    """
    boms_by_id = {b["id"]: b for b in boms if b.get("id")}
    root = boms_by_id.get(bom_id)
    if root is None:
        return None

    item_map = {i["id"]: i for i in items if i.get("id")}
    boms_by_item = {_ref(b.get("Item")): b for b in boms if _ref(b.get("Item"))}
    lines_by_bom: dict[str, list[dict[str, Any]]] = defaultdict(list)
    for line in bom_lines:
        bom_ref = _ref(line.get("BOM"))
        if bom_ref:
            lines_by_bom[bom_ref].append(line)

    def build(current: str, parent_qty: float, level: int, visited: frozenset[str]) -> list[BomNode]:
        if current in visited or level > MAX_DEPTH:
            return []
        path = visited | {current}
        bom_code = boms_by_id.get(current, {}).get("BOM Code") or ""

        nodes: list[BomNode] = []
        for idx, line in enumerate(lines_by_bom.get(current, [])):
            item_ref = _ref(line.get("Item"))
            item = item_map.get(item_ref)
            qty = _num(line.get("Quantity"))
            scrap = _num(line.get("Scrap Pct"))
            effective = qty * parent_qty * (1 + scrap / 100)

            sub_bom = boms_by_item.get(item_ref)
            children = build(sub_bom["id"], effective, level + 1, path) if sub_bom else []
            nodes.append(BomNode(
                id=f"{current}-{line.get('id') or idx}",
                item_name=_item_name(item),
                sku=(item or {}).get("SKU") or "",
                bom_code=bom_code,
                quantity=qty,
                scrap_pct=scrap,
                level=level,
                effective_qty=round(effective, 2),
                is_leaf=not children,
                children=children,
            ))
        return nodes

    nodes = build(bom_id, 1.0, 0, frozenset())
    return BomExplosion(
        bom_id=bom_id,
        bom_code=root.get("BOM Code") or "",
        total_components=_count_nodes(nodes),
        nodes=nodes,
    )


def _count_nodes(nodes: list[BomNode]) -> int:
    return sum(1 + _count_nodes(n.children) for n in nodes)


# ── MRP simulation ───────────────────────────────────────────────────


def simulate_mrp(
    item_id: str,
    demand_qty: float,
    items: list[dict[str, Any]],
    boms: list[dict[str, Any]],
    bom_lines: list[dict[str, Any]],
    inventory: list[dict[str, Any]],
) -> MrpSimulation | None:
    """Net a demand against stock and explode planned orders through active BOMs."""
    item_map = {i["id"]: i for i in items if i.get("id")}
    if item_id not in item_map:
        return None

    on_hand_by_item: dict[str, float] = defaultdict(float)
    for row in inventory:
        ref = _ref(row.get("Item"))
        if ref:
            on_hand_by_item[ref] += _num(row.get("Qty On Hand"))

    active_bom_by_item: dict[str, dict[str, Any]] = {}
    for bom in boms:
        ref = _ref(bom.get("Item"))
        if ref and bom.get("Status") == "Active":
            active_bom_by_item.setdefault(ref, bom)

    lines_by_bom: dict[str, list[dict[str, Any]]] = defaultdict(list)
    for line in bom_lines:
        lines_by_bom[_ref(line.get("BOM"))].append(line)

    def explode(current: str, gross: float, depth: int) -> MrpResult:
        item = item_map.get(current, {})
        safety = _num(item.get("Safety Stock"))
        on_hand = on_hand_by_item.get(current, 0.0)
        lot_size = _num(item.get("Min Order Qty")) or gross

        net = max(0.0, gross + safety - on_hand)
        planned = max(net, lot_size) if net > 0 else 0.0

        if net <= 0:
            action = MrpAction.NONE
        elif item.get("Category") in _PURCHASED_CATEGORIES:
            action = MrpAction.PURCHASE
        else:
            action = MrpAction.PRODUCTION

        if on_hand == 0 and net > 0:
            priority = MrpPriority.CRITICAL
        elif on_hand < safety:
            priority = MrpPriority.HIGH
        elif net > 0:
            priority = MrpPriority.MEDIUM
        else:
            priority = MrpPriority.LOW

        children: list[MrpResult] = []
        bom = active_bom_by_item.get(current)
        if bom is not None and depth < MAX_DEPTH:
            for line in lines_by_bom.get(bom["id"], []):
                component = _ref(line.get("Item"))
                if not component:
                    continue
                line_qty = _num(line.get("Quantity"), 1.0) or 1.0
                scrap = _num(line.get("Scrap Pct")) / 100
                # strip float noise before rounding up
                required = math.ceil(round(planned * line_qty * (1 + scrap), 6))
                children.append(explode(component, required, depth + 1))

        return MrpResult(
            item_id=current,
            item_name=item.get("Item Name") or "Unknown",
            item_code=item.get("Item Code") or item.get("SKU") or "???",
            gross_requirement=gross,
            on_hand=on_hand,
            safety_stock=safety,
            net_requirement=net,
            planned_order_qty=planned,
            action=action,
            priority=priority,
            children=children,
        )

    root = explode(item_id, demand_qty, 0)
    rows = _flatten(root)
    return MrpSimulation(
        root=root,
        rows=rows,
        total_actions=sum(r.action is not MrpAction.NONE for r in rows),
        purchase_actions=sum(r.action is MrpAction.PURCHASE for r in rows),
        production_actions=sum(r.action is MrpAction.PRODUCTION for r in rows),
        critical_items=sum(r.priority is MrpPriority.CRITICAL for r in rows),
    )


def _flatten(node: MrpResult, level: int = 0) -> list[MrpRow]:
    row = MrpRow(level=level, **node.model_dump(exclude={"children"}))
    rows = [row]
    for child in node.children:
        rows.extend(_flatten(child, level + 1))
    return rows


# ── Loaders ──────────────────────────────────────────────────────────


async def load_bom_explosion(backend: RecordBackend, bom_id: str) -> BomExplosion | None:
    boms, bom_lines, items = await asyncio.gather(
        backend.list_all_records(tables.BILL_OF_MATERIALS),
        backend.list_all_records(tables.BOM_LINES),
        backend.list_all_records(tables.ITEMS),
    )
    return explode_bom(bom_id, boms, bom_lines, items)


async def run_mrp_simulation(
    backend: RecordBackend, item_id: str, demand_qty: float
) -> MrpSimulation | None:
    items, boms, bom_lines, inventory = await asyncio.gather(
        backend.list_all_records(tables.ITEMS),
        backend.list_all_records(tables.BILL_OF_MATERIALS),
        backend.list_all_records(tables.BOM_LINES),
        backend.list_all_records(tables.INVENTORY),
    )
    logger.info("MRP simulation for %s × %s", item_id, demand_qty)
    return simulate_mrp(item_id, demand_qty, items, boms, bom_lines, inventory)
