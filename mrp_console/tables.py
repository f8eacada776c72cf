"""ERPAI table names used by the console."""

ITEMS = "Items"
BILL_OF_MATERIALS = "Bill of Materials"
BOM_LINES = "BOM Lines"
WORK_CENTERS = "Work Centers"
ROUTINGS = "Routings"
ROUTING_OPERATIONS = "Routing Operations"
PRODUCTION_ORDERS = "Production Orders"
PRODUCTION_ORDER_OPS = "Production Operations"
PURCHASE_ORDERS = "Purchase Orders"
PURCHASE_ORDER_LINES = "Purchase Order Lines"
SALES_ORDERS = "Sales Orders"
SALES_ORDER_LINES = "Sales Order Lines"
SUPPLIERS = "Suppliers"
CUSTOMERS = "Customers"
WAREHOUSES = "Warehouses"
INVENTORY = "Inventory"
INVENTORY_TRANSACTIONS = "Inventory Transactions"
QUALITY_INSPECTIONS = "Quality Inspections"
QUALITY_CHECK_ITEMS = "Quality Check Items"
UNITS_OF_MEASURE = "Units of Measure"
COST_CENTERS = "Cost Centers"
CAPACITY_PLANS = "Capacity Plans"
DEMAND_FORECASTS = "Demand Forecasts"
MRP_RUNS = "MRP Runs"
MRP_RECOMMENDATIONS = "MRP Recommendations"

ALL_TABLES: frozenset[str] = frozenset({
    ITEMS, BILL_OF_MATERIALS, BOM_LINES, WORK_CENTERS, ROUTINGS,
    ROUTING_OPERATIONS, PRODUCTION_ORDERS, PRODUCTION_ORDER_OPS,
    PURCHASE_ORDERS, PURCHASE_ORDER_LINES, SALES_ORDERS, SALES_ORDER_LINES,
    SUPPLIERS, CUSTOMERS, WAREHOUSES, INVENTORY, INVENTORY_TRANSACTIONS,
    QUALITY_INSPECTIONS, QUALITY_CHECK_ITEMS, UNITS_OF_MEASURE, COST_CENTERS,
    CAPACITY_PLANS, DEMAND_FORECASTS, MRP_RUNS, MRP_RECOMMENDATIONS,
})

# KPI cards on the dashboard, in display order
DASHBOARD_TABLES: tuple[str, ...] = (
    ITEMS,
    PURCHASE_ORDERS,
    SALES_ORDERS,
    PRODUCTION_ORDERS,
    INVENTORY,
    SUPPLIERS,
    CUSTOMERS,
    QUALITY_INSPECTIONS,
)
