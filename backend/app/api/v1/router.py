from fastapi import APIRouter

from backend.app.api.v1.endpoints.orders import router as orders_router
from backend.app.api.v1.endpoints.order_items import router as order_items_router
from backend.app.api.v1.endpoints.discrepancy_reports import router as discrepancy_reports_router
from backend.app.api.v1.endpoints.locations import router as locations_router
from backend.app.api.v1.endpoints.stock import router as stock_router

router = APIRouter()
router.include_router(orders_router, tags=["orders"])
router.include_router(order_items_router, tags=["order_items"])
router.include_router(discrepancy_reports_router, tags=["discrepancy_reports"])
router.include_router(locations_router, tags=["locations"])
router.include_router(stock_router, tags=["stock"])
