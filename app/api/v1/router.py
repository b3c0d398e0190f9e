from fastapi import APIRouter

from app.api.v1.endpoints import (
    activity_logs,
    auth,
    dashboard,
    fares,
    orders,
    queues,
    reports,
    shipments,
    vendors,
    warehouses,
)

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(auth.router, prefix="/auth")
api_router.include_router(vendors.router, prefix="/vendors")
api_router.include_router(warehouses.router, prefix="/warehouses")
api_router.include_router(fares.router, prefix="/fares")
api_router.include_router(orders.router, prefix="/orders")
api_router.include_router(shipments.router, prefix="/shipments")
api_router.include_router(reports.router, prefix="/reports")
api_router.include_router(dashboard.router, prefix="/dashboard")
api_router.include_router(activity_logs.router, prefix="/activity-logs")
api_router.include_router(queues.router, prefix="/queues")
