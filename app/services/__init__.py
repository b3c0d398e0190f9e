# Services module
from app.services.auth_service import AuthService
from app.services.vendor_service import VendorService
from app.services.warehouse_service import WarehouseService
from app.services.fare_service import FareService
from app.services.order_service import OrderService
from app.services.shipment_service import ShipmentService

# Reporting
from app.services.report_service import ReportService
from app.services.dashboard_service import DashboardService
from app.services.activity_log_service import ActivityLogService

# Infrastructure
from app.services.cache_service import CacheService, get_cache
from app.services.email_service import EmailService, get_email_service
from app.services.token_service import RefreshTokenStore

__all__ = [
    "AuthService",
    "VendorService",
    "WarehouseService",
    "FareService",
    "OrderService",
    "ShipmentService",
    "ReportService",
    "DashboardService",
    "ActivityLogService",
    "CacheService",
    "get_cache",
    "EmailService",
    "get_email_service",
    "RefreshTokenStore",
]
