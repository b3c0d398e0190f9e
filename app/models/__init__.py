from app.models.user import User, UserRole
from app.models.vendor import Vendor
from app.models.warehouse import Warehouse
from app.models.fare import Fare
from app.models.order import Order, OrderStatus, DeliveryType
from app.models.shipment import Shipment, ShipmentStatus
from app.models.activity_log import ActivityLog

__all__ = [
    "User",
    "UserRole",
    "Vendor",
    "Warehouse",
    "Fare",
    "Order",
    "OrderStatus",
    "DeliveryType",
    "Shipment",
    "ShipmentStatus",
    "ActivityLog",
]
