from app.repositories.base import BaseRepository
from app.repositories.fare_repository import FareRepository
from app.repositories.shipment_repository import ShipmentRepository
from app.repositories.user_repository import UserRepository
from app.repositories.vendor_repository import VendorRepository

__all__ = [
    "BaseRepository",
    "FareRepository",
    "ShipmentRepository",
    "UserRepository",
    "VendorRepository",
]
