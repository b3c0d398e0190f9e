"""Names of the domain events emitted on the event bus."""
from enum import Enum


class EventType(str, Enum):
    ORDER_CREATED = "order.created"
    ORDER_UPDATED = "order.updated"
    SHIPMENT_CREATED = "shipment.created"
    SHIPMENT_UPDATED = "shipment.updated"
    AUTH_REGISTERED = "auth.registered"
    AUTH_LOGIN = "auth.login"
