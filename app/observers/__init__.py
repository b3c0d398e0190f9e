"""Event observers: email notifications and audit logging driven by domain events."""
from app.events.bus import EventBus
from app.observers import auth_observer, order_observer, shipment_observer
from app.services.email_service import EmailService


def register_observers(bus: EventBus, email_service: EmailService) -> None:
    auth_observer.register(bus, email_service)
    order_observer.register(bus, email_service)
    shipment_observer.register(bus, email_service)


__all__ = ["register_observers"]
