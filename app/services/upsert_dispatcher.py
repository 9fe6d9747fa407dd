"""
Upsert Dispatcher

Routes a mapped Wix entity to its table, conflict key and write mode.

For bookings and orders the customer identity is written first and the
resulting local id is attached as a foreign key. A failure there is logged
and the primary write goes ahead without the link; only a failure of the
primary write propagates.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Tuple

from . import field_mapper
from .datastore import Datastore
from .webhook_envelope import WebhookEvent
from .webhook_errors import PersistenceError
from ..models import Booking, Contact, Customer, LoyaltyAccount, Order, Product
from ..utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ContactTarget:
    """Where customer identities go and which column the FK lands in"""
    model: Any
    foreign_key: str
    mapper: Callable[[dict], dict]

    @property
    def table(self) -> str:
        return self.model.__tablename__


# /api/webhook-router: CRM contacts
CONTACTS_TARGET = ContactTarget(
    model=Contact,
    foreign_key="contact_id",
    mapper=field_mapper.map_contact,
)

# /api/wix-webhook: slim customers
CUSTOMERS_TARGET = ContactTarget(
    model=Customer,
    foreign_key="customer_id",
    mapper=field_mapper.map_customer,
)


@dataclass(frozen=True)
class Route:
    model: Any
    conflict_key: str
    mapper: Callable[[dict], dict]
    mode: str = "upsert"  # upsert | cancel
    links_contact: bool = False


ROUTES: Dict[Tuple[str, str], Route] = {
    ("booking", "created"): Route(Booking, "wix_booking_id", field_mapper.map_booking, links_contact=True),
    ("booking", "updated"): Route(Booking, "wix_booking_id", field_mapper.map_booking, links_contact=True),
    ("booking", "rescheduled"): Route(Booking, "wix_booking_id", field_mapper.map_booking, links_contact=True),
    ("booking", "canceled"): Route(Booking, "wix_booking_id", field_mapper.map_booking, mode="cancel"),
    ("booking", "deleted"): Route(Booking, "wix_booking_id", field_mapper.map_booking, mode="cancel"),
    ("order", "created"): Route(Order, "wix_order_id", field_mapper.map_order, links_contact=True),
    ("order", "updated"): Route(Order, "wix_order_id", field_mapper.map_order, links_contact=True),
    ("order", "payment_status_updated"): Route(
        Order, "wix_order_id", field_mapper.map_payment_status, links_contact=True
    ),
    ("loyalty", "created"): Route(LoyaltyAccount, "contact_id", field_mapper.map_loyalty),
    ("loyalty", "updated"): Route(LoyaltyAccount, "contact_id", field_mapper.map_loyalty),
    ("product", "created"): Route(Product, "wix_product_id", field_mapper.map_product),
    ("product", "updated"): Route(Product, "wix_product_id", field_mapper.map_product),
}

CONTACT_ACTIONS = ("created", "updated")


@dataclass
class DispatchResult:
    """Outcome of routing one entity"""
    action: str  # upserted | canceled | ignored
    table: Optional[str] = None
    record_id: Optional[str] = None
    wix_id: Optional[str] = None
    linked_contact_id: Optional[str] = None
    warnings: list = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = {"action": self.action}
        for key in ("table", "record_id", "wix_id", "linked_contact_id"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        if self.warnings:
            data["warnings"] = self.warnings
        return data


class UpsertDispatcher:
    def __init__(self, store: Datastore, contact_target: ContactTarget = CONTACTS_TARGET):
        self.store = store
        self.contact_target = contact_target

    def dispatch(self, event: WebhookEvent, entity: dict) -> DispatchResult:
        """
        Map and persist one entity.

        Raises:
            PersistenceError: the primary write failed
        """
        if event.entity_type == "contact" and event.action in CONTACT_ACTIONS:
            return self._write_contact(entity)

        route = ROUTES.get((event.entity_type, event.action))
        if route is None:
            logger.info(f"Unhandled webhook event: {event.event_type}")
            return DispatchResult(action="ignored")

        record = route.mapper(entity)
        result = DispatchResult(action="upserted", table=route.model.__tablename__)

        if route.links_contact:
            linked_id = self._link_contact(event.entity_type, entity, result)
            if linked_id:
                record[self.contact_target.foreign_key] = linked_id
                result.linked_contact_id = linked_id

        if route.mode == "cancel":
            stored = self._cancel(route, record)
            result.action = "canceled"
        else:
            stored = self.store.upsert(route.model, record, route.conflict_key)

        result.record_id = stored.get("id")
        result.wix_id = record.get(route.conflict_key)
        logger.entity_persisted(event.entity_type, str(result.wix_id), result.table, result.action)
        return result

    def write_identity(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Persist a customer identity and return it as stored.

        A record carrying a Wix contact id updates the row that already has
        that id, so a changed email never forks the contact. Otherwise the
        row is upserted on email, falling back to the Wix id.

        Raises:
            PersistenceError: neither key present, or the write failed
        """
        model = self.contact_target.model
        wix_contact_id = record.get("wix_contact_id")
        if wix_contact_id:
            stored = self.store.update(model, {"wix_contact_id": wix_contact_id}, record)
            if stored is not None:
                return stored

        if record.get("email"):
            return self.store.upsert(model, record, "email")
        if wix_contact_id:
            return self.store.upsert(model, record, "wix_contact_id")
        raise PersistenceError(details="Contact has neither email nor id")

    def _write_contact(self, entity: dict) -> DispatchResult:
        target = self.contact_target
        record = target.mapper(entity)
        stored = self.write_identity(record)
        wix_id = record.get("wix_contact_id")
        logger.entity_persisted("contact", str(wix_id or record.get("email")), target.table, "upserted")
        return DispatchResult(
            action="upserted",
            table=target.table,
            record_id=stored.get("id"),
            wix_id=wix_id,
        )

    def _link_contact(self, entity_type: str, entity: dict, result: DispatchResult) -> Optional[str]:
        """Upsert the customer identity, returning its local id. Never raises."""
        target = self.contact_target
        identity = field_mapper.map_linked_contact(entity_type, entity)
        columns = {column.key for column in target.model.__table__.columns}
        record = {k: v for k, v in identity.items() if k in columns}
        if not record.get("wix_contact_id") and not record.get("email"):
            return None

        try:
            stored = self.write_identity(record)
        except PersistenceError as e:
            logger.error(f"Contact linkage failed for {entity_type}, continuing without it: {e.details}")
            result.warnings.append("contact_link_failed")
            return None
        return stored.get("id")

    def _cancel(self, route: Route, record: dict) -> dict:
        """
        Mark the booking canceled. Bookings are never deleted; an unknown
        booking is created in its canceled state.
        """
        key_value = record.get(route.conflict_key)
        values = {
            "status": "canceled",
            "cancelled_date": record.get("cancelled_date") or datetime.utcnow(),
        }
        stored = self.store.update(route.model, {route.conflict_key: key_value}, values)
        if stored is None:
            record.update(values)
            stored = self.store.upsert(route.model, record, route.conflict_key)
        return stored
