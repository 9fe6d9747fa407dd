"""
Webhook Envelope Handling

Wix wraps the changed record in several envelope shapes depending on API
version and delivery channel:

- legacy action events:  {"actionEvent": {"body": {...}}}
- domain events:         {"entityFqdn", "slug", "entityId", "createdEvent" | "updatedEvent" | "deletedEvent"}
- flat events:           {"eventType": "bookings.appointment_created", "entityId", "entity": {...}}
- JWT deliveries:        a compact JWT whose `data` claim holds the event as a JSON string
- already unwrapped entities

This module turns the raw body into a dict, names the event and pulls out
the entity.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from .webhook_errors import BadSignature, MalformedPayload
from ..utils.security import JWTError, decode_jwt, looks_like_jwt, parse_json_claim

logger = logging.getLogger(__name__)


# Checked in order; the first non-empty object wins
ENVELOPE_PATHS: Tuple[Tuple[str, str], ...] = (
    ("actionEvent", "body"),
    ("createdEvent", "entity"),
    ("updatedEvent", "currentEntity"),
    ("deletedEvent", "entity"),
)

ENTITY_FQDN_TYPES = {
    "wix.bookings.v1.booking": "booking",
    "wix.bookings.v2.booking": "booking",
    "wix.contacts.v4.contact": "contact",
    "wix.ecom.v1.order": "order",
    "wix.stores.v1.order": "order",
    "wix.loyalty.v1.account": "loyalty",
    "wix.stores.v1.product": "product",
    "wix.stores.catalog.v3.product": "product",
}

SLUG_ACTIONS = {
    "created": "created",
    "updated": "updated",
    "deleted": "deleted",
    "canceled": "canceled",
    "cancelled": "canceled",
    "rescheduled": "rescheduled",
    "confirmed": "updated",
    "declined": "updated",
    "payment_status_updated": "payment_status_updated",
}

FLAT_EVENT_TYPES = {
    "bookings.appointment_created": ("booking", "created"),
    "bookings.appointment_updated": ("booking", "updated"),
    "bookings.appointment_canceled": ("booking", "canceled"),
    "contacts.contact_created": ("contact", "created"),
    "contacts.contact_updated": ("contact", "updated"),
    "stores.order_created": ("order", "created"),
    "stores.order_updated": ("order", "updated"),
    "stores.order_payment_status_updated": ("order", "payment_status_updated"),
    "stores.product_created": ("product", "created"),
    "stores.product_updated": ("product", "updated"),
    "loyalty.account_updated": ("loyalty", "updated"),
}


@dataclass
class WebhookEvent:
    """What a delivery is about, independent of its envelope"""
    event_type: str
    entity_type: Optional[str] = None
    action: Optional[str] = None
    entity_id: Optional[str] = None

    @property
    def is_known(self) -> bool:
        return self.entity_type is not None and self.action is not None


# ============================================================================
# BODY PARSING
# ============================================================================

def parse_body(raw_body: bytes, public_key: Optional[str] = None) -> dict:
    """
    Decode the raw request body into an event object.

    Accepts a JSON object, a JSON string holding a JWT, or a bare JWT.

    Raises:
        MalformedPayload: not UTF-8, not JSON, or not an object
        BadSignature: JWT fails verification against a configured key
    """
    try:
        text = raw_body.decode("utf-8").strip()
    except UnicodeDecodeError:
        raise MalformedPayload(details="Body is not valid UTF-8")

    if looks_like_jwt(text):
        return decode_jwt_envelope(text, public_key)

    try:
        data = json.loads(text)
    except ValueError as e:
        raise MalformedPayload(details=str(e))

    if isinstance(data, str) and looks_like_jwt(data):
        return decode_jwt_envelope(data, public_key)

    if not isinstance(data, dict):
        raise MalformedPayload(details="Webhook body must be a JSON object")
    return data


def decode_jwt_envelope(token: str, public_key: Optional[str] = None) -> dict:
    """
    Unwrap a JWT delivery.

    The `data` claim is a JSON string whose own `data` field is, again, a
    JSON string holding the domain event.
    """
    try:
        claims = decode_jwt(token, public_key)
    except JWTError as e:
        if public_key:
            logger.warning(f"JWT webhook failed verification: {e}")
            raise BadSignature(details=str(e))
        raise MalformedPayload("Invalid JWT", details=str(e))

    first_level = parse_json_claim(claims.get("data"))
    if first_level is None:
        raise MalformedPayload("Invalid JWT", details="JWT has no data claim")

    second_level = parse_json_claim(first_level.get("data"))
    event = second_level if second_level is not None else first_level

    # The outer level names the event on flat deliveries
    if "eventType" in first_level and "eventType" not in event:
        event["eventType"] = first_level["eventType"]

    logger.debug(f"JWT envelope decoded (verified={bool(public_key)})")
    return event


# ============================================================================
# EVENT RESOLUTION
# ============================================================================

def resolve_event(body: dict) -> WebhookEvent:
    """Name the event from entityFqdn/slug, or from a flat eventType"""
    entity_id = body.get("entityId")
    entity_id = str(entity_id) if entity_id is not None else None

    fqdn = body.get("entityFqdn")
    if fqdn:
        slug = body.get("slug") or ""
        return WebhookEvent(
            event_type=f"{fqdn}.{slug or 'unknown'}",
            entity_type=ENTITY_FQDN_TYPES.get(fqdn),
            action=SLUG_ACTIONS.get(slug),
            entity_id=entity_id,
        )

    event_type = body.get("eventType")
    if event_type:
        entity_type, action = FLAT_EVENT_TYPES.get(event_type, (None, None))
        return WebhookEvent(
            event_type=event_type,
            entity_type=entity_type,
            action=action,
            entity_id=entity_id,
        )

    return WebhookEvent(event_type="unknown", entity_id=entity_id)


# ============================================================================
# ENTITY EXTRACTION
# ============================================================================

def _non_empty_object(value: Any) -> bool:
    return isinstance(value, dict) and bool(value)


def extract_entity(body: Any) -> dict:
    """
    Return the entity wrapped by any known envelope.

    Precedence: actionEvent.body, createdEvent.entity,
    updatedEvent.currentEntity, deletedEvent.entity, a flat event's
    `entity`, then the body itself. Never raises.
    """
    if not isinstance(body, dict):
        return {}

    for outer, inner in ENVELOPE_PATHS:
        wrapper = body.get(outer)
        if isinstance(wrapper, dict) and _non_empty_object(wrapper.get(inner)):
            return wrapper[inner]

    if body.get("eventType") and _non_empty_object(body.get("entity")):
        return body["entity"]

    return body


def primary_subject(event: WebhookEvent, entity: dict) -> dict:
    """
    The object carrying the record's identity.

    Payment-status events wrap the order: {order: {...}, previousPaymentStatus}.
    """
    if event.action == "payment_status_updated" and isinstance(entity.get("order"), dict):
        return entity["order"]
    return entity
