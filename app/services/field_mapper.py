"""
Field Mapper

Flattens Wix entities into the canonical row shape of each table.

Wix has shipped several shapes for the same concept over the years
(`startDate` vs `start.timestamp`, `service` vs `serviceInfo`, ...). Each
concept therefore has an explicit, ordered tuple of sources below; the first
source holding a non-empty value wins. A source is either a dotted path
(list indexes allowed, e.g. "info.emails.items.0.email") or a callable
taking the entity.

Absent values are represented by MISSING and never reach the record, so an
upsert can't null out a column Wix simply did not send. A source that
explicitly carries null is kept as None.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Union

from ..schemas.records import (
    BookingRecord,
    ContactRecord,
    CustomerRecord,
    LoyaltyRecord,
    OrderRecord,
    ProductRecord,
)

logger = logging.getLogger(__name__)


class _Missing:
    def __repr__(self):
        return "MISSING"

    def __bool__(self):
        return False


MISSING: Any = _Missing()

Source = Union[str, Callable[[dict], Any]]


# ============================================================================
# GENERIC READERS
# ============================================================================

def resolve(entity: Any, path: str) -> Any:
    """Follow a dotted path through dicts and lists, MISSING if any hop is absent"""
    current = entity
    for part in path.split("."):
        if isinstance(current, dict):
            if part not in current:
                return MISSING
            current = current[part]
        elif isinstance(current, list) and part.isdigit():
            index = int(part)
            if index >= len(current):
                return MISSING
            current = current[index]
        else:
            return MISSING
    return current


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def first_present(entity: dict, sources: Iterable[Source]) -> Any:
    """
    Return the first non-empty value among sources.

    None is returned when no source had a value but at least one explicitly
    carried null; MISSING when none of them exist at all.
    """
    saw_null = False
    for source in sources:
        value = source(entity) if callable(source) else resolve(entity, source)
        if value is MISSING:
            continue
        if _is_empty(value):
            saw_null = True
            continue
        return value
    return None if saw_null else MISSING


def _first_item(items: Any, key: str) -> Any:
    """First element of an array of objects ({key: ...}) or of plain strings"""
    if not isinstance(items, list) or not items:
        return MISSING
    item = items[0]
    if isinstance(item, dict):
        return item.get(key, MISSING)
    return item


def _join_name(first: Any, last: Any) -> Any:
    parts = [p for p in (first, last) if isinstance(p, str)]
    if not parts:
        return MISSING
    return " ".join(parts).strip()


def _name_of(value: Any) -> Any:
    """Names arrive as "Jane Doe" or as {first, last}"""
    if isinstance(value, dict):
        return _join_name(value.get("first"), value.get("last"))
    return value


# ============================================================================
# VALUE COERCION
# ============================================================================

def _text(value: Any) -> Any:
    if value is MISSING or value is None:
        return value
    if isinstance(value, (dict, list)):
        return MISSING
    return str(value)


def _lower(value: Any) -> Any:
    value = _text(value)
    if isinstance(value, str):
        return value.lower()
    return value


def _to_amount(value: Any) -> Any:
    """Numbers, numeric strings or money objects ({amount} / {value})"""
    if value is MISSING or value is None:
        return value
    if isinstance(value, bool):
        return MISSING
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            logger.warning(f"Unparseable amount dropped: {value!r}")
            return MISSING
    if isinstance(value, dict):
        for key in ("amount", "value"):
            if key in value:
                return _to_amount(value[key])
    return MISSING


def _to_int(value: Any) -> Any:
    if value is MISSING or value is None:
        return value
    if isinstance(value, bool):
        return MISSING
    if isinstance(value, (int, float)):
        return int(round(value))
    if isinstance(value, str):
        try:
            return int(float(value))
        except ValueError:
            return MISSING
    return MISSING


def parse_datetime(value: Any) -> Any:
    """
    Parse ISO-8601 strings (with or without Z) or epoch timestamps.

    Returns naive UTC datetimes, matching the rest of the schema.
    """
    if value is MISSING or value is None:
        return value
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, bool):
        return MISSING
    elif isinstance(value, (int, float)):
        # Wix sends epoch milliseconds; tolerate seconds
        seconds = value / 1000 if value > 1e11 else value
        parsed = datetime.fromtimestamp(seconds, tz=timezone.utc)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            logger.warning(f"Unparseable datetime dropped: {value!r}")
            return MISSING
    else:
        return MISSING

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _minutes_between(start: Any, end: Any) -> Any:
    if not isinstance(start, datetime) or not isinstance(end, datetime):
        return MISSING
    return int(round((end - start).total_seconds() / 60))


def _labels(value: Any) -> Any:
    """labelKeys arrive as a list, {items: [...]}, a JSON string or one bare label"""
    if value is MISSING or value is None:
        return value
    if isinstance(value, dict):
        value = value.get("items", MISSING)
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return [value]
        return parsed if isinstance(parsed, list) else [value]
    return MISSING


class _RowBuilder:
    """Collects only the fields that are present"""

    def __init__(self):
        self.fields: Dict[str, Any] = {}

    def put(self, name: str, value: Any):
        if value is not MISSING:
            self.fields[name] = value

    def pick(self, name: str, entity: dict, sources: Iterable[Source], convert=None):
        value = first_present(entity, sources)
        if convert is not None and value is not MISSING:
            value = convert(value)
        self.put(name, value)


# ============================================================================
# BOOKING
# ============================================================================

BOOKING_NAME_SOURCES = (
    lambda e: _join_name(resolve(e, "contactDetails.firstName"), resolve(e, "contactDetails.lastName")),
    "contactDetails.name",
    lambda e: _join_name(resolve(e, "formInfo.contactDetails.firstName"), resolve(e, "formInfo.contactDetails.lastName")),
    lambda e: _name_of(resolve(e, "contact.name")),
)
BOOKING_FIRST_NAME_SOURCES = ("contactDetails.firstName", "formInfo.contactDetails.firstName")
BOOKING_LAST_NAME_SOURCES = ("contactDetails.lastName", "formInfo.contactDetails.lastName")
BOOKING_EMAIL_SOURCES = (
    "contactDetails.email",
    "formInfo.contactDetails.email",
    "formInfo.email",
    "contact.email",
)
BOOKING_PHONE_SOURCES = (
    "contactDetails.phone",
    "formInfo.contactDetails.phone",
    "formInfo.phone",
    "contact.phone",
)
BOOKING_CONTACT_ID_SOURCES = ("contactDetails.contactId", "contactDetails.id", "contactId")
SERVICE_NAME_SOURCES = (
    "service.name",
    "serviceInfo.name",
    "bookedEntity.title",
    "bookedEntity.name",
    "serviceName",
)
SERVICE_DURATION_SOURCES = ("service.duration", "serviceInfo.duration")
BOOKING_START_SOURCES = ("startDate", "start.timestamp", "bookedEntity.slot.startDate", "startTime")
BOOKING_END_SOURCES = ("endDate", "end.timestamp", "bookedEntity.slot.endDate", "endTime")
STAFF_SOURCES = (
    "bookedEntity.slot.resource.name",
    "resource.name",
    "staffMember.name",
    "staffMemberName",
)
LOCATION_SOURCES = ("bookedEntity.slot.location.name", "location.name")
PARTICIPANT_SOURCES = ("numberOfParticipants", "totalParticipants")
BOOKING_PRICE_SOURCES = ("totalPrice", "payment.finalPrice")
NOTES_SOURCES = ("notes", "internalNotes")


def map_booking(entity: dict) -> dict:
    """Map a Wix booking to a `bookings` row"""
    row = _RowBuilder()
    row.pick("wix_booking_id", entity, ("id",), _text)
    row.pick("wix_contact_id", entity, BOOKING_CONTACT_ID_SOURCES, _text)
    row.pick("customer_name", entity, BOOKING_NAME_SOURCES, _text)
    row.pick("customer_email", entity, BOOKING_EMAIL_SOURCES, _text)
    row.pick("customer_phone", entity, BOOKING_PHONE_SOURCES, _text)
    row.pick("service_name", entity, SERVICE_NAME_SOURCES, _text)

    start = parse_datetime(first_present(entity, BOOKING_START_SOURCES))
    end = parse_datetime(first_present(entity, BOOKING_END_SOURCES))
    row.put("start_time", start)
    row.put("end_time", end)

    duration = _to_int(first_present(entity, SERVICE_DURATION_SOURCES))
    if duration is MISSING:
        duration = _minutes_between(start, end)
    row.put("service_duration", duration)

    row.pick("staff_member", entity, STAFF_SOURCES, _text)
    row.pick("location", entity, LOCATION_SOURCES, _text)
    row.pick("number_of_participants", entity, PARTICIPANT_SOURCES, _to_int)
    row.pick("status", entity, ("status",), _lower)
    row.pick("payment_status", entity, ("paymentStatus",), _lower)
    row.pick("total_price", entity, BOOKING_PRICE_SOURCES, _to_amount)
    row.pick("notes", entity, NOTES_SOURCES, _text)
    row.pick("revision", entity, ("revision",), _to_int)

    row.put("payload", entity)
    return BookingRecord(**row.fields).to_row()


# ============================================================================
# CONTACT / CUSTOMER
# ============================================================================

CONTACT_FIRST_NAME_SOURCES = ("info.name.first", "primaryInfo.name.first", "name.first")
CONTACT_LAST_NAME_SOURCES = ("info.name.last", "primaryInfo.name.last", "name.last")
CONTACT_NAME_SOURCES = (
    lambda e: _join_name(resolve(e, "info.name.first"), resolve(e, "info.name.last")),
    lambda e: _name_of(resolve(e, "name")),
    "displayName",
    "info.displayName",
)
CONTACT_EMAIL_SOURCES = (
    lambda e: _first_item(resolve(e, "info.emails.items"), "email"),
    lambda e: _first_item(resolve(e, "info.emails"), "email"),
    lambda e: _first_item(resolve(e, "emails"), "email"),
    "primaryInfo.email",
    "primaryEmail.email",
    "loginEmail",
    "email",
)
CONTACT_PHONE_SOURCES = (
    lambda e: _first_item(resolve(e, "info.phones.items"), "phone"),
    lambda e: _first_item(resolve(e, "info.phones"), "phone"),
    lambda e: _first_item(resolve(e, "phones"), "phone"),
    "primaryInfo.phone",
    "primaryPhone.phone",
    "phone",
)
CONTACT_ADDRESS_SOURCES = (
    lambda e: _first_item(resolve(e, "info.addresses.items"), "address"),
    lambda e: _first_item(resolve(e, "addresses"), "address"),
)
SUBSCRIBER_STATUS_SOURCES = (
    "info.extendedFields.emailSubscriptions.deliverabilityStatus",
    "primaryEmail.subscriptionStatus",
)


def map_contact(entity: dict) -> dict:
    """Map a Wix contact to a `contacts` row"""
    row = _RowBuilder()
    row.pick("wix_contact_id", entity, ("id",), _text)
    row.pick("email", entity, CONTACT_EMAIL_SOURCES, _text)
    row.pick("first_name", entity, CONTACT_FIRST_NAME_SOURCES, _text)
    row.pick("last_name", entity, CONTACT_LAST_NAME_SOURCES, _text)
    row.pick("name", entity, CONTACT_NAME_SOURCES, _text)
    row.pick("phone", entity, CONTACT_PHONE_SOURCES, _text)
    row.pick("address", entity, CONTACT_ADDRESS_SOURCES)
    row.pick("labels", entity, ("info.labelKeys", "labelKeys"), _labels)
    row.pick("birth_date", entity, ("info.birthdate", "birthdate"), _text)
    row.pick("subscriber_status", entity, SUBSCRIBER_STATUS_SOURCES, _text)
    row.put("payload", entity)
    return ContactRecord(**row.fields).to_row()


def map_customer(entity: dict) -> dict:
    """Map a Wix contact to the slim `customers` row"""
    row = _RowBuilder()
    row.pick("wix_contact_id", entity, ("id",), _text)
    row.pick("name", entity, CONTACT_NAME_SOURCES, _text)
    row.pick("email", entity, CONTACT_EMAIL_SOURCES, _text)
    row.pick("phone", entity, CONTACT_PHONE_SOURCES, _text)
    row.pick("notes", entity, ("notes", "description"), _text)
    return CustomerRecord(**row.fields).to_row()


# ============================================================================
# ORDER
# ============================================================================

ORDER_ID_SOURCES = ("id", "orderId")
ORDER_NUMBER_SOURCES = ("number", "orderNumber")
ORDER_EMAIL_SOURCES = ("buyerInfo.email", "billingInfo.email", "contactDetails.email")
ORDER_CONTACT_ID_SOURCES = ("buyerInfo.contactId", "contactId")
ORDER_TOTAL_SOURCES = (
    "priceSummary.total.amount",
    "totalPrice",
    "totalAmount",
    "totals.total",
    "total",
)
ORDER_STATUS_SOURCES = ("fulfillmentStatus", "status")
ORDER_ITEMS_SOURCES = ("lineItems", "items")
ORDER_DATE_SOURCES = ("createdDate", "dateCreated", "purchasedDate")
ORDER_CURRENCY_SOURCES = ("currency", "priceSummary.total.currency")


def map_order(entity: dict, apply_defaults: bool = True) -> dict:
    """
    Map a Wix order to an `orders` row.

    With apply_defaults, a missing total becomes 0, a missing status
    `pending` and missing items an empty list.
    """
    row = _RowBuilder()
    row.pick("wix_order_id", entity, ORDER_ID_SOURCES, _text)
    row.pick("order_number", entity, ORDER_NUMBER_SOURCES, _text)
    row.pick("customer_email", entity, ORDER_EMAIL_SOURCES, _text)
    row.pick("wix_contact_id", entity, ORDER_CONTACT_ID_SOURCES, _text)
    row.pick("total_amount", entity, ORDER_TOTAL_SOURCES, _to_amount)
    row.pick("currency", entity, ORDER_CURRENCY_SOURCES, _text)
    row.pick("status", entity, ORDER_STATUS_SOURCES, _text)
    row.pick("payment_status", entity, ("paymentStatus",), _text)
    row.pick("items", entity, ORDER_ITEMS_SOURCES)
    row.pick("billing_info", entity, ("billingInfo",))
    row.pick("shipping_info", entity, ("shippingInfo",))
    row.pick("order_date", entity, ORDER_DATE_SOURCES, parse_datetime)

    if apply_defaults:
        row.fields.setdefault("total_amount", 0)
        row.fields.setdefault("status", "pending")
        row.fields.setdefault("items", [])

    row.put("payload", entity)
    return OrderRecord(**row.fields).to_row()


def map_payment_status(entity: dict) -> dict:
    """
    Map an order payment-status event.

    The event body wraps the order ({order, previousPaymentStatus}); both the
    new and the previous payment status land on the same order row.
    """
    order = entity.get("order") if isinstance(entity.get("order"), dict) else entity
    fields = map_order(order, apply_defaults=False)

    row = _RowBuilder()
    row.fields.update(fields)
    row.pick("previous_payment_status", entity, ("previousPaymentStatus",), _text)
    row.put("payload", entity)
    return OrderRecord(**row.fields).to_row()


# ============================================================================
# LOYALTY / PRODUCT
# ============================================================================

LOYALTY_NAME_SOURCES = (
    lambda e: _name_of(resolve(e, "contact.name")),
    "contact.displayName",
)
LOYALTY_TIER_SOURCES = ("tier.name", lambda e: e.get("tier") if isinstance(e.get("tier"), str) else MISSING)


def map_loyalty(entity: dict) -> dict:
    """Map a Wix loyalty account to a `loyalty` row"""
    row = _RowBuilder()
    row.pick("contact_id", entity, ("contactId",), _text)
    row.pick("wix_loyalty_id", entity, ("id",), _text)
    row.pick("contact_name", entity, LOYALTY_NAME_SOURCES, _text)
    row.pick("contact_email", entity, ("contact.email",), _text)
    row.pick("points_balance", entity, ("points.balance",), _to_int)
    row.pick("redeemed_points", entity, ("points.redeemed",), _to_int)
    row.pick("earned_points", entity, ("points.earned",), _to_int)
    row.pick("tier", entity, LOYALTY_TIER_SOURCES, _text)
    row.pick("last_activity", entity, ("lastActivityDate",), parse_datetime)
    row.put("payload", entity)
    return LoyaltyRecord(**row.fields).to_row()


PRODUCT_PRICE_SOURCES = ("priceData.price", "price.price", "convertedPriceData.price", "price")
PRODUCT_CURRENCY_SOURCES = ("priceData.currency", "price.currency", "currency")


def map_product(entity: dict) -> dict:
    row = _RowBuilder()
    row.pick("wix_product_id", entity, ("id",), _text)
    row.pick("name", entity, ("name",), _text)
    row.pick("description", entity, ("description",), _text)
    row.pick("price", entity, PRODUCT_PRICE_SOURCES, _to_amount)
    row.pick("currency", entity, PRODUCT_CURRENCY_SOURCES, _text)
    row.pick("stock_quantity", entity, ("stock.quantity",), _to_int)
    row.pick("in_stock", entity, ("stock.inStock",), lambda v: bool(v) if v is not None else None)
    row.pick("product_type", entity, ("productType",), _text)
    row.pick("sku", entity, ("sku",), _text)
    row.put("payload", entity)
    return ProductRecord(**row.fields).to_row()


# ============================================================================
# LINKED CONTACT (booking / order customer identity)
# ============================================================================

ORDER_BUYER_NAME_SOURCES = (
    lambda e: _join_name(resolve(e, "buyerInfo.firstName"), resolve(e, "buyerInfo.lastName")),
    lambda e: _name_of(resolve(e, "buyerInfo.name")),
    lambda e: _join_name(
        resolve(e, "billingInfo.contactDetails.firstName"),
        resolve(e, "billingInfo.contactDetails.lastName"),
    ),
)


def map_linked_contact(entity_type: str, entity: dict) -> dict:
    """
    Customer identity carried on a booking or order.

    Returns the superset of contact columns; the dispatcher keeps the ones
    its target table has. Empty when the entity identifies nobody.
    """
    row = _RowBuilder()
    if entity_type == "booking":
        row.pick("wix_contact_id", entity, BOOKING_CONTACT_ID_SOURCES, _text)
        row.pick("email", entity, BOOKING_EMAIL_SOURCES, _text)
        row.pick("first_name", entity, BOOKING_FIRST_NAME_SOURCES, _text)
        row.pick("last_name", entity, BOOKING_LAST_NAME_SOURCES, _text)
        row.pick("name", entity, BOOKING_NAME_SOURCES, _text)
        row.pick("phone", entity, BOOKING_PHONE_SOURCES, _text)
    elif entity_type == "order":
        if isinstance(entity.get("order"), dict):
            entity = entity["order"]
        row.pick("wix_contact_id", entity, ORDER_CONTACT_ID_SOURCES, _text)
        row.pick("email", entity, ORDER_EMAIL_SOURCES, _text)
        row.pick("first_name", entity, ("buyerInfo.firstName",), _text)
        row.pick("last_name", entity, ("buyerInfo.lastName",), _text)
        row.pick("name", entity, ORDER_BUYER_NAME_SOURCES, _text)
        row.pick("phone", entity, ("buyerInfo.phone", "billingInfo.contactDetails.phone"), _text)

    if not row.fields.get("wix_contact_id") and not row.fields.get("email"):
        return {}
    return {k: v for k, v in row.fields.items() if v is not None}
