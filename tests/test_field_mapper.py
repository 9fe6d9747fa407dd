"""
Tests for the Wix field mapper

Tests cover:
- Ordered fallbacks between historical field names
- Absent fields never reaching the record
- Date, amount and label coercion
- Payment-status and linked-contact mapping
"""

from datetime import datetime

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from app.services.field_mapper import (
    MISSING,
    first_present,
    map_booking,
    map_contact,
    map_customer,
    map_linked_contact,
    map_loyalty,
    map_order,
    map_payment_status,
    map_product,
    parse_datetime,
    resolve,
)


class TestReaders:

    def test_resolve_dotted_path_with_index(self):
        entity = {"info": {"emails": {"items": [{"email": "a@x.com"}]}}}
        assert resolve(entity, "info.emails.items.0.email") == "a@x.com"
        assert resolve(entity, "info.phones.items.0.phone") is MISSING

    def test_first_present_skips_empty(self):
        entity = {"a": "", "b": None, "c": "value"}
        assert first_present(entity, ("a", "b", "c")) == "value"

    def test_first_present_explicit_null(self):
        assert first_present({"a": None}, ("a", "b")) is None

    def test_first_present_nothing(self):
        assert first_present({}, ("a", "b")) is MISSING

    def test_parse_datetime_variants(self):
        assert parse_datetime("2024-03-01T10:00:00Z") == datetime(2024, 3, 1, 10, 0)
        assert parse_datetime("2024-03-01T12:00:00+02:00") == datetime(2024, 3, 1, 10, 0)
        assert parse_datetime(1709287200000) == datetime(2024, 3, 1, 10, 0)
        assert parse_datetime("not a date") is MISSING


class TestMapBooking:

    def test_contact_details_shape(self):
        row = map_booking({
            "id": "b1",
            "contactDetails": {
                "firstName": " Jane",
                "lastName": "Doe ",
                "email": "jane@x.com",
                "phone": "+100",
                "contactId": "c1",
            },
            "service": {"name": "Haircut", "duration": 45},
            "startDate": "2024-03-01T10:00:00Z",
            "endDate": "2024-03-01T10:45:00Z",
            "status": "CONFIRMED",
            "paymentStatus": "PAID",
            "totalPrice": 50,
        })
        assert row["wix_booking_id"] == "b1"
        assert row["customer_name"] == "Jane Doe"
        assert row["customer_email"] == "jane@x.com"
        assert row["wix_contact_id"] == "c1"
        assert row["service_name"] == "Haircut"
        assert row["service_duration"] == 45
        assert row["start_time"] == datetime(2024, 3, 1, 10, 0)
        assert row["status"] == "confirmed"
        assert row["payment_status"] == "paid"
        assert row["total_price"] == 50.0

    def test_alternate_shape(self):
        row = map_booking({
            "id": "b2",
            "formInfo": {"email": "alt@x.com"},
            "serviceInfo": {"name": "Color"},
            "start": {"timestamp": "2024-03-01T09:00:00Z"},
            "end": {"timestamp": "2024-03-01T10:30:00Z"},
            "payment": {"finalPrice": {"amount": "80.5"}},
        })
        assert row["customer_email"] == "alt@x.com"
        assert row["service_name"] == "Color"
        assert row["start_time"] == datetime(2024, 3, 1, 9, 0)
        assert row["service_duration"] == 90
        assert row["total_price"] == 80.5

    def test_service_name_precedence(self):
        row = map_booking({
            "id": "b3",
            "service": {"name": None},
            "serviceInfo": {"name": "Second"},
            "bookedEntity": {"title": "Third"},
        })
        assert row["service_name"] == "Second"

    def test_absent_fields_not_in_record(self):
        row = map_booking({"id": "b4"})
        assert set(row) == {"wix_booking_id", "payload"}

    def test_explicit_null_kept(self):
        row = map_booking({"id": "b5", "notes": None})
        assert "notes" in row and row["notes"] is None


class TestMapContact:

    def test_jane_doe(self):
        row = map_contact({
            "id": "c1",
            "info": {
                "name": {"first": "Jane", "last": "Doe"},
                "emails": {"items": [{"email": "jane@x.com"}]},
                "phones": {"items": [{"phone": "+100"}]},
                "labelKeys": {"items": ["custom.vip"]},
            },
        })
        assert row["name"] == "Jane Doe"
        assert row["email"] == "jane@x.com"
        assert row["phone"] == "+100"
        assert row["labels"] == ["custom.vip"]
        assert row["wix_contact_id"] == "c1"

    def test_flat_contact(self):
        row = map_contact({"id": "c2", "name": "Solo", "primaryInfo": {"email": "s@x.com"}})
        assert row["name"] == "Solo"
        assert row["email"] == "s@x.com"

    def test_labels_from_json_string(self):
        row = map_contact({"id": "c3", "labelKeys": '["a", "b"]'})
        assert row["labels"] == ["a", "b"]

    def test_customer_is_slim(self):
        row = map_customer({
            "id": "c4",
            "info": {"name": {"first": "Ann"}, "emails": [{"email": "ann@x.com"}]},
        })
        assert row == {"wix_contact_id": "c4", "name": "Ann", "email": "ann@x.com"}


class TestMapOrder:

    def test_defaults(self):
        row = map_order({"id": "o1"})
        assert row["total_amount"] == 0
        assert row["status"] == "pending"
        assert row["items"] == []

    def test_total_sources(self):
        row = map_order({
            "id": "o2",
            "number": 1001,
            "priceSummary": {"total": {"amount": "19.99", "currency": "USD"}},
            "buyerInfo": {"email": "buyer@x.com", "contactId": "c9"},
            "lineItems": [{"name": "Shampoo"}],
            "fulfillmentStatus": "FULFILLED",
        })
        assert row["order_number"] == "1001"
        assert row["total_amount"] == 19.99
        assert row["currency"] == "USD"
        assert row["customer_email"] == "buyer@x.com"
        assert row["status"] == "FULFILLED"
        assert row["items"] == [{"name": "Shampoo"}]

    def test_payment_status(self):
        row = map_payment_status({
            "order": {"id": "o3", "paymentStatus": "PAID"},
            "previousPaymentStatus": "NOT_PAID",
        })
        assert row["wix_order_id"] == "o3"
        assert row["payment_status"] == "PAID"
        assert row["previous_payment_status"] == "NOT_PAID"
        # No defaults: a status event must not reset the order
        assert "status" not in row
        assert "total_amount" not in row


class TestMapOther:

    def test_loyalty(self):
        row = map_loyalty({
            "id": "l1",
            "contactId": "c1",
            "points": {"balance": 120, "earned": 150, "redeemed": 30},
            "tier": {"name": "Gold"},
        })
        assert row["contact_id"] == "c1"
        assert row["points_balance"] == 120
        assert row["tier"] == "Gold"

    def test_product(self):
        row = map_product({
            "id": "p1",
            "name": "Conditioner",
            "priceData": {"price": 12.5, "currency": "USD"},
            "stock": {"quantity": 4, "inStock": True},
        })
        assert row["price"] == 12.5
        assert row["stock_quantity"] == 4
        assert row["in_stock"] is True


class TestMapLinkedContact:

    def test_booking_identity(self):
        identity = map_linked_contact("booking", {
            "id": "b1",
            "contactDetails": {"firstName": "Jane", "email": "jane@x.com", "contactId": "c1"},
        })
        assert identity["email"] == "jane@x.com"
        assert identity["wix_contact_id"] == "c1"
        assert identity["name"] == "Jane"

    def test_order_identity_in_payment_event(self):
        identity = map_linked_contact("order", {"order": {"id": "o1", "buyerInfo": {"email": "b@x.com"}}})
        assert identity == {"email": "b@x.com"}

    def test_anonymous_entity(self):
        assert map_linked_contact("booking", {"id": "b1", "contactDetails": {"firstName": "X"}}) == {}
