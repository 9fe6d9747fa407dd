"""
Tests for Webhook Envelope Handling

Tests cover:
- Entity extraction precedence across envelope shapes
- Event naming from entityFqdn/slug and flat eventType
- Body parsing: JSON, malformed JSON, JWT deliveries
"""

import json
import pytest
from unittest.mock import patch

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from jose import JWTError, jwt

from app.services.webhook_envelope import (
    extract_entity,
    parse_body,
    primary_subject,
    resolve_event,
)
from app.services.webhook_errors import BadSignature, MalformedPayload


class TestExtractEntity:
    """Envelope unwrapping"""

    def test_action_event_body(self):
        body = {"actionEvent": {"body": {"id": "b1"}}}
        assert extract_entity(body) == {"id": "b1"}

    def test_created_event_entity(self):
        body = {"createdEvent": {"entity": {"id": "c1"}}}
        assert extract_entity(body) == {"id": "c1"}

    def test_updated_event_current_entity(self):
        body = {"updatedEvent": {"currentEntity": {"id": "u1"}}}
        assert extract_entity(body) == {"id": "u1"}

    def test_deleted_event_entity(self):
        body = {"deletedEvent": {"entity": {"id": "d1"}}}
        assert extract_entity(body) == {"id": "d1"}

    def test_action_event_wins_over_created_event(self):
        body = {
            "actionEvent": {"body": {"id": "A"}},
            "createdEvent": {"entity": {"id": "B"}},
        }
        assert extract_entity(body) == {"id": "A"}

    def test_empty_wrapper_falls_through(self):
        """An empty object at a higher-precedence path is skipped"""
        body = {
            "actionEvent": {"body": {}},
            "updatedEvent": {"currentEntity": {"id": "u2"}},
        }
        assert extract_entity(body) == {"id": "u2"}

    def test_flat_event_entity(self):
        body = {"eventType": "bookings.appointment_created", "entity": {"id": "f1"}}
        assert extract_entity(body) == {"id": "f1"}

    def test_bare_entity_returned_as_is(self):
        body = {"id": "x1", "status": "CONFIRMED"}
        assert extract_entity(body) is body

    def test_non_object_never_raises(self):
        assert extract_entity(None) == {}
        assert extract_entity(["a"]) == {}


class TestResolveEvent:
    """Event naming"""

    def test_domain_event(self):
        event = resolve_event({
            "entityFqdn": "wix.bookings.v2.booking",
            "slug": "created",
            "entityId": "b1",
        })
        assert event.event_type == "wix.bookings.v2.booking.created"
        assert event.entity_type == "booking"
        assert event.action == "created"
        assert event.entity_id == "b1"
        assert event.is_known

    def test_cancelled_spelling_normalized(self):
        event = resolve_event({"entityFqdn": "wix.bookings.v2.booking", "slug": "cancelled"})
        assert event.action == "canceled"

    def test_flat_event_type(self):
        event = resolve_event({"eventType": "stores.order_payment_status_updated"})
        assert event.entity_type == "order"
        assert event.action == "payment_status_updated"

    def test_unknown_flat_event(self):
        event = resolve_event({"eventType": "blog.post_created"})
        assert event.event_type == "blog.post_created"
        assert not event.is_known

    def test_no_event_name(self):
        event = resolve_event({"id": "x"})
        assert event.event_type == "unknown"
        assert not event.is_known

    def test_payment_status_subject_is_order(self):
        event = resolve_event({"entityFqdn": "wix.ecom.v1.order", "slug": "payment_status_updated"})
        entity = {"order": {"id": "o1"}, "previousPaymentStatus": "NOT_PAID"}
        assert primary_subject(event, entity) == {"id": "o1"}


class TestParseBody:
    """Raw body decoding"""

    def test_json_object(self):
        assert parse_body(b'{"id": "1"}') == {"id": "1"}

    def test_malformed_json(self):
        with pytest.raises(MalformedPayload):
            parse_body(b'{"id": ')

    def test_json_array_rejected(self):
        with pytest.raises(MalformedPayload):
            parse_body(b'[1, 2]')

    def test_invalid_utf8(self):
        with pytest.raises(MalformedPayload):
            parse_body(b'\xff\xfe\x00')

    def _jwt_delivery(self):
        event = {
            "entityFqdn": "wix.contacts.v4.contact",
            "slug": "updated",
            "entityId": "c1",
            "updatedEvent": {"currentEntity": {"id": "c1"}},
        }
        claims = {"data": json.dumps({"data": json.dumps(event), "instanceId": "i1"})}
        return jwt.encode(claims, "not-verified", algorithm="HS256"), event

    def test_bare_jwt_unverified(self):
        token, event = self._jwt_delivery()
        assert parse_body(token.encode()) == event

    def test_jwt_as_json_string(self):
        token, event = self._jwt_delivery()
        assert parse_body(json.dumps(token).encode()) == event

    def test_jwt_failing_verification_is_bad_signature(self):
        token, _ = self._jwt_delivery()
        with patch("app.services.webhook_envelope.decode_jwt", side_effect=JWTError("bad")):
            with pytest.raises(BadSignature):
                parse_body(token.encode(), public_key="-----BEGIN PUBLIC KEY-----")

    def test_jwt_without_data_claim(self):
        token = jwt.encode({"sub": "x"}, "k", algorithm="HS256")
        with pytest.raises(MalformedPayload):
            parse_body(token.encode())
