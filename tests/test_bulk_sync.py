"""
Tests for the Wix REST client and bulk sync

Tests cover:
- Cursor paging until no next cursor
- Error mapping for non-2xx responses
- Batched upserts, idempotent across runs
- Contact collisions skipped instead of aborting the run
- /api/sync/{entity} endpoint
"""

import json
import pytest
import httpx

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from app.models import Booking, Contact, Product
from app.routers.sync import get_wix_client
from app.main import app
from app.services.bulk_sync import BulkSyncService, chunked
from app.services.datastore import Datastore
from app.services.wix_client import BOOKINGS_QUERY, CONTACTS_QUERY, PRODUCTS_QUERY, WixAPIError, WixClient


def paged_transport(pages_by_path, status_code=200):
    """MockTransport serving successive pages per endpoint, recording request bodies"""
    requests = []
    counters = {}

    def handler(request: httpx.Request):
        body = json.loads(request.content)
        requests.append((request.url.path, body, request.headers.get("Authorization")))
        if status_code != 200:
            return httpx.Response(status_code, json={"message": "nope"})
        pages = pages_by_path[request.url.path]
        index = counters.get(request.url.path, 0)
        counters[request.url.path] = index + 1
        return httpx.Response(200, json=pages[index])

    return httpx.MockTransport(handler), requests


def client_for(transport):
    return WixClient("token-1", base_url="https://wix.test", transport=transport)


BOOKING_PAGES = {
    BOOKINGS_QUERY: [
        {"bookings": [{"id": "b1"}, {"id": "b2"}], "pagingMetadata": {"cursors": {"next": "cur-2"}}},
        {"bookings": [{"id": "b3"}], "pagingMetadata": {"cursors": {}}},
    ]
}


class TestWixClient:

    def test_follows_cursor(self):
        transport, requests = paged_transport(BOOKING_PAGES)
        items = client_for(transport).fetch_all_bookings(start_date="2024-01-01")

        assert [item["id"] for item in items] == ["b1", "b2", "b3"]
        assert len(requests) == 2
        assert requests[0][1]["cursorPaging"] == {"limit": 100}
        assert requests[0][1]["filter"] == {"startDate": {"$gte": "2024-01-01"}}
        assert requests[1][1]["cursorPaging"] == {"limit": 100, "cursor": "cur-2"}
        assert requests[0][2] == "Bearer token-1"

    def test_error_response(self):
        transport, _ = paged_transport({}, status_code=401)
        with pytest.raises(WixAPIError) as exc:
            client_for(transport).fetch_all_contacts()
        assert exc.value.status_code == 401
        assert exc.value.code == "unauthorized"
        assert exc.value.message == "nope"

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("unreachable")

        with pytest.raises(WixAPIError) as exc:
            client_for(httpx.MockTransport(handler)).fetch_all_products()
        assert exc.value.code == "transport_error"


class TestBulkSync:

    def test_chunked(self):
        assert list(chunked([1, 2, 3, 4, 5], 2)) == [[1, 2], [3, 4], [5]]

    def test_sync_bookings_in_batches(self, db):
        transport, _ = paged_transport(BOOKING_PAGES)
        service = BulkSyncService(Datastore(db), client_for(transport), batch_size=2)

        result = service.sync_bookings()

        assert result.fetched == 3
        assert result.synced == 3
        assert result.batches == 2
        assert db.query(Booking).count() == 3

    def test_resync_is_idempotent(self, db):
        pages = {CONTACTS_QUERY: [
            {"contacts": [{"id": "c1", "info": {"name": {"first": "A"}}}]},
            {"contacts": [{"id": "c1", "info": {"name": {"first": "B"}}}]},
        ]}
        transport, _ = paged_transport(pages)
        service = BulkSyncService(Datastore(db), client_for(transport))

        service.sync_contacts()
        service.sync_contacts()

        contact = db.query(Contact).one()
        db.refresh(contact)
        assert contact.name == "B"

    def test_duplicate_email_does_not_abort(self, db):
        pages = {CONTACTS_QUERY: [{"contacts": [
            {"id": "c1", "info": {"emails": [{"email": "dup@x.com"}]}},
            {"id": "c2", "info": {"emails": [{"email": "dup@x.com"}]}},
            {"id": "c3", "info": {"emails": [{"email": "other@x.com"}]}},
        ]}]}
        transport, _ = paged_transport(pages)

        result = BulkSyncService(Datastore(db), client_for(transport)).sync_contacts()

        assert result.synced == 3
        assert result.skipped == 0
        assert db.query(Contact).filter_by(email="dup@x.com").count() == 1
        assert db.query(Contact).filter_by(wix_contact_id="c3").count() == 1

    def test_contact_created_by_webhook_is_reused(self, db):
        store = Datastore(db)
        existing = store.upsert(Contact, {"email": "jane@x.com", "wix_contact_id": "c-old"}, "email")
        pages = {CONTACTS_QUERY: [{"contacts": [
            {"id": "c-new", "info": {"emails": [{"email": "jane@x.com"}]}},
        ]}]}
        transport, _ = paged_transport(pages)

        BulkSyncService(store, client_for(transport)).sync_contacts()

        contact = db.query(Contact).one()
        db.refresh(contact)
        assert contact.id == existing["id"]
        assert contact.wix_contact_id == "c-new"

    def test_colliding_contact_skipped(self, db):
        store = Datastore(db)
        store.upsert(Contact, {"email": "a@x.com", "wix_contact_id": "c1"}, "email")
        store.upsert(Contact, {"email": "b@x.com", "wix_contact_id": "c2"}, "email")
        pages = {CONTACTS_QUERY: [{"contacts": [
            {"id": "c2", "info": {"emails": [{"email": "a@x.com"}]}},
            {"id": "c3", "info": {"emails": [{"email": "c@x.com"}]}},
        ]}]}
        transport, _ = paged_transport(pages)

        result = BulkSyncService(store, client_for(transport)).sync_contacts()

        assert result.skipped == 1
        assert result.synced == 1
        assert db.query(Contact).count() == 3

    def test_unknown_entity(self, db):
        service = BulkSyncService(Datastore(db), client_for(httpx.MockTransport(lambda r: httpx.Response(200))))
        with pytest.raises(KeyError):
            service.sync("giftcards")


class TestSyncEndpoint:

    def test_sync_products(self, client, db):
        transport, _ = paged_transport({PRODUCTS_QUERY: [{"products": [{"id": "p1", "name": "Gel"}]}]})
        app.dependency_overrides[get_wix_client] = lambda: client_for(transport)

        response = client.post("/api/sync/products")

        assert response.status_code == 200
        body = response.json()
        assert body["synced"] == 1
        assert body["results"][0]["entity"] == "products"
        assert db.query(Product).filter_by(wix_product_id="p1").one().name == "Gel"

    def test_unknown_entity_404(self, client):
        app.dependency_overrides[get_wix_client] = lambda: None
        assert client.post("/api/sync/giftcards").status_code == 404

    def test_unconfigured_token_503(self, client):
        app.dependency_overrides[get_wix_client] = lambda: None
        assert client.post("/api/sync/bookings").status_code == 503

    def test_wix_failure_500(self, client):
        transport, _ = paged_transport({}, status_code=500)
        app.dependency_overrides[get_wix_client] = lambda: client_for(transport)

        response = client.post("/api/sync/bookings")

        assert response.status_code == 500
        assert response.json()["success"] is False
