"""
Tests for the best-effort webhook log sink
"""

from unittest.mock import MagicMock

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from app.models import WebhookLog, WebhookLogStatus
from app.services.webhook_log_sink import BODY_PREVIEW_LENGTH, WebhookLogSink


class TestWebhookLogSink:

    def test_record_writes_row(self, session_factory, db):
        sink = WebhookLogSink(session_factory, endpoint="webhook-router")

        assert sink.record("wix.contacts.v4.contact.updated", WebhookLogStatus.SUCCESS.value, wix_id="c1") is True

        row = db.query(WebhookLog).one()
        assert row.endpoint == "webhook-router"
        assert row.wix_id == "c1"
        assert row.webhook_status == "success"
        assert row.logged_at is not None

    def test_record_received_truncates_body(self, session_factory, db):
        sink = WebhookLogSink(session_factory)
        sink.record_received(b"x" * (BODY_PREVIEW_LENGTH * 2))

        row = db.query(WebhookLog).one()
        assert row.event_type == "webhook_received"
        assert len(row.data["body_preview"]) == BODY_PREVIEW_LENGTH

    def test_commit_failure_swallowed(self):
        session = MagicMock()
        session.commit.side_effect = RuntimeError("disk full")
        sink = WebhookLogSink(lambda: session)

        assert sink.record("x", WebhookLogStatus.FAILED.value) is False
        session.rollback.assert_called_once()
        session.close.assert_called_once()

    def test_unavailable_factory_swallowed(self):
        def broken_factory():
            raise RuntimeError("no database")

        assert WebhookLogSink(broken_factory).record("x", "failed") is False
