# Services package
from .webhook_errors import (
    WebhookError, BadSignature, MalformedPayload,
    ValidationError, PersistenceError, LogSinkError
)
from .datastore import Datastore
from .upsert_dispatcher import UpsertDispatcher, DispatchResult, CONTACTS_TARGET, CUSTOMERS_TARGET
from .webhook_log_sink import WebhookLogSink
from .webhook_ingestion import WebhookIngestion, WebhookOutcome, WebhookState
from .webhook_retry import WebhookRetryService
from .wix_client import WixClient, WixAPIError
from .bulk_sync import BulkSyncService, SyncResult

__all__ = [
    "WebhookError", "BadSignature", "MalformedPayload",
    "ValidationError", "PersistenceError", "LogSinkError",
    "Datastore",
    "UpsertDispatcher", "DispatchResult", "CONTACTS_TARGET", "CUSTOMERS_TARGET",
    "WebhookLogSink",
    "WebhookIngestion", "WebhookOutcome", "WebhookState",
    "WebhookRetryService",
    "WixClient", "WixAPIError",
    "BulkSyncService", "SyncResult",
]
