"""
Bulk Sync Service

Full resync of bookings, contacts, orders and products from the Wix REST
API. Everything is fetched first, mapped with the same field mapper the
webhooks use, then upserted in sequential fixed-size batches, one
transaction per batch. There is no checkpoint: a failure aborts the run
and the next run starts over.

Contacts are the exception. Both their Wix id and email are unique, so each
one goes through the dispatcher's identity matching on its own; a contact
that collides with another row is skipped and logged instead of aborting
the run.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from . import field_mapper
from .datastore import Datastore
from .upsert_dispatcher import CONTACTS_TARGET, UpsertDispatcher
from .webhook_errors import PersistenceError
from .wix_client import WixClient
from ..models import Booking, Contact, Order, Product
from ..utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class SyncResult:
    entity: str
    fetched: int = 0
    synced: int = 0
    skipped: int = 0
    batches: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity": self.entity,
            "fetched": self.fetched,
            "synced": self.synced,
            "skipped": self.skipped,
            "batches": self.batches,
        }


@dataclass(frozen=True)
class SyncTarget:
    model: Any
    conflict_key: str
    mapper: Callable[[dict], dict]
    fetch: str  # WixClient method name
    per_identity: bool = False


SYNC_TARGETS: Dict[str, SyncTarget] = {
    "bookings": SyncTarget(Booking, "wix_booking_id", field_mapper.map_booking, "fetch_all_bookings"),
    "contacts": SyncTarget(
        Contact, "wix_contact_id", field_mapper.map_contact, "fetch_all_contacts", per_identity=True
    ),
    "orders": SyncTarget(Order, "wix_order_id", field_mapper.map_order, "fetch_all_orders"),
    "products": SyncTarget(Product, "wix_product_id", field_mapper.map_product, "fetch_all_products"),
}


def chunked(items: List[Any], size: int):
    for start in range(0, len(items), size):
        yield items[start:start + size]


class BulkSyncService:
    def __init__(self, store: Datastore, client: WixClient, batch_size: int = 100):
        self.store = store
        self.client = client
        self.batch_size = batch_size
        self.identities = UpsertDispatcher(store, CONTACTS_TARGET)

    def sync(self, entity: str) -> SyncResult:
        """
        Fetch, map and upsert every record of one entity.

        Raises:
            KeyError: unknown entity
            WixAPIError: a page could not be fetched
            PersistenceError: a batch could not be written
        """
        target = SYNC_TARGETS[entity]
        result = SyncResult(entity=entity)

        items = getattr(self.client, target.fetch)()
        result.fetched = len(items)

        records = [target.mapper(item) for item in items if isinstance(item, dict)]
        for batch in chunked(records, self.batch_size):
            if target.per_identity:
                self._write_identities(entity, batch, result)
            else:
                result.synced += self.store.upsert_many(target.model, batch, target.conflict_key)
            result.batches += 1
            logger.sync_batch(entity, result.batches, len(batch))

        logger.info(
            f"Synced {result.synced}/{result.fetched} {entity} in {result.batches} batch(es), "
            f"{result.skipped} skipped"
        )
        return result

    def _write_identities(self, entity: str, batch: List[dict], result: SyncResult):
        for record in batch:
            if not record.get("wix_contact_id") and not record.get("email"):
                continue
            try:
                self.identities.write_identity(record)
            except PersistenceError as e:
                result.skipped += 1
                logger.warning(f"Skipped {entity} {record.get('wix_contact_id')}: {e.details}")
                continue
            result.synced += 1

    def sync_bookings(self) -> SyncResult:
        return self.sync("bookings")

    def sync_contacts(self) -> SyncResult:
        return self.sync("contacts")

    def sync_orders(self) -> SyncResult:
        return self.sync("orders")

    def sync_products(self) -> SyncResult:
        return self.sync("products")

    def sync_all(self) -> List[SyncResult]:
        return [self.sync(entity) for entity in ("contacts", "bookings", "orders", "products")]
