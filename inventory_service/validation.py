from typing import Optional

from inventory_service.logging import get_logger
from inventory_service.messages import SalesEvent, SalesItem
from inventory_service.repositories import CatalogReader

logger = get_logger()


class Validator:
    """Preconditions checked before any stock mutation.

    Only read-only catalog lookups happen here; every rejection is logged
    and reported as False, never raised.
    """

    def __init__(self, catalog: CatalogReader):
        self.catalog = catalog

    def validate_sales_event(self, event: Optional[SalesEvent], topic: Optional[str] = None) -> bool:
        if event is None or event.store_code is None or not event.items:
            logger.warning(
                f"Invalid sales event payload: {event!r}",
                extra={"topic": topic, "event_type": "sale"},
            )
            return False
        return True

    def validate_sales_item(self, item: Optional[SalesItem], topic: Optional[str] = None) -> bool:
        if item is None or item.sku is None or item.quantity is None or item.quantity <= 0:
            logger.warning(
                f"Skipping invalid sales item: {item!r}",
                extra={"topic": topic, "event_type": "sale"},
            )
            return False
        return True

    def store_exists(self, store_code: str) -> bool:
        return self.catalog.store_exists(store_code)

    def product_exists(self, sku: str) -> bool:
        return self.catalog.product_exists(sku)

    def is_active_product(self, sku: str, topic: Optional[str] = None) -> bool:
        active = self.catalog.get_active_flag(sku)
        if active is None:
            logger.warning(f"Product sku={sku} not found", extra={"topic": topic})
            return False
        if not active:
            logger.warning(f"Product sku={sku} is inactive", extra={"topic": topic})
            return False
        return True

    # Catalog upserts only need a key. The referenced entity may not exist
    # yet because create and update messages can arrive out of order.

    def validate_product_event(self, sku: Optional[str], topic: Optional[str] = None) -> bool:
        return sku is not None

    def validate_store_event(self, store_code: Optional[str], topic: Optional[str] = None) -> bool:
        return store_code is not None
