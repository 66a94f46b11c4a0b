"""Event pipelines.

Each pipeline runs the same gates in order and stops at the first one that
fails::

    dedup -> validation -> mutation -> Outcome

Every outcome is terminal. Nothing is retried here and nothing is sent back
to the producer; storage errors propagate to the caller untouched.
"""
from datetime import datetime, UTC
from typing import Callable, Optional

from inventory_service.inventory import StockManager
from inventory_service.logging import get_logger
from inventory_service.messages import (
    EventCategory,
    InventoryEvent,
    ProductEvent,
    SalesEvent,
    StockAdjustmentEvent,
    StoreEvent,
)
from inventory_service.metrics import inventory_events_total, inventory_stock_adjustments_total
from inventory_service.processing import EventProcessor
from inventory_service.repositories import CatalogWriter
from inventory_service.state import Outcome
from inventory_service.validation import Validator

logger = get_logger()


class InventoryEventHandler:
    def __init__(
        self,
        event_processor: EventProcessor,
        validator: Validator,
        stock_manager: StockManager,
        catalog_writer: Optional[CatalogWriter] = None,
    ):
        self.event_processor = event_processor
        self.validator = validator
        self.stock_manager = stock_manager
        self.catalog_writer = catalog_writer

        self._pipelines: dict[type, Callable[..., Outcome]] = {
            ProductEvent: self.handle_product_event,
            StoreEvent: self.handle_store_event,
            SalesEvent: self.handle_sales_event,
            StockAdjustmentEvent: self.handle_stock_adjustment_event,
        }

    def dispatch(
        self,
        event: InventoryEvent,
        topic: Optional[str],
        partition: Optional[int],
        offset: Optional[int],
    ) -> Outcome:
        pipeline = self._pipelines.get(type(event))
        if pipeline is None:
            raise TypeError(f"No pipeline for event type {type(event).__name__}")
        return pipeline(event, topic, partition, offset)

    # ======================
    # Gates
    # ======================

    def _is_duplicate(self, category, event, topic, partition, offset) -> bool:
        event_id = event.event_id if event is not None else None
        if self.event_processor.mark_processed(event_id, topic, partition, offset):
            return False
        self.event_processor.handle_duplicate(category.value, topic, partition, offset)
        return True

    @staticmethod
    def _finish(category: EventCategory, outcome: Outcome) -> Outcome:
        inventory_events_total.labels(category=category.value, outcome=outcome.value).inc()
        return outcome

    # ======================
    # Pipelines
    # ======================

    def handle_product_event(
        self,
        event: Optional[ProductEvent],
        topic: Optional[str],
        partition: Optional[int],
        offset: Optional[int],
    ) -> Outcome:
        category = EventCategory.PRODUCT
        if self._is_duplicate(category, event, topic, partition, offset):
            return self._finish(category, Outcome.DUPLICATE_SKIPPED)

        sku = event.sku if event is not None else None
        if not self.validator.validate_product_event(sku, topic):
            logger.warning(
                f"Invalid product event payload: {event!r}",
                extra={"topic": topic, "partition": partition, "offset": offset, "event_type": category.value},
            )
            return self._finish(category, Outcome.VALIDATION_REJECTED)

        if self.catalog_writer is not None:
            self.catalog_writer.upsert_product(sku, event.name, event.active)
        return self._finish(category, Outcome.APPLIED)

    def handle_store_event(
        self,
        event: Optional[StoreEvent],
        topic: Optional[str],
        partition: Optional[int],
        offset: Optional[int],
    ) -> Outcome:
        category = EventCategory.STORE
        if self._is_duplicate(category, event, topic, partition, offset):
            return self._finish(category, Outcome.DUPLICATE_SKIPPED)

        store_code = event.store_code if event is not None else None
        if not self.validator.validate_store_event(store_code, topic):
            logger.warning(
                f"Invalid store event payload: {event!r}",
                extra={"topic": topic, "partition": partition, "offset": offset, "event_type": category.value},
            )
            return self._finish(category, Outcome.VALIDATION_REJECTED)

        if self.catalog_writer is not None:
            self.catalog_writer.upsert_store(store_code, event.name)
        return self._finish(category, Outcome.APPLIED)

    def handle_sales_event(
        self,
        event: Optional[SalesEvent],
        topic: Optional[str],
        partition: Optional[int],
        offset: Optional[int],
    ) -> Outcome:
        category = EventCategory.SALE
        if self._is_duplicate(category, event, topic, partition, offset):
            return self._finish(category, Outcome.DUPLICATE_SKIPPED)

        if not self.validator.validate_sales_event(event, topic):
            return self._finish(category, Outcome.VALIDATION_REJECTED)

        if not self.validator.store_exists(event.store_code):
            logger.warning(
                f"Store code={event.store_code} not found, dropping sales event",
                extra={"topic": topic, "partition": partition, "offset": offset, "event_type": category.value},
            )
            return self._finish(category, Outcome.VALIDATION_REJECTED)

        # Items are applied independently; a bad sibling does not block the rest
        applied = blocked = 0
        for item in event.items:
            if not self.validator.validate_sales_item(item, topic):
                continue
            if not self.validator.is_active_product(item.sku, topic):
                continue
            result = self.stock_manager.adjust_stock(
                event.store_code, item.sku, -item.quantity, allow_zero_delta=False, topic=topic
            )
            if result is Outcome.APPLIED:
                applied += 1
                inventory_stock_adjustments_total.labels(source="sale").inc()
            else:
                blocked += 1

        if applied:
            return self._finish(category, Outcome.APPLIED)
        if blocked:
            return self._finish(category, Outcome.POLICY_REJECTED)
        return self._finish(category, Outcome.VALIDATION_REJECTED)

    def handle_stock_adjustment_event(
        self,
        event: Optional[StockAdjustmentEvent],
        topic: Optional[str],
        partition: Optional[int],
        offset: Optional[int],
    ) -> Outcome:
        category = EventCategory.STOCK_ADJUSTMENT
        log_extra = {"topic": topic, "partition": partition, "offset": offset, "event_type": category.value}

        if self._is_duplicate(category, event, topic, partition, offset):
            return self._finish(category, Outcome.DUPLICATE_SKIPPED)

        if event is None or event.store_code is None or event.sku is None:
            logger.warning(f"Invalid stock adjustment payload: {event!r}", extra=log_extra)
            return self._finish(category, Outcome.VALIDATION_REJECTED)

        store_exists = self.validator.store_exists(event.store_code)
        product_exists = self.validator.product_exists(event.sku)
        if not store_exists or not product_exists:
            logger.warning(
                f"Unknown reference (store_exists={store_exists}, product_exists={product_exists}), "
                f"ignoring adjustment for store={event.store_code} sku={event.sku}",
                extra=log_extra,
            )
            return self._finish(category, Outcome.VALIDATION_REJECTED)

        if not self.validator.is_active_product(event.sku, topic):
            return self._finish(category, Outcome.VALIDATION_REJECTED)

        delta = event.delta if event.delta is not None else 0
        occurred_at = event.timestamp or datetime.now(UTC)

        # Audited even when delta is zero or the policy blocks the change
        self.stock_manager.record_adjustment(event.store_code, event.sku, delta, event.reason, occurred_at)
        result = self.stock_manager.adjust_stock(
            event.store_code, event.sku, delta, allow_zero_delta=True, topic=topic
        )
        if result is Outcome.APPLIED:
            inventory_stock_adjustments_total.labels(source="adjustment").inc()
        return self._finish(category, result)
