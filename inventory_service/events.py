import asyncio
from typing import Optional, Union

from aiokafka import AIOKafkaConsumer
from pydantic import ValidationError
from sqlalchemy.orm import Session

from inventory_service.config import Settings, get_settings
from inventory_service.db import SessionLocal
from inventory_service.inventory import StockManager
from inventory_service.logging import get_logger
from inventory_service.messages import (
    InventoryEvent,
    ProductEvent,
    SalesEvent,
    StockAdjustmentEvent,
    StoreEvent,
)
from inventory_service.metrics import inventory_event_processing_duration_seconds
from inventory_service.processing import EventProcessor
from inventory_service.repositories import (
    CatalogRepository,
    ProcessedEventRepository,
    StockAdjustmentRepository,
    StockRepository,
)
from inventory_service.state import Outcome
from inventory_service.usecases import InventoryEventHandler
from inventory_service.validation import Validator

logger = get_logger()


# ======================
# Decoding
# ======================

def topic_event_map(settings: Optional[Settings] = None) -> dict[str, type]:
    settings = settings or get_settings()
    return {
        settings.topic_products: ProductEvent,
        settings.topic_stores: StoreEvent,
        settings.topic_sales: SalesEvent,
        settings.topic_adjustments: StockAdjustmentEvent,
    }


def decode_event(
    topic: str,
    value: Union[bytes, str, dict, None],
    settings: Optional[Settings] = None,
) -> Optional[InventoryEvent]:
    """Decode a record value into the event model registered for its topic.

    Returns None for unknown topics and undecodable payloads; such records
    are logged and dropped so a poison message cannot stall the partition.
    """
    model = topic_event_map(settings).get(topic)
    if model is None:
        logger.warning(f"No event type registered for topic {topic}", extra={"topic": topic})
        return None

    try:
        if isinstance(value, (bytes, bytearray)):
            value = value.decode("utf-8")
        if isinstance(value, str):
            return model.model_validate_json(value)
        return model.model_validate(value)
    except (ValidationError, UnicodeDecodeError) as e:
        logger.warning(f"Dropping undecodable payload: {e}", extra={"topic": topic})
        return None


# ======================
# Handling
# ======================

def build_handler(db: Session, settings: Optional[Settings] = None) -> InventoryEventHandler:
    settings = settings or get_settings()
    catalog = CatalogRepository(db)
    return InventoryEventHandler(
        event_processor=EventProcessor(ProcessedEventRepository(db)),
        validator=Validator(catalog),
        stock_manager=StockManager(
            StockRepository(db),
            StockAdjustmentRepository(db),
            allow_negative=settings.allow_negative_stock,
        ),
        catalog_writer=catalog if settings.catalog_sync else None,
    )


def handle_message(
    topic: str,
    partition: Optional[int],
    offset: Optional[int],
    value: Union[bytes, str, dict, None],
    db: Optional[Session] = None,
    settings: Optional[Settings] = None,
) -> Optional[Outcome]:
    """Apply one record inside its own transaction.

    The dedup marker and the stock changes commit together. Any exception
    rolls both back and is re-raised so the offset is not committed.
    """
    event = decode_event(topic, value, settings)
    if event is None:
        return None

    close_db = False
    if db is None:
        db = SessionLocal()
        close_db = True

    extra = {"topic": topic, "partition": partition, "offset": offset, "event_type": event.category.value}
    try:
        with inventory_event_processing_duration_seconds.time():
            outcome = build_handler(db, settings).dispatch(event, topic, partition, offset)
            db.commit()
        logger.info(f"Event {event.event_id} finished as {outcome.value}", extra=extra)
        return outcome
    except Exception:
        db.rollback()
        logger.exception(f"Error handling event {event.event_id}", extra=extra)
        raise
    finally:
        if close_db:
            db.close()


async def start_consumer(settings: Optional[Settings] = None) -> None:
    """Consume all inventory topics until cancelled or a record fails.

    Records are handled one at a time so each partition keeps offset order.
    Offsets are committed only after the record's transaction committed.
    """
    settings = settings or get_settings()
    consumer = AIOKafkaConsumer(
        *settings.topics,
        bootstrap_servers=settings.kafka_bootstrap_servers,
        group_id=settings.kafka_group_id,
        enable_auto_commit=False,
        auto_offset_reset="earliest",
    )
    await consumer.start()
    logger.info(f"Kafka consumer started for topics {', '.join(settings.topics)}")
    try:
        async for msg in consumer:
            await asyncio.to_thread(
                handle_message, msg.topic, msg.partition, msg.offset, msg.value, None, settings
            )
            await consumer.commit()
    finally:
        await consumer.stop()
        logger.info("Kafka consumer stopped")
