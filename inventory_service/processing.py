from datetime import datetime, UTC
from typing import Optional

from inventory_service.logging import get_logger
from inventory_service.repositories import MarkerKey, ProcessedEventStore

logger = get_logger()

UNKNOWN_TOPIC = "unknown"


class EventProcessor:
    """Dedup ledger: decides whether a message has already been applied."""

    def __init__(self, processed_events: ProcessedEventStore):
        self.processed_events = processed_events

    @staticmethod
    def marker_key(
        event_id: Optional[str],
        topic: Optional[str],
        partition: Optional[int],
        offset: Optional[int],
    ) -> Optional[MarkerKey]:
        """Key for a message, or None when it cannot be deduplicated."""
        if topic is None and partition is None and offset is None:
            return None
        if event_id is not None and event_id.strip():
            return MarkerKey(topic=topic or UNKNOWN_TOPIC, event_id=event_id)
        if topic is None or partition is None or offset is None:
            return None
        return MarkerKey(topic=topic, partition=partition, offset=offset)

    def mark_processed(
        self,
        event_id: Optional[str],
        topic: Optional[str],
        partition: Optional[int],
        offset: Optional[int],
    ) -> bool:
        """Record the message as applied. False means it was seen before."""
        key = self.marker_key(event_id, topic, partition, offset)
        if key is None:
            logger.warning(
                "Cannot deduplicate message without coordinates, processing it as new",
                extra={"topic": topic, "partition": partition, "offset": offset},
            )
            return True

        if self.processed_events.exists(key):
            logger.debug(
                "Message already processed",
                extra={"topic": key.topic, "partition": partition, "offset": offset},
            )
            return False

        if not self.processed_events.insert(key, datetime.now(UTC)):
            # A concurrent consumer committed the same key first
            logger.info(
                "Lost dedup race, treating message as processed",
                extra={"topic": key.topic, "partition": partition, "offset": offset},
            )
            return False

        logger.debug(
            "Message marked as processed",
            extra={"topic": key.topic, "partition": partition, "offset": offset},
        )
        return True

    def handle_duplicate(
        self,
        event_type: str,
        topic: Optional[str],
        partition: Optional[int],
        offset: Optional[int],
    ) -> None:
        logger.info(
            f"Duplicate {event_type} event skipped",
            extra={"topic": topic, "partition": partition, "offset": offset, "event_type": event_type},
        )
