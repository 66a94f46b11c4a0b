"""Storage collaborators used by the event pipelines.

The pipelines only see the ``Protocol`` ports below. The SQLAlchemy classes
implement them against a caller-owned ``Session``; none of them commits, the
per-message transaction is owned by ``inventory_service.events``.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from inventory_service.models import Product, ProcessedEvent, Stock, StockAdjustment, Store


@dataclass(frozen=True)
class MarkerKey:
    """Lookup key of a dedup marker.

    Either ``event_id`` is set (business identity) or both ``partition`` and
    ``offset`` are (transport coordinates).
    """

    topic: str
    partition: Optional[int] = None
    offset: Optional[int] = None
    event_id: Optional[str] = None


# ======================
# Ports
# ======================

class ProcessedEventStore(Protocol):
    def exists(self, key: MarkerKey) -> bool: ...

    def insert(self, key: MarkerKey, at: datetime) -> bool:
        """Return False when the key already exists (unique constraint hit)."""
        ...


class StockStore(Protocol):
    def get_quantity(self, store_code: str, sku: str, for_update: bool = False) -> int: ...

    def upsert_quantity(self, store_code: str, sku: str, quantity: int) -> None: ...


class StockAdjustmentStore(Protocol):
    def save_adjustment(
        self, store_code: str, sku: str, delta: int, reason: Optional[str], at: datetime
    ) -> None: ...


class CatalogReader(Protocol):
    def store_exists(self, store_code: str) -> bool: ...

    def product_exists(self, sku: str) -> bool: ...

    def get_active_flag(self, sku: str) -> Optional[bool]: ...


class CatalogWriter(Protocol):
    def upsert_product(self, sku: str, name: Optional[str], active: Optional[bool]) -> None: ...

    def upsert_store(self, store_code: str, name: Optional[str]) -> None: ...


# ======================
# SQLAlchemy adapters
# ======================

class ProcessedEventRepository:
    def __init__(self, db: Session):
        self.db = db

    def _query(self, key: MarkerKey):
        query = self.db.query(ProcessedEvent.id).filter(ProcessedEvent.topic == key.topic)
        if key.event_id is not None:
            return query.filter(ProcessedEvent.event_id == key.event_id)
        return query.filter(
            ProcessedEvent.partition == key.partition,
            ProcessedEvent.offset == key.offset,
        )

    def exists(self, key: MarkerKey) -> bool:
        return self._query(key).first() is not None

    def insert(self, key: MarkerKey, at: datetime) -> bool:
        # SAVEPOINT so a lost race does not abort the message transaction
        try:
            with self.db.begin_nested():
                self.db.add(
                    ProcessedEvent(
                        topic=key.topic,
                        partition=key.partition,
                        offset=key.offset,
                        event_id=key.event_id,
                        processed_at=at,
                    )
                )
        except IntegrityError:
            return False
        return True


class StockRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_quantity(self, store_code: str, sku: str, for_update: bool = False) -> int:
        query = self.db.query(Stock).filter_by(store_code=store_code, sku=sku)
        if for_update:
            query = query.with_for_update()
        stock = query.first()
        if stock is None or stock.quantity is None:
            return 0
        return stock.quantity

    def upsert_quantity(self, store_code: str, sku: str, quantity: int) -> None:
        stock = self.db.get(Stock, (store_code, sku))
        if stock is None:
            self.db.add(Stock(store_code=store_code, sku=sku, quantity=quantity))
        else:
            stock.quantity = quantity
        self.db.flush()

    def get_line(self, store_code: str, sku: str) -> Optional[Stock]:
        return self.db.get(Stock, (store_code, sku))

    def list_by_store(self, store_code: str) -> list[Stock]:
        return self.db.query(Stock).filter_by(store_code=store_code).order_by(Stock.sku).all()

    def list_by_sku(self, sku: str) -> list[Stock]:
        return self.db.query(Stock).filter_by(sku=sku).order_by(Stock.store_code).all()

    def list_all(self) -> list[Stock]:
        return self.db.query(Stock).order_by(Stock.store_code, Stock.sku).all()


class StockAdjustmentRepository:
    def __init__(self, db: Session):
        self.db = db

    def save_adjustment(
        self, store_code: str, sku: str, delta: int, reason: Optional[str], at: datetime
    ) -> None:
        self.db.add(
            StockAdjustment(store_code=store_code, sku=sku, delta=delta, reason=reason, occurred_at=at)
        )
        self.db.flush()


class CatalogRepository:
    """Read side of products/stores plus the optional upserts."""

    def __init__(self, db: Session):
        self.db = db

    def store_exists(self, store_code: str) -> bool:
        return self.db.query(Store.code).filter_by(code=store_code).first() is not None

    def product_exists(self, sku: str) -> bool:
        return self.db.query(Product.sku).filter_by(sku=sku).first() is not None

    def get_active_flag(self, sku: str) -> Optional[bool]:
        product = self.db.get(Product, sku)
        if product is None:
            return None
        return product.active

    def upsert_product(self, sku: str, name: Optional[str], active: Optional[bool]) -> None:
        product = self.db.get(Product, sku)
        if product is None:
            product = Product(sku=sku)
            self.db.add(product)
        if name is not None:
            product.name = name
        if active is not None:
            product.active = active
        self.db.flush()

    def upsert_store(self, store_code: str, name: Optional[str]) -> None:
        store = self.db.get(Store, store_code)
        if store is None:
            store = Store(code=store_code)
            self.db.add(store)
        if name is not None:
            store.name = name
        self.db.flush()
