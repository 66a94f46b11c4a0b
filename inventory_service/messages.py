"""Inbound event payloads.

Every field is optional. A payload that decodes but lacks its store or SKU
still has to be marked processed before it is rejected, so shape checks
live in ``validation`` rather than here.
"""
import enum
from datetime import datetime
from typing import Annotated, Any, ClassVar, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


# Stock quantities and deltas are stored in 32-bit integer columns
INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1

Int32 = Annotated[int, Field(ge=INT32_MIN, le=INT32_MAX)]


class EventCategory(enum.Enum):
    PRODUCT = "product"
    STORE = "store"
    SALE = "sale"
    STOCK_ADJUSTMENT = "stock_adjustment"


class _Event(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    category: ClassVar[EventCategory]

    event_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("eventId", "event_id"))
    type: Optional[str] = Field(default=None, validation_alias=AliasChoices("type", "tipo"))


class _CatalogEvent(_Event):
    @model_validator(mode="before")
    @classmethod
    def lift_nested_data(cls, values: Any) -> Any:
        # Catalog attributes arrive nested under "data" ("dados" upstream)
        if not isinstance(values, dict):
            return values
        nested = values.get("data", values.get("dados"))
        if not isinstance(nested, dict):
            return values
        merged = {k: v for k, v in values.items() if k not in ("data", "dados")}
        for key, value in nested.items():
            merged.setdefault(key, value)
        return merged


class ProductEvent(_CatalogEvent):
    category: ClassVar[EventCategory] = EventCategory.PRODUCT

    sku: Optional[str] = None
    name: Optional[str] = Field(default=None, validation_alias=AliasChoices("name", "nome"))
    active: Optional[bool] = Field(default=None, validation_alias=AliasChoices("active", "ativo"))


class StoreEvent(_CatalogEvent):
    category: ClassVar[EventCategory] = EventCategory.STORE

    store_code: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("storeCode", "store_code", "code", "codigo")
    )
    name: Optional[str] = Field(default=None, validation_alias=AliasChoices("name", "nome"))


class SalesItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    sku: Optional[str] = None
    quantity: Optional[Int32] = Field(default=None, validation_alias=AliasChoices("quantity", "quantidade"))


class SalesEvent(_Event):
    category: ClassVar[EventCategory] = EventCategory.SALE

    timestamp: Optional[datetime] = None
    store_code: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("storeCode", "store_code", "loja")
    )
    order_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("orderId", "order_id", "pedidoId")
    )
    # A null element is skipped by the sales pipeline, not rejected here
    items: Optional[list[Optional[SalesItem]]] = Field(
        default=None, validation_alias=AliasChoices("items", "itens")
    )


class StockAdjustmentEvent(_Event):
    category: ClassVar[EventCategory] = EventCategory.STOCK_ADJUSTMENT

    timestamp: Optional[datetime] = None
    store_code: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("storeCode", "store_code", "loja")
    )
    sku: Optional[str] = None
    delta: Optional[Int32] = None
    reason: Optional[str] = Field(default=None, validation_alias=AliasChoices("reason", "motivo"))


InventoryEvent = ProductEvent | StoreEvent | SalesEvent | StockAdjustmentEvent
