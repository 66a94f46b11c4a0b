from datetime import datetime
from typing import Optional

from inventory_service.logging import get_logger
from inventory_service.messages import INT32_MAX, INT32_MIN
from inventory_service.metrics import inventory_negative_stock_blocked_total
from inventory_service.repositories import StockAdjustmentStore, StockStore
from inventory_service.state import Outcome

logger = get_logger()


class StockManager:
    """Read-modify-write over stock lines plus the adjustment audit log."""

    def __init__(
        self,
        stock: StockStore,
        adjustments: StockAdjustmentStore,
        allow_negative: bool = False,
    ):
        self.stock = stock
        self.adjustments = adjustments
        self.allow_negative = allow_negative

    def adjust_stock(
        self,
        store_code: str,
        sku: str,
        delta: int,
        allow_zero_delta: bool = False,
        topic: Optional[str] = None,
    ) -> Outcome:
        if delta == 0 and not allow_zero_delta:
            return Outcome.APPLIED

        # Row lock serializes concurrent adjustments of the same line
        current = self.stock.get_quantity(store_code, sku, for_update=True)
        new_quantity = current + delta

        if not INT32_MIN <= new_quantity <= INT32_MAX:
            logger.warning(
                f"Blocked out of range stock for store={store_code} sku={sku} "
                f"(current={current}, delta={delta})",
                extra={"topic": topic},
            )
            return Outcome.POLICY_REJECTED

        if new_quantity < 0 and not self.allow_negative:
            inventory_negative_stock_blocked_total.inc()
            logger.warning(
                f"Blocked negative stock for store={store_code} sku={sku} "
                f"(current={current}, delta={delta})",
                extra={"topic": topic},
            )
            return Outcome.POLICY_REJECTED

        self.stock.upsert_quantity(store_code, sku, new_quantity)
        logger.debug(
            f"Stock store={store_code} sku={sku}: {current} -> {new_quantity}",
            extra={"topic": topic},
        )
        return Outcome.APPLIED

    def record_adjustment(
        self,
        store_code: str,
        sku: str,
        delta: int,
        reason: Optional[str],
        occurred_at: datetime,
    ) -> None:
        self.adjustments.save_adjustment(store_code, sku, delta, reason, occurred_at)
