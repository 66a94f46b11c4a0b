from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel
from sqlalchemy.orm import Session

from inventory_service.db import get_db
from inventory_service.repositories import StockRepository

router = APIRouter()


class StockResponse(BaseModel):
    store_code: str
    sku: str
    quantity: int
    updated_at: Optional[datetime] = None


def _to_response(stock) -> dict:
    return {
        "store_code": stock.store_code,
        "sku": stock.sku,
        "quantity": stock.quantity,
        "updated_at": stock.updated_at,
    }


@router.get("/stock/store/{store_code}", response_model=list[StockResponse])
def get_store_stock(store_code: str, db: Session = Depends(get_db)):
    return [_to_response(s) for s in StockRepository(db).list_by_store(store_code)]


@router.get("/stock/{store_code}/{sku}", response_model=StockResponse)
def get_stock_line(store_code: str, sku: str, db: Session = Depends(get_db)):
    stock = StockRepository(db).get_line(store_code, sku)
    # Absence of a line means nothing was ever received for it
    if stock is None:
        return {"store_code": store_code, "sku": sku, "quantity": 0, "updated_at": None}
    return _to_response(stock)


@router.get("/stock", response_model=list[StockResponse])
def list_stock(sku: Optional[str] = None, db: Session = Depends(get_db)):
    repo = StockRepository(db)
    lines = repo.list_by_sku(sku) if sku else repo.list_all()
    return [_to_response(s) for s in lines]


@router.get("/health")
def health(request: Request, response: Response):
    consumer_task = getattr(request.app.state, "consumer_task", None)
    # A stopped consumer no longer applies events even though reads still work
    if consumer_task is not None and consumer_task.done():
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "consumer_stopped"}
    return {"status": "online"}


@router.get("/metrics")
def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
