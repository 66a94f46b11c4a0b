import os

# Must be set before inventory_service.db builds its engine
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from inventory_service.config import Settings
from inventory_service.db import Base
from inventory_service.models import Product, Store


@pytest.fixture
def engine():
    """In-memory SQLite shared across threads, with working SAVEPOINTs."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; let SQLAlchemy emit BEGIN
    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    session = Session(bind=engine, autoflush=False, expire_on_commit=False)
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def settings():
    return Settings(database_url="sqlite://")


@pytest.fixture
def catalog(db_session):
    """STORE001 with one active and one inactive product."""
    db_session.add_all(
        [
            Store(code="STORE001", name="Centro"),
            Product(sku="SKU001", name="Caneta azul", active=True),
            Product(sku="SKU002", name="Caneta preta", active=True),
            Product(sku="SKU-OFF", name="Descontinuado", active=False),
        ]
    )
    db_session.commit()
    return db_session
