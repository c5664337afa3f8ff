"""cartledger FastAPI application entry point."""

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from cartledger.carts.repository import CartRepository
from cartledger.carts.router import get_cart_service
from cartledger.carts.router import router as carts_router
from cartledger.carts.service import CartService
from cartledger.db.connection import Database
from cartledger.events.memory import InMemoryEventStore
from cartledger.events.store import EventStoreClient, SqliteEventStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage event store lifecycle and service wiring."""
    load_dotenv(Path(__file__).resolve().parent.parent / ".env")

    log_level = os.environ.get("CARTLEDGER_LOG_LEVEL")
    if log_level:
        logging.getLogger("cartledger").setLevel(log_level.upper())

    db: Database | None = None
    store: EventStoreClient
    backend = os.environ.get("CARTLEDGER_STORE", "sqlite")
    if backend == "memory":
        store = InMemoryEventStore()
    elif backend == "sqlite":
        db = await Database.connect(os.environ.get("CARTLEDGER_DB_PATH", "cartledger.db"))
        store = SqliteEventStore(db)
    else:
        raise RuntimeError(f"Unknown CARTLEDGER_STORE: {backend!r} (expected sqlite or memory)")
    logger.info("Using %s event store", backend)

    service = CartService(CartRepository(store))
    app.dependency_overrides[get_cart_service] = lambda: service

    yield

    app.dependency_overrides.clear()
    if db is not None:
        await db.close()


app = FastAPI(
    title="cartledger",
    description="Event-sourced shopping carts over an append-only event store",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(carts_router)


@app.get("/api/health")
async def health() -> dict:
    return {"status": "ok", "version": "0.1.0"}
