import asyncio
from contextlib import asynccontextmanager
from fastapi import FastAPI

from inventory_service.api import router
from inventory_service.db import init_db
from inventory_service.events import start_consumer
from inventory_service.logging import get_logger

logger = get_logger()


def _log_consumer_exit(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    if task.exception() is not None:
        logger.error("Kafka consumer exited with an error", exc_info=task.exception())


@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- Startup ---
    init_db()

    # Apply inventory events in the background while the API serves reads
    consumer_task = asyncio.create_task(start_consumer())
    consumer_task.add_done_callback(_log_consumer_exit)
    # /health reports the service down once this task has finished
    app.state.consumer_task = consumer_task

    yield

    # --- Shutdown ---
    if not consumer_task.done():
        consumer_task.cancel()
        try:
            await consumer_task
        except asyncio.CancelledError:
            pass


app = FastAPI(title="Inventory Service", lifespan=lifespan)
app.include_router(router)
