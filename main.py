import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from endpoints.revenue_endpoint import router as revenue_router
from endpoints.status_endpoint import router as status_router
from endpoints.webhook_endpoint import router as webhook_router
from utils import config, storage_utils

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    storage_utils.init_db()
    logger.info("Garage parking service started")
    yield
    logger.info("Garage parking service stopped")


app = FastAPI(title="Garage Parking API", version="0.1.0", lifespan=lifespan)

# Webhook receives ENTRY/PARKED/EXIT events from the garage,
# the other routers are read-only queries
app.include_router(webhook_router)
app.include_router(status_router)
app.include_router(revenue_router)


@app.get("/")
def read_root():
    return {"message": "Welcome to the Garage Parking API!"}
