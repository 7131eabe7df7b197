import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ledger.api.routes.auth import router as auth_router
from ledger.api.routes.inventory import router as inventory_router
from ledger.api.routes.ledger import router as ledger_router
from ledger.api.routes.metrics import router as metrics_router
from ledger.core.config import settings
from ledger.core.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    setup_logging()
    logger.info("Starting %s", settings.app_name)
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(auth_router)
app.include_router(ledger_router)
app.include_router(inventory_router)
app.include_router(metrics_router)


@app.get("/health", tags=["System"])
def health_check():
    return {"status": "ok"}
