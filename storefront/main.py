# storefront/main.py
from contextlib import asynccontextmanager

import redis
import uvicorn
from fastapi import FastAPI

from storefront.api.routers import cart, checkout, health
from storefront.data.database import Base, engine
from storefront.data import models  # noqa: F401  rejestracja tabel w Base.metadata
from storefront.services.payment_orchestrator import AttemptRegistry
from storefront.utils.logging import get_logger, setup_logging
from storefront.utils.settings import REDIS_URL

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Creating local cart tables: {list(Base.metadata.tables.keys())}")
    Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    setup_logging()

    app = FastAPI(
        title="Storefront Checkout",
        version="1.0.0",
        lifespan=lifespan,
    )

    # klient redis laczy sie leniwie, przy pierwszej komendzie
    app.state.redis = redis.Redis.from_url(REDIS_URL, decode_responses=True)
    app.state.attempts = AttemptRegistry()

    app.include_router(health.router)
    app.include_router(cart.router)
    app.include_router(checkout.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
