# checkout/main.py
from contextlib import asynccontextmanager

import requests
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from checkout.api.routers import admin, health, library, orders, promotions, reports, users, wallet
from checkout.data.database import init_db
from checkout.domain.errors import CheckoutError
from checkout.utils.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Initializing database")
    init_db()
    yield


async def checkout_error_handler(request: Request, exc: CheckoutError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.code} {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code, "details": exc.details},
    )


async def catalog_error_handler(request: Request, exc: requests.RequestException) -> JSONResponse:
    logger.error(f"Catalog service unavailable: {exc}")
    return JSONResponse(
        status_code=502,
        content={"detail": "Catalog service unavailable", "code": "CATALOG_UNAVAILABLE", "details": {}},
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Game Store Checkout Service",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_exception_handler(CheckoutError, checkout_error_handler)
    app.add_exception_handler(requests.RequestException, catalog_error_handler)

    # Include routers
    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(orders.router)
    app.include_router(wallet.router)
    app.include_router(promotions.router)
    app.include_router(library.router)
    app.include_router(reports.router)
    app.include_router(admin.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
