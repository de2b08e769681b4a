# coursecart/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import uvicorn

from coursecart.api.routers import admin, carts, enrollments, health, orders, payments
from coursecart.data.database import Base, init_db
from coursecart.domain.errors import CoreError, ExternalFailure, IntegrityViolation
from coursecart.utils.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Initializing database...")
    try:
        init_db()
    except Exception as e:
        logger.error(f"Failed to create tables: {e}")
        raise
    logger.info(f"Tables ready: {list(Base.metadata.tables.keys())}")
    yield


async def core_error_handler(request: Request, exc: CoreError):
    if isinstance(exc, IntegrityViolation):
        # szczegoly tylko w logach, klient dostaje ogolny komunikat
        logger.error(f"{request.method} {request.url.path}: integrity violation: {exc.message} {exc.details}")
    elif isinstance(exc, ExternalFailure):
        logger.warning(f"{request.method} {request.url.path}: {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


def create_app() -> FastAPI:
    app = FastAPI(
        title="Course Cart Service",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_exception_handler(CoreError, core_error_handler)

    # Include routers
    app.include_router(health.router)
    app.include_router(carts.router)
    app.include_router(orders.router)
    app.include_router(payments.router)
    app.include_router(admin.router)
    app.include_router(enrollments.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
