"""Utility settlement FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from utility_settlement.api.routes import fixed_utilities, meters, rates, settlements, tenants
from utility_settlement.config import settings
from utility_settlement.database import engine
from utility_settlement.errors import SettlementError, error_response
from utility_settlement.models import Base

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle (startup and shutdown)."""
    # Startup: create tables for SQLite dev databases; other backends use Alembic
    if engine.url.get_backend_name() == "sqlite":
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables initialized")
    yield
    logger.info("Application shutting down")


app = FastAPI(
    title=settings.api_title,
    description="Utility cost settlement for rental properties",
    version=settings.api_version,
    lifespan=lifespan,
)


@app.exception_handler(SettlementError)
async def settlement_error_handler(request: Request, exc: SettlementError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info(
            "%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc.message
        )
    return JSONResponse(status_code=exc.http_status, content=jsonable_encoder(error_response(exc)))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder(
            {
                "error": {
                    "code": "validation_error",
                    "message": "Invalid request",
                    "context": {"errors": exc.errors()},
                }
            }
        ),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "internal_error",
                "message": "Internal server error",
                "context": {},
            }
        },
    )


# Include routers
app.include_router(settlements.router)
app.include_router(meters.router)
app.include_router(fixed_utilities.router)
app.include_router(rates.router)
app.include_router(tenants.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    logger.debug("Health check called")
    return {"status": "ok"}


def run() -> None:
    """Console entry point: load .env, configure logging and serve with uvicorn."""
    import uvicorn
    from dotenv import load_dotenv

    from utility_settlement.services.logging import setup_server_logging

    load_dotenv()
    setup_server_logging()
    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    run()
