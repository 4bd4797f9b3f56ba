"""
FastAPI application entry point
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware import RequestIDMiddleware, LoggingMiddleware
from api.routes import split_payments as split_payment_routes
from core.config import settings
from core.exceptions import register_exception_handlers
from core.logging_config import get_logger, configure_logging
from core.response import success_response
from core.settings import integration_settings
from domain.split_payment import SplitPaymentStore
from infrastructure.cache import init_redis_cache, shutdown_redis_cache
from infrastructure.external.terminal import get_terminal_gateway
from infrastructure.repositories.split_payment_store import (
    InMemorySplitPaymentStore,
    RedisSplitPaymentStore,
)


# Configure logging explicitly at the entry point, not on module import
configure_logging()
logger = get_logger(__name__)


async def _build_store() -> SplitPaymentStore:
    split = integration_settings.split
    choice = split.store
    if choice == "auto":
        choice = "redis" if settings.redis.url else "memory"

    if choice == "redis":
        try:
            cache = await init_redis_cache()
            store = RedisSplitPaymentStore(cache, retention_hours=split.retention_hours)
            logger.info("split_payment_store_selected", store="redis")
            return store
        except Exception as exc:
            if split.store == "redis":
                raise
            logger.error("redis_store_init_failed", error=str(exc))

    logger.info("split_payment_store_selected", store="memory")
    return InMemorySplitPaymentStore(
        retention_hours=split.retention_hours,
        cleanup_probability=split.cleanup_probability,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.split_payment_store = await _build_store()
    app.state.terminal_gateway = get_terminal_gateway()
    logger.info(
        "terminal_gateway_initialized",
        terminal_url=integration_settings.ecr.terminal_url,
    )

    yield

    close = getattr(app.state.terminal_gateway, "aclose", None)
    if callable(close):
        await close()
    if isinstance(app.state.split_payment_store, RedisSplitPaymentStore):
        await shutdown_redis_cache()
        logger.info("redis_cache_shutdown")
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    description="Middleware that splits one POS payment across sequential ECR terminal transactions",
)

# Middleware runs bottom-up: RequestID first so the logger sees request_id
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(split_payment_routes.router, prefix="/api/v1")


@app.get("/", tags=["Root"])
async def root():
    return success_response(
        data={
            "name": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "docs": "/docs",
        },
    )


@app.get("/health", tags=["Health"])
async def health_check():
    return success_response(data={"status": "healthy"}, message="ok")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info",
    )
