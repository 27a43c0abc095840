import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from schoolhub.infrastructure.db.pool import close_pool, get_pool
from schoolhub.infrastructure.email.delivery_channel import EmailDeliveryChannel
from schoolhub.infrastructure.email.http_smtp_adapter import HttpSmtpEmailAdapter
from schoolhub.infrastructure.http.client import (
    close_http_client,
    get_http_client,
    open_http_client,
)
from schoolhub.infrastructure.memory.gate_passes import InMemoryGatePasses
from schoolhub.infrastructure.memory.verification_store import (
    InMemoryVerificationStore,
)
from schoolhub.infrastructure.redis_cache.gate_passes import RedisGatePasses
from schoolhub.infrastructure.redis_cache.pool import close_redis, get_redis, open_redis
from schoolhub.infrastructure.redis_cache.verification_store import (
    RedisVerificationStore,
)
from schoolhub.infrastructure.storage.http_object_storage import HttpObjectStorage
from schoolhub.logging import setup_logging
from schoolhub.presentation.api import api
from schoolhub.presentation.gate_registry import GateRegistry
from schoolhub.settings import Settings, get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings

    pool = get_pool()
    if getattr(pool, "closed", True):
        await pool.open()
    await open_http_client()
    if settings.otp_store_backend == "redis":
        await open_redis()

    # one of each adapter, all sharing the HTTP client
    email_adapter = HttpSmtpEmailAdapter(
        base_url=settings.smtp_base_url, client=get_http_client()
    )
    app.state.delivery_channel = EmailDeliveryChannel(
        email_adapter, ttl_seconds=settings.otp_ttl_seconds
    )
    app.state.image_storage = HttpObjectStorage(
        settings.storage_base_url,
        settings.storage_bucket,
        api_key=settings.storage_api_key,
        client=get_http_client(),
    )
    logger.info("startup complete", extra={"otp_store": settings.otp_store_backend})

    try:
        yield
    finally:
        await email_adapter.aclose()  # shared client: closed below
        await close_http_client()
        await close_redis()
        await close_pool()


def _build_stores(app: FastAPI, settings: Settings) -> None:
    if settings.otp_store_backend == "redis":
        redis = get_redis()
        app.state.verification_store = RedisVerificationStore(
            redis, retention_seconds=settings.otp_record_retention_seconds
        )
        app.state.gate_passes = RedisGatePasses(
            redis, ttl_seconds=settings.gate_pass_ttl_seconds
        )
    else:
        app.state.verification_store = InMemoryVerificationStore(
            retention_seconds=settings.otp_record_retention_seconds
        )
        app.state.gate_passes = InMemoryGatePasses(
            ttl_seconds=settings.gate_pass_ttl_seconds
        )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level)
    app = FastAPI(title="SchoolHub API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.gate_registry = GateRegistry(
        max_size=settings.gate_registry_max_size,
        idle_seconds=settings.gate_idle_seconds,
    )
    _build_stores(app, settings)
    app.include_router(api)
    return app


app = create_app()
