from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from fastapi import FastAPI

from common.config import get_settings

from .container import ServiceContainer, build_container
from .endpoints import (
    health_router,
    metric_ranges_router,
    monitoring_data_router,
    realtime_ws_router,
)

logger = logging.getLogger(__name__)

ContainerFactory = Callable[[], ServiceContainer]


def _default_container() -> ServiceContainer:
    return build_container(get_settings())


def create_app(container_factory: Optional[ContainerFactory] = None) -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    factory = container_factory or _default_container

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        container = factory()
        container.hub.bind_loop(asyncio.get_running_loop())
        app.state.container = container
        logger.info("[APP] Monitoring ingest started")
        try:
            yield
        finally:
            container.close()

    app = FastAPI(title="Monitoring Ingest Service", version="0.1.0", lifespan=lifespan)
    app.include_router(health_router)
    app.include_router(monitoring_data_router)
    app.include_router(metric_ranges_router)
    app.include_router(realtime_ws_router)
    return app


def run() -> None:
    import os

    import uvicorn

    uvicorn.run(
        "monitoring_ingest.main:create_app",
        factory=True,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )
