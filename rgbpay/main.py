import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rgbpay import __version__
from rgbpay.core.config import Settings, get_settings
from rgbpay.core.container import ApplicationContainer
from rgbpay.domain.host import HostServices
from rgbpay.infrastructure.database.session import init_db
from rgbpay.interfaces.http.routers import create_api_router

logger = logging.getLogger(__name__)


def _lifespan(container: ApplicationContainer, host: HostServices):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            await init_db(container.engine)
            await container.load_signers()
            await container.build_worker(host).start()
            yield
        finally:
            await container.shutdown()

    return lifespan


def create_app(
    host: HostServices,
    settings: Optional[Settings] = None,
    container: Optional[ApplicationContainer] = None,
) -> FastAPI:
    """Build the service around the host's invoice store, payment service and event bus."""
    settings = settings or get_settings()
    container = container or ApplicationContainer.from_settings(settings)

    app = FastAPI(
        title=settings.project_name,
        description="RGB asset settlement and local PSBT signing",
        version=__version__,
        lifespan=_lifespan(container, host),
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(create_api_router(settings.api_prefix))

    @app.get("/health", summary="Liveness and worker status")
    async def health():
        worker = container.worker
        return {
            "status": "ok",
            "network": settings.network,
            "signers": len(container.signers),
            "worker_running": bool(worker and worker.is_running),
            "last_full_sync_at": worker.last_full_sync_at if worker else None,
        }

    return app
