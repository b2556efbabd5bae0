from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from quickstats.config import Settings, get_settings
from quickstats.routers.health import router as health_router
from quickstats.routers.proxy import router as proxy_router

from .middleware_logging import configure_logging, register_request_logging
from .error_handlers import register_error_handlers

import logging

logger = logging.getLogger("quickstats.app")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title="Basketball Quick Stats Proxy", version="0.1.0")
    app.state.settings = settings
    register_request_logging(app)
    register_error_handlers(app)

    wildcard = settings.ALLOWED_ORIGINS == ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        # browsers reject credentials with a wildcard origin
        allow_credentials=not wildcard,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.get("/")
    def root():
        return {"message": "Basketball Quick Stats proxy is running"}

    app.include_router(health_router)
    app.include_router(proxy_router)

    logger.info(
        "proxy ready upload=%s status=%s download=%s",
        settings.UPLOAD_BACKEND_URL, settings.STATUS_BACKEND_URL, settings.DOWNLOAD_BACKEND_URL,
    )
    return app


configure_logging()
app = create_app()
