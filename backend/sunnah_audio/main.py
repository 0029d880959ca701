# sunnah_audio/main.py
import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sunnah_audio.config import Settings
from sunnah_audio.core.bootstrap import ensure_default_admin
from sunnah_audio.core.container import Services
from sunnah_audio.core.db import close_db, init_db
from sunnah_audio.core.responses import register_exception_handlers

from sunnah_audio.api.v1.routers import auth, books, files, subscriptions

logger = logging.getLogger("uvicorn.error")


def create_app(settings: Settings | None = None, services: Services | None = None) -> FastAPI:
    """
    Build the application around one Settings value and one set of shared
    services. Tests pass their own `services` (fake cache, recording mailer).
    """
    settings = settings or Settings.from_env()
    services = services or Services.from_settings(settings)

    app = FastAPI(title=settings.APP_NAME)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.CORS_ORIGINS),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    @app.on_event("startup")
    async def on_startup():
        for directory in (settings.uploads_dir, settings.images_dir):
            Path(directory).mkdir(parents=True, exist_ok=True)
        await init_db(settings.mysql_dsn)
        logger.info("[db] connected (%s environment)", settings.env)
        # Ensure there's a default admin account on first run
        await ensure_default_admin(settings)
        if settings.enable_subscription_sweeper:
            services.sweeper.start()

    @app.on_event("shutdown")
    async def on_shutdown():
        await services.aclose()
        await close_db()

    # REST
    app.include_router(auth.router, prefix="/api/v1")
    app.include_router(subscriptions.router, prefix="/api/v1")
    app.include_router(books.router, prefix="/api/v1")
    app.include_router(files.router, prefix="/api/v1")

    @app.get("/healthz")
    def healthz():
        return {"ok": True}

    return app


def __getattr__(name: str):
    # `uvicorn sunnah_audio.main:app` builds the app on first access, not at import
    if name == "app":
        app = create_app()
        globals()["app"] = app
        return app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
