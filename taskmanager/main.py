"""Entrada principal de la app FastAPI (configura middlewares, excepciones y routers)."""
import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI

from taskmanager.api.guards import build_pipelines
from taskmanager.api.router import api_router
from taskmanager.api.routers import health
from taskmanager.core.config import Settings, settings as default_settings
from taskmanager.core.exceptions import register_exception_handlers
from taskmanager.core.logging import install_excepthook, setup_logging
from taskmanager.core.middleware import add_middlewares
from taskmanager.infrastructure.cache.redis_cache import RedisCache
from taskmanager.infrastructure.db.bootstrap import ensure_collections
from taskmanager.infrastructure.db.mongo import MongoConnection
from taskmanager.services.container import Services

_log = logging.getLogger("taskmanager.startup")


def create_app(
    settings: Optional[Settings] = None,
    *,
    mongo_client: Optional[Any] = None,
    redis_client: Optional[Any] = None,
) -> FastAPI:
    """Construye la app; los clientes de Mongo/Redis pueden inyectarse (tests)."""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        mongo = MongoConnection(settings, client=mongo_client)
        db = mongo.connect()
        # Garantiza colecciones/índices/validadores mínimos
        ensure_collections(db, schema_validation=settings.mongo_schema_validation)

        cache = RedisCache(settings, client=redis_client)
        cache.connect()

        services = Services(settings, mongo, cache)
        services.pipelines = build_pipelines(services)
        app.state.services = services
        _log.info("%s listo (cache=%s)", settings.app_name, "on" if cache.enabled else "off")
        try:
            yield
        finally:
            services.close()
            app.state.services = None

    setup_logging(settings.log_level)
    app = FastAPI(title=settings.app_name, lifespan=lifespan)

    add_middlewares(app, settings)
    register_exception_handlers(app)

    # Monta routers bajo el prefijo configurado; /health queda en la raíz
    app.include_router(health.router)
    app.include_router(api_router, prefix=settings.api_prefix_normalized)
    return app


install_excepthook()
app = create_app()
