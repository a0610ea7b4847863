from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from tortoise.contrib.fastapi import register_tortoise

from linkreach.config import Config
from linkreach.logs import configure_logging
from linkreach.routers.auth import router as auth_router
from linkreach.routers.campaigns import router as campaigns_router
from linkreach.routers.executor import router as executor_router

log = structlog.get_logger()


def init_db(app: FastAPI, config: dict | None = None, generate_schemas: bool = False) -> None:
    # schema changes go through aerich migrations
    register_tortoise(
        app,
        config=config or Config.TORTOISE_ORM,
        generate_schemas=generate_schemas,
        add_exception_handlers=True,
    )


def create_app(db_config: dict | None = None, generate_schemas: bool = False) -> FastAPI:
    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info("api_started", offline_mode=Config.OFFLINE_MODE)
        yield
        log.info("api_stopped")

    app = FastAPI(title="LinkReach API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=Config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router)
    app.include_router(campaigns_router)
    app.include_router(executor_router)

    init_db(app, db_config, generate_schemas)
    return app
