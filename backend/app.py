from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator, Callable

from litestar import Litestar
from litestar.di import Provide
from litestar.logging import LoggingConfig

import core.db as db
from core.config import AppConfig
from core.db import init_pool, close_pool, provide_connection, provide_year_store
from api.health import HealthController, PingController
from api.surveys import SubtableController


config: AppConfig | None = None


@asynccontextmanager
async def lifespan(app: Litestar) -> AsyncGenerator[None, None]:
    print(f"Config loaded: database={config.database.host}")

    if config.database.host:
        await init_pool(config.database.conninfo)
        print("Database pool initialized")

    yield

    await close_pool()
    print("Database pool closed")


def logging_config(level: str) -> LoggingConfig:
    return LoggingConfig(
        loggers={
            name: {"level": level.upper(), "propagate": True}
            for name in ("api", "core", "grid")
        },
        log_exceptions="always",
    )


def create_app(
    app_config: AppConfig | None = None,
    store_provider: Callable | None = None,
) -> Litestar:
    """Build the application.

    With ``store_provider`` the database lifespan is skipped and every
    request gets its statement store from the provider instead.
    """
    global config
    config = app_config or AppConfig.load()
    db.year_schema = config.grid.year_schema

    dependencies = {
        "conn": Provide(provide_connection),
        "store": Provide(provide_year_store),
    }
    lifespans = [lifespan]
    if store_provider is not None:
        dependencies = {"store": Provide(store_provider)}
        lifespans = []

    return Litestar(
        route_handlers=[
            HealthController,
            PingController,
            SubtableController,
        ],
        dependencies=dependencies,
        lifespan=lifespans,
        logging_config=logging_config(config.logging.level),
    )


app = create_app()
