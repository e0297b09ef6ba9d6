import logging
from dataclasses import dataclass, field

import psycopg
from litestar import Controller, get

import core.db as db


log = logging.getLogger(__name__)


@dataclass
class HealthResponse:
    status: str
    database_connected: bool = False
    year_schema: str = ""
    years: list[int] = field(default_factory=list)


class HealthController(Controller):
    path = "/api/health"
    tags = ["health"]

    @get()
    async def health_check(self) -> HealthResponse:
        """Report pool reachability and which survey years have a schema."""
        response = HealthResponse(status="ok", year_schema=db.year_schema)
        if not db.pool:
            return response

        try:
            async with db.pool.connection() as conn:
                response.years = await db.available_years(conn)
        except psycopg.Error as e:
            response.status = "degraded"
            response.years = []
            log.warning("health check failed: %s", e)
        else:
            response.database_connected = True
        return response


class PingController(Controller):
    path = "/api/ping"
    tags = ["health"]

    @get()
    async def ping(self) -> dict:
        return {"message": "pong"}
