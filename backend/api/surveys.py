import json
import logging

from litestar import Controller, Request, Response, get, post
from litestar.exceptions import HTTPException, NotFoundException

from core.db import StatementStore, StoreError
from core.responses import SaveResponse, json_error
from grid import resolver
from grid.errors import ResolutionError, SubtableNotFound
from grid.model import Row, TableDescription


log = logging.getLogger(__name__)


class SubtableController(Controller):
    """One subtable of one survey: description, save, and dynamic rows."""

    path = "/api/{year:int}/surveys/{survey_id:str}/{table:str}/{subtable:str}"
    tags = ["surveys"]

    @get()
    async def get_subtable(
        self,
        request: Request,
        store: StatementStore,
        year: int,
        survey_id: str,
        table: str,
        subtable: str,
    ) -> TableDescription:
        """Resolve the subtable and merge the survey's saved data."""
        try:
            return await resolver.load_table(
                store,
                subtable,
                year=year,
                table=table,
                survey_id=survey_id,
                endpoint=request.url.path.rstrip("/"),
            )
        except SubtableNotFound as e:
            raise NotFoundException(detail=str(e)) from e
        except ResolutionError as e:
            log.error("subtable %s: %s", subtable, e)
            return TableDescription.empty(year=year, table=table, subtable=subtable, survey_id=survey_id)

    @post(status_code=200)
    async def save_subtable(
        self,
        request: Request,
        store: StatementStore,
        survey_id: str,
        subtable: str,
    ) -> Response[SaveResponse]:
        """Replace the saved payload with the request body as sent."""
        from app import config

        body = await request.body()
        try:
            payload = body.decode("utf-8")
            decoded = json.loads(payload)
        except (UnicodeDecodeError, json.JSONDecodeError):
            log.warning("subtable %s: rejected malformed save body", subtable)
            return json_error("Invalid JSON", 400)
        if not isinstance(decoded, (list, dict)):
            return json_error("Expected a JSON array or object", 400)

        if config is not None and config.grid.debug_payloads:
            log.debug("subtable %s: saving %s", subtable, payload)

        try:
            await store.execute(
                "survey_data_replace",
                {"survey_id": survey_id, "subtable": subtable, "payload": payload},
            )
        except StoreError as e:
            log.error("subtable %s: failed to save data: %s", subtable, e)
            return json_error("Failed to save data", 500)

        log.info("survey %s subtable %s saved (%d bytes)", survey_id, subtable, len(body))
        return Response(SaveResponse(success=True), status_code=200)

    @get("/{code:str}/{index:int}")
    async def get_row(
        self,
        store: StatementStore,
        subtable: str,
        code: str,
        index: int,
    ) -> Row:
        """Build one new dynamic row for a code."""
        try:
            return await resolver.resolve_row(store, subtable, code, index)
        except ResolutionError as e:
            log.error("subtable %s: row for code %s failed: %s", subtable, code, e)
            raise HTTPException(status_code=500, detail="Failed to build row") from e
