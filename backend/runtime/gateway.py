import logging
from typing import Any

import httpx
import msgspec

from grid.model import Row, TableDescription
from runtime.errors import ServerError, TransportError
from runtime.settings import RuntimeSettings


log = logging.getLogger(__name__)


class PersistenceGateway:
    """HTTP exchange with one subtable endpoint.

    The endpoint serves the table description, accepts the replacement
    payload and builds new dynamic rows under ``{endpoint}/{code}/{index}``.
    """

    def __init__(self, client: httpx.AsyncClient, endpoint: str, settings: RuntimeSettings | None = None):
        self.client = client
        self.endpoint = endpoint.rstrip("/")
        self.timeout = (settings or RuntimeSettings()).request_timeout_s

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, url, timeout=self.timeout, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url}: {e}") from e
        if not response.is_success:
            message = ""
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                message = str(body.get("message") or body.get("detail") or "")
            raise ServerError(response.status_code, message)
        return response

    async def fetch_table(self) -> TableDescription:
        response = await self._request("GET", self.endpoint)
        try:
            return msgspec.convert(response.json(), type=TableDescription)
        except (ValueError, msgspec.ValidationError) as e:
            raise TransportError(f"unreadable table description: {e}") from e

    async def fetch_row(self, code: str, index: int) -> Row:
        url = f"{self.endpoint}/{code}/{index}"
        response = await self._request("GET", url)
        try:
            row = msgspec.convert(response.json(), type=Row)
        except (ValueError, msgspec.ValidationError) as e:
            raise TransportError(f"unreadable row for {code}: {e}") from e
        log.debug("fetched row %d for code %s", index, code)
        return row

    async def submit(self, payload: list[dict[str, Any]] | dict[str, Any]) -> dict[str, Any]:
        """POST the full replacement payload; raises on any non-2xx answer."""
        response = await self._request("POST", self.endpoint, json=payload)
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"unreadable save response: {e}") from e
