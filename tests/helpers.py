from __future__ import annotations

from typing import Any

import anyio

from core.db import StatementStore, StoreError
from grid.model import Cell, CodeEntry, Column, EnumOption, FieldKind, LayoutVariant, Row, TableDescription
from runtime.errors import ServerError

YEAR = 2025
SURVEY_ID = "G1"


def endpoint(subtable: str) -> str:
    return f"/api/{YEAR}/surveys/{SURVEY_ID}/T1/{subtable}"


def column_row(name: str, **overrides: Any) -> dict[str, Any]:
    """A row as returned by the columns_by_subtable statement."""
    row = {
        "column_name": name,
        "title": "",
        "symbol": "",
        "position": 0,
        "unit": None,
        "required": False,
        "visible": True,
        "width": 0,
        "formula": None,
        "validation": None,
        "min_value": None,
        "max_value": None,
        "message": None,
        "dictionary": None,
        "data_type": "string",
        "format": "$",
        "entries": None,
        "dictionary_type": None,
    }
    row.update(overrides)
    return row


class MemoryStore(StatementStore):
    """In-memory stand-in for one year's schema, answering statements by name."""

    def __init__(self) -> None:
        self.subtables: dict[str, dict[str, Any]] = {}
        self.columns: dict[str, list[dict[str, Any]]] = {}
        self.codes: dict[str, list[str]] = {}
        self.titles: dict[str, str] = {}
        self.blocks: list[dict[str, Any]] = []
        self.data: dict[tuple[str, str], str] = {}
        self.failing: set[str] = set()
        self.calls: list[str] = []

    def add_subtable(
        self,
        subtable: str,
        layout: str,
        *,
        symbol: str = "",
        title: str = "",
        columns: list[dict[str, Any]] = (),
        codes: dict[str, str] | None = None,
        blocks: list[tuple[str, str]] = (),
    ) -> None:
        self.subtables[subtable] = {
            "subtable": subtable,
            "table_name": "T1",
            "layout": layout,
            "title": title,
            "symbol": symbol,
            "description": None,
        }
        self.columns[subtable] = [dict(c, position=i) for i, c in enumerate(columns)]
        self.codes[subtable] = list((codes or {}).keys())
        self.titles.update(codes or {})
        for column_name, code in blocks:
            self.blocks.append({"subtable": subtable, "column_name": column_name, "code": code})

    def _enter(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failing:
            raise StoreError(name, "connection lost")

    async def fetch_all(self, name: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        self._enter(name)
        params = params or {}
        subtable = params.get("subtable")
        match name:
            case "columns_by_subtable":
                return [dict(c) for c in self.columns.get(subtable, [])]
            case "codes_by_subtable":
                return [{"code": c, "title": self.titles[c]} for c in self.codes.get(subtable, [])]
            case "blocks_by_subtable":
                return [
                    {"code": b["code"], "column_name": b["column_name"]}
                    for b in self.blocks if b["subtable"] == subtable
                ]
            case "blocks_by_subtable_and_code":
                return [
                    {"code": b["code"], "column_name": b["column_name"]}
                    for b in self.blocks
                    if b["subtable"] == subtable and b["code"] == params["code"]
                ]
        raise StoreError(name, "unknown statement")

    async def fetch_one(self, name: str, params: dict[str, Any] | None = None) -> dict[str, Any] | None:
        self._enter(name)
        params = params or {}
        match name:
            case "subtable_by_name":
                return self.subtables.get(params["subtable"])
            case "code_title":
                code = params["code"]
                return {"code": code, "title": self.titles[code]} if code in self.titles else None
            case "survey_data_by_subtable":
                payload = self.data.get((params["survey_id"], params["subtable"]))
                return None if payload is None else {"payload": payload, "modified_at": None}
        raise StoreError(name, "unknown statement")

    async def execute(self, name: str, params: dict[str, Any] | None = None) -> int:
        self._enter(name)
        params = params or {}
        if name == "survey_data_replace":
            self.data[(params["survey_id"], params["subtable"])] = params["payload"]
            return 1
        raise StoreError(name, "unknown statement")


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubGateway:
    """Records submitted payloads and serves prepared rows."""

    def __init__(self, rows: dict[str, Row] | None = None, fail_status: int | None = None) -> None:
        self.rows = rows or {}
        self.fail_status = fail_status
        self.submitted: list[Any] = []
        self.fetched: list[tuple[str, int]] = []

    async def fetch_row(self, code: str, index: int) -> Row:
        self.fetched.append((code, index))
        if code not in self.rows:
            raise ServerError(404, f"no row for {code}")
        template = self.rows[code]
        return Row(
            cells=[
                Cell(name=c.name, column=c.column, value=c.value, required=c.required,
                     editable=c.editable, blocked=c.blocked)
                for c in template.cells
            ],
            title=template.title,
            code=code,
            index=index,
        )

    async def submit(self, payload: Any) -> dict[str, Any]:
        if self.fail_status is not None:
            raise ServerError(self.fail_status)
        self.submitted.append(payload)
        return {"success": True}


class GatedGateway(StubGateway):
    """Holds every request until ``gate`` is set."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.gate = anyio.Event()
        self.waiting = 0

    async def fetch_row(self, code: str, index: int) -> Row:
        self.waiting += 1
        await self.gate.wait()
        return await super().fetch_row(code, index)

    async def submit(self, payload: Any) -> dict[str, Any]:
        self.waiting += 1
        await self.gate.wait()
        return await super().submit(payload)


async def settle(condition) -> None:
    """Yield to other tasks until ``condition()`` holds."""
    for _ in range(100):
        if condition():
            return
        await anyio.sleep(0)
    raise AssertionError("condition never held")


def number_column(name: str, fmt: str = "###0", **kwargs: Any) -> Column:
    return Column(name=name, data_type="float", format=fmt, kind=FieldKind.NUMBER, **kwargs)


def text_column(name: str, fmt: str = "$", **kwargs: Any) -> Column:
    return Column(name=name, data_type="string", format=fmt, kind=FieldKind.TEXT, **kwargs)


def multi_column(name: str, exclusive: str = "X", regular: tuple[str, ...] = ("A", "B"), **kwargs: Any) -> Column:
    options = [EnumOption(value=v, label=f"Option {v}") for v in regular]
    options.append(EnumOption(value=exclusive, label="None of these", exclusive=True))
    return Column(name=name, data_type="multi", kind=FieldKind.MULTI_EXCLUSIVE, options=options, **kwargs)


def choice_column(name: str, **kwargs: Any) -> Column:
    options = [EnumOption("1", "Yes"), EnumOption("2", "No"), EnumOption("3", "Not applicable")]
    return Column(name=name, data_type="choice", kind=FieldKind.CHOICE, options=options, **kwargs)


def dynamic_table(
    variant: LayoutVariant = LayoutVariant.HORIZONTAL_DYNAMIC_UNIQUE, data: str = ""
) -> TableDescription:
    return TableDescription(
        variant=variant,
        codes=[CodeEntry("10", "Cattle"), CodeEntry("11", "Pigs"), CodeEntry("12", "Sheep")],
        data=data,
        endpoint="/x",
    )


def template_rows() -> dict[str, Row]:
    """Rows the stub gateway serves for the codes of ``dynamic_table``."""
    rows = {}
    for code in ("10", "11", "12"):
        rows[code] = Row(
            code=code,
            cells=[
                Cell(name="Zw_Kod", column=text_column("Zw_Kod"), value=code, editable=False),
                Cell(name="Zw_Sztuki", column=number_column("Zw_Sztuki", "# ##0", required=True)),
            ],
        )
    return rows
