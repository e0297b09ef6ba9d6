"""Schema Resolver: build table descriptions from the year's metadata tables."""

import json
import logging
from typing import Any, assert_never

from core.db import StatementStore, StoreError
from grid import populator
from grid.errors import ResolutionError, SubtableNotFound
from grid.model import (
    CODE_DICTIONARY,
    DESCRIPTION_SUFFIX,
    Cell,
    CodeEntry,
    Column,
    EnumOption,
    LayoutVariant,
    Row,
    TableDescription,
    field_kind,
)


log = logging.getLogger(__name__)


def decode_options(entries: Any) -> list[EnumOption]:
    """Decode a dictionary's entries into options.

    Accepts a list of ``{"value", "label", "exclusive"}`` objects or the
    parallel-array form ``{"Kod": [...], "Opis": [...]}``.
    """
    if entries is None or entries == "":
        return []
    if isinstance(entries, str):
        try:
            entries = json.loads(entries)
        except json.JSONDecodeError as e:
            raise ResolutionError(f"malformed dictionary: {e.msg}") from e

    if isinstance(entries, dict):
        codes = entries.get("Kod") or []
        labels = entries.get("Opis") or []
        exclusive = entries.get("exclusive")
        return [
            EnumOption(value=str(code), label=str(label), exclusive=str(code) == exclusive)
            for code, label in zip(codes, labels)
        ]

    if isinstance(entries, list):
        return [
            EnumOption(
                value=str(item["value"]),
                label=str(item.get("label", "")),
                exclusive=bool(item.get("exclusive", False)),
            )
            for item in entries
            if isinstance(item, dict) and "value" in item
        ]

    raise ResolutionError("dictionary entries must be a list or an object")


def build_column(record: dict[str, Any]) -> Column:
    data_type = record.get("data_type") or "string"
    options: list[EnumOption] = []

    dictionary = record.get("dictionary")
    dictionary_type = record.get("dictionary_type")
    if dictionary_type or (dictionary and dictionary != CODE_DICTIONARY):
        data_type = dictionary_type or "choice"
        try:
            options = decode_options(record.get("entries"))
        except ResolutionError as e:
            log.warning("column %s: dictionary %s ignored: %s", record["column_name"], dictionary, e)

    return Column(
        name=record["column_name"],
        title=record.get("title") or "",
        label=record.get("symbol") or "",
        data_type=data_type,
        unit=record.get("unit") or "",
        format=record.get("format") or "",
        required=bool(record.get("required")),
        visible=record.get("visible") is not False,
        width=record.get("width") or 0,
        formula=record.get("formula") or "",
        regex=record.get("validation") or "",
        min=record.get("min_value"),
        max=record.get("max_value"),
        order=record.get("position") or 0,
        error_message=record.get("message") or "",
        kind=field_kind(data_type),
        options=options,
    )


def build_columns(records: list[dict[str, Any]]) -> list[Column]:
    return [build_column(r) for r in records]


def build_cell(column: Column, code: str = "", blocked: bool = False) -> Cell:
    cell = Cell(name=column.name, column=column, required=column.required, blocked=blocked)
    if column.is_code:
        cell.editable = False
        cell.value = code
    return cell


def build_code_row(
    columns: list[Column], code: str, title: str, blocked: set[str], index: int = 0
) -> Row:
    """One horizontal row: a cell per column, code cells pre-filled."""
    cells = [build_cell(c, code, c.name in blocked) for c in columns]
    return Row(cells=cells, title=title, code=code, index=index)


def blocked_columns(blocks: list[dict[str, Any]], code: str) -> set[str]:
    return {b["column_name"] for b in blocks if b["code"] == code}


async def _subtable_record(store: StatementStore, subtable: str) -> dict[str, Any]:
    try:
        record = await store.fetch_one("subtable_by_name", {"subtable": subtable})
    except StoreError as e:
        raise ResolutionError(f"subtable {subtable} unreadable", e) from e
    if record is None:
        raise SubtableNotFound(subtable)
    return record


async def _fetch(store: StatementStore, name: str, params: dict[str, Any]) -> list[dict[str, Any]]:
    try:
        return await store.fetch_all(name, params)
    except StoreError as e:
        raise ResolutionError(f"{name} failed", e) from e


async def resolve_table(
    store: StatementStore,
    subtable: str,
    *,
    year: int | None = None,
    table: str = "",
    survey_id: str = "",
    endpoint: str = "",
) -> TableDescription:
    """Build the skeleton of a subtable for its layout variant.

    Raises SubtableNotFound when the subtable is unknown. Any other lookup
    failure yields an empty description.
    """
    identity = dict(year=year, table=table, subtable=subtable, survey_id=survey_id, endpoint=endpoint)
    record = await _subtable_record(store, subtable)

    try:
        variant = LayoutVariant(record["layout"])
    except ValueError:
        log.error("subtable %s: unknown layout %r", subtable, record["layout"])
        return TableDescription.empty(**identity)

    description = TableDescription(
        variant=variant,
        table_name=f"{record.get('symbol') or ''}{record.get('title') or ''}",
        **identity,
    )

    try:
        columns = build_columns(await _fetch(store, "columns_by_subtable", {"subtable": subtable}))
        codes = [
            CodeEntry(code=r["code"], title=r.get("title") or "")
            for r in await _fetch(store, "codes_by_subtable", {"subtable": subtable})
        ]

        match variant:
            case LayoutVariant.HORIZONTAL_DYNAMIC_UNIQUE | LayoutVariant.HORIZONTAL_DYNAMIC_DUPLICABLE:
                rows: list[Row] = []
            case LayoutVariant.HORIZONTAL_STATIC_UNIQUE:
                blocks = await _fetch(store, "blocks_by_subtable", {"subtable": subtable})
                rows = [
                    build_code_row(columns, c.code, c.title, blocked_columns(blocks, c.code), i)
                    for i, c in enumerate(codes)
                ]
            case LayoutVariant.VERTICAL_STATIC_UNIQUE:
                rows = [
                    Row(cells=[build_cell(c)], title=f"{c.label} {c.title}".strip(), index=i)
                    for i, c in enumerate(columns)
                ]
            case LayoutVariant.SYSTEM_DEFINITION:
                log.error("subtable %s: layout %s is not a survey grid", subtable, variant.value)
                return TableDescription.empty(variant, **identity)
            case _:
                assert_never(variant)
    except ResolutionError as e:
        log.error("subtable %s: resolution failed: %s", subtable, e)
        return TableDescription.empty(variant, **identity)

    description.columns = columns
    description.codes = codes
    description.rows = rows
    log.info(
        "subtable %s resolved as %s: %d columns, %d codes, %d rows",
        subtable, variant.value, len(columns), len(codes), len(rows),
    )
    return description


async def load_survey_data(store: StatementStore, survey_id: str, subtable: str) -> str:
    """Raw saved payload, or an empty string when none could be read."""
    try:
        record = await store.fetch_one(
            "survey_data_by_subtable", {"survey_id": survey_id, "subtable": subtable}
        )
    except StoreError as e:
        log.warning("subtable %s: no existing data: %s", subtable, e)
        return ""
    if record is None:
        return ""
    return record.get("payload") or ""


async def load_table(
    store: StatementStore,
    subtable: str,
    *,
    year: int | None = None,
    table: str = "",
    survey_id: str = "",
    endpoint: str = "",
) -> TableDescription:
    """Resolve a subtable and merge the survey's saved data into it."""
    description = await resolve_table(
        store, subtable, year=year, table=table, survey_id=survey_id, endpoint=endpoint
    )
    if description.is_empty:
        return description
    description.data = await load_survey_data(store, survey_id, subtable)
    return populator.populate(description)


async def resolve_row(store: StatementStore, subtable: str, code: str, index: int) -> Row:
    """Build one dynamic row for ``code``; raises ResolutionError on failure."""
    columns = build_columns(await _fetch(store, "columns_by_subtable", {"subtable": subtable}))
    blocks = await _fetch(store, "blocks_by_subtable_and_code", {"subtable": subtable, "code": code})
    row = build_code_row(columns, code, "", blocked_columns(blocks, code), index)

    if any(c.name.endswith(DESCRIPTION_SUFFIX) for c in row.cells):
        try:
            record = await store.fetch_one("code_title", {"code": code})
        except StoreError as e:
            raise ResolutionError(f"title of code {code} unreadable", e) from e
        title = (record or {}).get("title") or ""
        row.title = title
        for cell in row.cells:
            if cell.name.endswith(DESCRIPTION_SUFFIX):
                cell.value = title
                cell.editable = False
    return row
