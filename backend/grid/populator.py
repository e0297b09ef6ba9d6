"""Cell Populator: merge a persisted JSON payload into skeletal rows."""

import json
import logging
from decimal import Decimal
from typing import Any

from grid.errors import DataError
from grid.model import CODE_SUFFIX, LayoutVariant, Row, TableDescription


log = logging.getLogger(__name__)


def render_json_value(value: Any) -> str:
    """Coerce a decoded JSON scalar to the string a cell holds.

    Integral numbers lose their fractional part; other numbers keep their
    shortest exact decimal form.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, (Decimal, float)):
        number = value if isinstance(value, Decimal) else Decimal(repr(value))
        if number == number.to_integral_value():
            return str(int(number))
        return format(number.normalize(), "f")
    return json.dumps(value)


def decode_payload(raw: str) -> Any:
    try:
        return json.loads(raw, parse_float=Decimal)
    except json.JSONDecodeError as e:
        raise DataError(f"malformed payload: {e.msg}") from e


def row_code_key(item: dict[str, Any]) -> str | None:
    """Name of the first key in a saved row that holds the row's code."""
    for key in item:
        if key.endswith(CODE_SUFFIX):
            return key
    return None


def populate_from_array(rows: list[Row], raw: str) -> int:
    """Fill rows from a list of objects keyed by their code field.

    Returns the number of rows that received values.
    """
    if raw == "":
        return 0
    data = decode_payload(raw)
    if not isinstance(data, list):
        raise DataError("expected a JSON array of rows")

    lookup: dict[str, dict[str, Any]] = {}
    for item in data:
        if not isinstance(item, dict):
            continue
        key = row_code_key(item)
        if key is not None and isinstance(item[key], str):
            lookup[item[key]] = item

    populated = 0
    for row in rows:
        values = lookup.get(row.code)
        if values is None:
            continue
        for cell in row.cells:
            if cell.name in values:
                cell.value = render_json_value(values[cell.name])
        populated += 1
    return populated


def populate_from_object(rows: list[Row], raw: str) -> int:
    """Fill cells from a single object keyed by cell name."""
    if raw == "":
        return 0
    data = decode_payload(raw)
    if not isinstance(data, dict):
        raise DataError("expected a JSON object of values")

    populated = 0
    for row in rows:
        for cell in row.cells:
            if cell.name in data:
                cell.value = render_json_value(data[cell.name])
                populated += 1
    return populated


def populate(table: TableDescription) -> TableDescription:
    """Merge ``table.data`` into its rows in place.

    Dynamic layouts are replayed by the client, so nothing happens here for
    them. A malformed payload leaves every cell untouched.
    """
    match table.variant:
        case LayoutVariant.HORIZONTAL_STATIC_UNIQUE:
            fill = populate_from_array
        case LayoutVariant.VERTICAL_STATIC_UNIQUE:
            fill = populate_from_object
        case (
            LayoutVariant.HORIZONTAL_DYNAMIC_UNIQUE
            | LayoutVariant.HORIZONTAL_DYNAMIC_DUPLICABLE
            | LayoutVariant.SYSTEM_DEFINITION
        ):
            return table

    try:
        count = fill(table.rows, table.data)
    except DataError as e:
        log.warning("subtable %s: not populated: %s", table.subtable, e)
        return table
    log.debug("subtable %s: populated %d of %d rows", table.subtable, count, len(table.rows))
    return table
