from __future__ import annotations

import json
import logging

import pytest

from grid import resolver
from grid.errors import ResolutionError, SubtableNotFound
from grid.model import FieldKind, LayoutVariant
from helpers import column_row

pytestmark = pytest.mark.anyio


def test_build_column_from_dictionary_type() -> None:
    column = resolver.build_column(
        column_row(
            "Uprawy",
            dictionary="Uprawy",
            dictionary_type="multi",
            entries=json.dumps([{"value": "A", "label": "a"}, {"value": "X", "label": "x", "exclusive": True}]),
        )
    )
    assert column.kind is FieldKind.MULTI_EXCLUSIVE
    assert [o.value for o in column.options] == ["A", "X"]
    assert column.options[1].exclusive


def test_untyped_dictionary_becomes_choice_except_codes() -> None:
    choice = resolver.build_column(column_row("C", dictionary="TakNie", entries='{"Kod": ["1"], "Opis": ["Yes"]}'))
    code = resolver.build_column(column_row("C_Kod", dictionary="Kody", entries="[]"))

    assert choice.kind is FieldKind.CHOICE
    assert choice.options[0].text == "1 - Yes"
    assert code.kind is FieldKind.TEXT
    assert code.options == []


def test_numeric_unit_and_bounds() -> None:
    column = resolver.build_column(
        column_row("N", data_type="int", format="# ##0", min_value=0, max_value=10, required=True)
    )
    assert column.kind is FieldKind.NUMBER
    assert (column.min, column.max, column.required) == (0, 10, True)


def test_malformed_dictionary_is_a_resolution_error() -> None:
    with pytest.raises(ResolutionError):
        resolver.decode_options("{not json")


def test_malformed_dictionary_leaves_an_empty_catalogue(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="grid.resolver"):
        column = resolver.build_column(column_row("C", dictionary="TakNie", entries="{not json"))

    assert column.kind is FieldKind.CHOICE
    assert column.options == []
    assert "dictionary TakNie ignored" in caplog.text


async def test_horizontal_static_rows_per_code(store) -> None:
    table = await resolver.resolve_table(store, "S1", year=2025)

    assert table.variant is LayoutVariant.HORIZONTAL_STATIC_UNIQUE
    assert table.table_name == "1.Sown area"
    assert [r.code for r in table.rows] == ["01", "02"]
    assert [r.title for r in table.rows] == ["Wheat", "Rye"]
    for row in table.rows:
        assert len(row.cells) == len(table.columns)
        code_cell = row.cell("Wartosc_Kod")
        assert code_cell.value == row.code
        assert not code_cell.editable


async def test_blocked_cell_relaxes_required(store) -> None:
    table = await resolver.resolve_table(store, "S1")
    open_cell = table.rows[0].cell("Wartosc_Liczba")
    blocked = table.rows[1].cell("Wartosc_Liczba")

    assert open_cell.required and not open_cell.blocked
    assert blocked.blocked and not blocked.required


async def test_dynamic_layout_has_codes_but_no_rows(store) -> None:
    table = await resolver.resolve_table(store, "D1")

    assert table.rows == []
    assert [c.code for c in table.codes] == ["10", "11"]
    assert len(table.columns) == 3


async def test_vertical_layout_one_row_per_column(store) -> None:
    table = await resolver.resolve_table(store, "V1")

    assert [r.title for r in table.rows] == ["a) Active", "b) Crops", "c) Notes"]
    assert all(len(r.cells) == 1 for r in table.rows)
    assert table.rows[0].cells[0].required


async def test_unknown_subtable(store) -> None:
    with pytest.raises(SubtableNotFound):
        await resolver.resolve_table(store, "NOPE")


async def test_lookup_failure_yields_empty_description(store, caplog) -> None:
    store.failing.add("codes_by_subtable")

    with caplog.at_level(logging.ERROR, logger="grid.resolver"):
        table = await resolver.resolve_table(store, "S1")

    assert table.is_empty
    assert table.rows == []
    assert "resolution failed" in caplog.text


async def test_unknown_layout_yields_empty_description(store) -> None:
    store.subtables["S1"]["layout"] = "DIAGONAL"
    table = await resolver.resolve_table(store, "S1")
    assert table.is_empty


async def test_load_table_populates_saved_values(store) -> None:
    store.data[("G1", "S1")] = '[{"Wartosc_Kod": "01", "Wartosc_Liczba": 12.5}]'

    table = await resolver.load_table(store, "S1", survey_id="G1")

    assert table.rows[0].cell("Wartosc_Liczba").value == "12.5"
    assert table.rows[0].cell("Wartosc_Liczba").display_value == "12,50"
    assert table.rows[1].cell("Wartosc_Liczba").value == ""


async def test_load_table_survives_unreadable_data(store) -> None:
    store.failing.add("survey_data_by_subtable")
    table = await resolver.load_table(store, "S1", survey_id="G1")
    assert table.data == ""
    assert len(table.rows) == 2


async def test_resolve_row_fills_code_and_description(store) -> None:
    row = await resolver.resolve_row(store, "D1", "11", 4)

    assert (row.code, row.index, row.title) == ("11", 4, "Pigs")
    assert row.cell("Zw_Kod").value == "11"
    assert not row.cell("Zw_Kod").editable
    assert row.cell("Zw_Wyszczegolnienie").value == "Pigs"
    assert not row.cell("Zw_Wyszczegolnienie").editable
    assert row.cell("Zw_Sztuki").required


async def test_resolve_row_propagates_lookup_failure(store) -> None:
    store.failing.add("columns_by_subtable")
    with pytest.raises(ResolutionError):
        await resolver.resolve_row(store, "D1", "10", 0)
