from __future__ import annotations

import json

import pytest
from litestar.testing import AsyncTestClient

from helpers import SURVEY_ID, FakeClock, endpoint
from runtime.gateway import PersistenceGateway
from runtime.grid import GridRuntime, GridState
from runtime.notify import ToastKind

pytestmark = pytest.mark.anyio


async def open_grid(client, subtable: str, clock: FakeClock | None = None) -> GridRuntime:
    gateway = PersistenceGateway(client, endpoint(subtable))
    description = await gateway.fetch_table()
    return await GridRuntime.start(description, gateway, clock=clock or FakeClock())


async def test_saved_number_is_rendered_with_its_mask(grid_app, store) -> None:
    store.data[(SURVEY_ID, "S1")] = '[{"Wartosc_Kod":"01","Wartosc_Liczba":12.5}]'

    async with AsyncTestClient(app=grid_app) as client:
        runtime = await open_grid(client, "S1")

    row = runtime.description.rows[0]
    assert row.code == "01"
    assert row.cell("Wartosc_Liczba").display_value == "12,50"
    assert runtime.field("0:Wartosc_Liczba").text == "12,50"
    assert runtime.field("1:Wartosc_Liczba").text == ""


async def test_typed_number_is_normalized(grid_app) -> None:
    async with AsyncTestClient(app=grid_app) as client:
        runtime = await open_grid(client, "D1")
        record = await runtime.add_row("10")

    runtime.on_input(f"{record.index}:Zw_Sztuki", "-12a3")
    assert record.fields["Zw_Sztuki"].text == "-123"


async def test_exclusive_option_replaces_regular_choice(grid_app, store) -> None:
    clock = FakeClock()
    async with AsyncTestClient(app=grid_app) as client:
        runtime = await open_grid(client, "V1", clock)

        assert await runtime.on_check("1:Gosp_Uprawy", "A", True)
        assert json.loads(store.data[(SURVEY_ID, "V1")]) == {"Gosp_Uprawy": "A"}

        clock.advance(5)
        assert await runtime.on_check("1:Gosp_Uprawy", "X", True)

    multi = runtime.field("1:Gosp_Uprawy")
    assert "A" not in multi.checked
    assert multi.value == "X"
    assert json.loads(store.data[(SURVEY_ID, "V1")]) == {"Gosp_Uprawy": "X"}


async def test_server_failure_leaves_grid_idle(grid_app, store) -> None:
    store.failing.add("survey_data_replace")

    async with AsyncTestClient(app=grid_app) as client:
        runtime = await open_grid(client, "S1")
        runtime.on_input("0:Wartosc_Liczba", "4")
        saved = await runtime.save()

    assert not saved
    assert runtime.last_save_time is None
    assert runtime.state is GridState.IDLE
    assert runtime.notifier.last.kind is ToastKind.ERROR
    assert "Failed to save data" in runtime.notifier.last.message
    assert "500" in runtime.notifier.last.message


async def test_dynamic_rows_round_trip(grid_app, store) -> None:
    clock = FakeClock()
    async with AsyncTestClient(app=grid_app) as client:
        runtime = await open_grid(client, "D1", clock)
        first = await runtime.add_row("11")
        second = await runtime.add_row("10")
        runtime.on_input(f"{first.index}:Zw_Sztuki", "1500")
        runtime.on_input(f"{second.index}:Zw_Sztuki", "3")
        assert await runtime.save()

        reopened = await open_grid(client, "D1")

    assert json.loads(store.data[(SURVEY_ID, "D1")]) == [
        {"Zw_Kod": "11", "Zw_Wyszczegolnienie": "Pigs", "Zw_Sztuki": 1500},
        {"Zw_Kod": "10", "Zw_Wyszczegolnienie": "Cattle", "Zw_Sztuki": 3},
    ]
    assert reopened.rows.codes() == ["11", "10"]
    assert [r.fields["Zw_Sztuki"].text for r in reopened.rows] == ["1 500", "3"]
    assert [c.code for c in reopened.provisioner.selector.visible_codes()] == []


async def test_required_blank_uses_column_message(grid_app) -> None:
    async with AsyncTestClient(app=grid_app) as client:
        runtime = await open_grid(client, "D1")
        record = await runtime.add_row("10")
        runtime.on_input(f"{record.index}:Zw_Sztuki", "")
        saved = await runtime.save()

    assert not saved
    assert runtime.notifier.last.message == "Nothing to save"

    record.fields["Zw_Sztuki"].validate()
    assert record.fields["Zw_Sztuki"].error.message == "Enter the head count"


async def test_duplicable_grid_accepts_repeated_codes(grid_app, store) -> None:
    async with AsyncTestClient(app=grid_app) as client:
        runtime = await open_grid(client, "D2")
        for digits in ("1234", "5678"):
            record = await runtime.add_row("01")
            runtime.on_input(f"{record.index}:Dz_Numer", digits)
        assert await runtime.save()

    assert json.loads(store.data[(SURVEY_ID, "D2")]) == [
        {"Dz_Kod": "01", "Dz_Numer": "12-34"},
        {"Dz_Kod": "01", "Dz_Numer": "56-78"},
    ]
