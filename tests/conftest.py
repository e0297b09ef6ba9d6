from __future__ import annotations

import json

import pytest

from app import create_app
from core.config import AppConfig
from core.db import StatementStore
from helpers import MemoryStore, column_row

YES_NO = json.dumps([{"value": "1", "label": "Yes"}, {"value": "2", "label": "No"}])
CROPS = json.dumps(
    [
        {"value": "A", "label": "Cereals"},
        {"value": "B", "label": "Root crops"},
        {"value": "X", "label": "No crops", "exclusive": True},
    ]
)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def store() -> MemoryStore:
    store = MemoryStore()
    store.add_subtable(
        "S1",
        "HORIZONTAL_STATIC_UNIQUE",
        symbol="1.",
        title="Sown area",
        columns=[
            column_row("Wartosc_Kod", dictionary="Kody"),
            column_row(
                "Wartosc_Liczba",
                data_type="float",
                format="###0,00",
                required=True,
                min_value=0,
            ),
        ],
        codes={"01": "Wheat", "02": "Rye"},
        blocks=[("Wartosc_Liczba", "02")],
    )
    store.add_subtable(
        "D1",
        "HORIZONTAL_DYNAMIC_UNIQUE",
        symbol="2.",
        title="Livestock",
        columns=[
            column_row("Zw_Kod", dictionary="Kody"),
            column_row("Zw_Wyszczegolnienie"),
            column_row(
                "Zw_Sztuki",
                data_type="int",
                format="# ##0",
                required=True,
                message="Enter the head count",
            ),
        ],
        codes={"10": "Cattle", "11": "Pigs"},
    )
    store.add_subtable(
        "D2",
        "HORIZONTAL_DYNAMIC_DUPLICABLE",
        symbol="3.",
        title="Plots",
        columns=[
            column_row("Dz_Kod", dictionary="Kody"),
            column_row("Dz_Numer", format="##-##", required=True),
        ],
        codes={"01": "Wheat"},
    )
    store.add_subtable(
        "V1",
        "VERTICAL_STATIC_UNIQUE",
        symbol="4.",
        title="General",
        columns=[
            column_row("Gosp_Prowadzi", symbol="a)", title="Active", dictionary="TakNie",
                       entries=YES_NO, required=True),
            column_row("Gosp_Uprawy", symbol="b)", title="Crops", dictionary="Uprawy",
                       entries=CROPS, dictionary_type="multi"),
            column_row("Gosp_Uwagi", symbol="c)", title="Notes"),
        ],
    )
    return store


@pytest.fixture
def grid_app(store: MemoryStore):
    async def provide_store() -> StatementStore:
        return store

    return create_app(AppConfig(), store_provider=provide_store)
