"""Seed metadata: one sample subtable for each survey grid layout."""

import json

from psycopg import sql


SEED_UNITS = [
    {"unit": "ha", "data_type": "float", "format": "# ##0,00"},
    {"unit": "szt", "data_type": "int", "format": "# ##0"},
    {"unit": "txt", "data_type": "string", "format": "$"},
    {"unit": "nr", "data_type": "string", "format": "##-##-##-##"},
]

SEED_DICTIONARIES = [
    {
        "dictionary": "Kody",
        "dictionary_type": None,
        "entries": [],
    },
    {
        "dictionary": "TakNie",
        "dictionary_type": None,
        "entries": [{"value": "1", "label": "Tak"}, {"value": "2", "label": "Nie"}],
    },
    {
        "dictionary": "Uprawy",
        "dictionary_type": "multi",
        "entries": [
            {"value": "A", "label": "Zboża"},
            {"value": "B", "label": "Okopowe"},
            {"value": "X", "label": "Brak upraw", "exclusive": True},
        ],
    },
]

SEED_CODES = [
    {"code": "01", "title": "Pszenica"},
    {"code": "02", "title": "Żyto"},
    {"code": "03", "title": "Jęczmień"},
    {"code": "10", "title": "Bydło"},
    {"code": "11", "title": "Trzoda chlewna"},
]

SEED_SUBTABLES = [
    {
        "subtable": "P1",
        "table_name": "T1",
        "layout": "HORIZONTAL_STATIC_UNIQUE",
        "symbol": "1.",
        "title": "Powierzchnia zasiewów",
        "codes": ["01", "02", "03"],
        "blocks": [("Zasiew_Nawadniane", "03")],
        "columns": [
            {"column_name": "Zasiew_Kod", "title": "Kod", "dictionary": "Kody", "unit": "txt"},
            {"column_name": "Zasiew_Wyszczegolnienie", "title": "Wyszczególnienie", "unit": "txt"},
            {"column_name": "Zasiew_Powierzchnia", "title": "Powierzchnia", "unit": "ha", "required": True, "min_value": 0},
            {"column_name": "Zasiew_Nawadniane", "title": "W tym nawadniane", "unit": "ha", "min_value": 0},
        ],
    },
    {
        "subtable": "P2",
        "table_name": "T1",
        "layout": "HORIZONTAL_DYNAMIC_UNIQUE",
        "symbol": "2.",
        "title": "Pogłowie zwierząt",
        "codes": ["10", "11"],
        "blocks": [],
        "columns": [
            {"column_name": "Zwierzeta_Kod", "title": "Kod", "dictionary": "Kody", "unit": "txt"},
            {"column_name": "Zwierzeta_Wyszczegolnienie", "title": "Wyszczególnienie", "unit": "txt"},
            {"column_name": "Zwierzeta_Sztuki", "title": "Liczba sztuk", "unit": "szt", "required": True, "min_value": 0, "message": "Podaj liczbę sztuk"},
        ],
    },
    {
        "subtable": "P3",
        "table_name": "T1",
        "layout": "HORIZONTAL_DYNAMIC_DUPLICABLE",
        "symbol": "3.",
        "title": "Działki",
        "codes": ["01", "02", "03"],
        "blocks": [],
        "columns": [
            {"column_name": "Dzialka_Kod", "title": "Kod", "dictionary": "Kody", "unit": "txt"},
            {"column_name": "Dzialka_Numer", "title": "Numer działki", "unit": "nr", "required": True},
            {"column_name": "Dzialka_Powierzchnia", "title": "Powierzchnia", "unit": "ha"},
        ],
    },
    {
        "subtable": "P4",
        "table_name": "T2",
        "layout": "VERTICAL_STATIC_UNIQUE",
        "symbol": "4.",
        "title": "Informacje ogólne",
        "codes": [],
        "blocks": [],
        "columns": [
            {"column_name": "Gosp_Prowadzi", "symbol": "a)", "title": "Czy gospodarstwo prowadzi działalność", "dictionary": "TakNie", "required": True},
            {"column_name": "Gosp_Uprawy", "symbol": "b)", "title": "Rodzaje upraw", "dictionary": "Uprawy"},
            {"column_name": "Gosp_Uwagi", "symbol": "c)", "title": "Uwagi", "unit": "txt"},
        ],
    },
]


def sql_insert_unit() -> str:
    return """
        INSERT INTO {schema}.units (unit, data_type, format)
        VALUES (%(unit)s, %(data_type)s, %(format)s)
        ON CONFLICT (unit) DO NOTHING
    """


def sql_insert_dictionary() -> str:
    return """
        INSERT INTO {schema}.dictionaries (dictionary, dictionary_type, entries)
        VALUES (%(dictionary)s, %(dictionary_type)s, %(entries)s)
        ON CONFLICT (dictionary) DO NOTHING
    """


def sql_insert_code() -> str:
    return """
        INSERT INTO {schema}.codes (code, title)
        VALUES (%(code)s, %(title)s)
        ON CONFLICT (code) DO NOTHING
    """


def sql_insert_subtable() -> str:
    return """
        INSERT INTO {schema}.subtables (subtable, table_name, layout, title, symbol, position)
        VALUES (%(subtable)s, %(table_name)s, %(layout)s, %(title)s, %(symbol)s, %(position)s)
        ON CONFLICT (subtable) DO NOTHING
        RETURNING subtable
    """


def sql_insert_column() -> str:
    return """
        INSERT INTO {schema}.grid_columns (
            subtable, column_name, title, symbol, position, unit,
            required, min_value, max_value, message, dictionary
        )
        VALUES (
            %(subtable)s, %(column_name)s, %(title)s, %(symbol)s, %(position)s, %(unit)s,
            %(required)s, %(min_value)s, %(max_value)s, %(message)s, %(dictionary)s
        )
    """


def sql_insert_subtable_code() -> str:
    return """
        INSERT INTO {schema}.subtable_codes (subtable, code, position)
        VALUES (%(subtable)s, %(code)s, %(position)s)
    """


def sql_insert_block() -> str:
    return """
        INSERT INTO {schema}.blocks (subtable, column_name, code)
        VALUES (%(subtable)s, %(column_name)s, %(code)s)
    """


def _q(query: str, schema: str) -> sql.Composed:
    return sql.SQL(query).format(schema=sql.Identifier(schema))


async def seed_metadata(conn, schema: str) -> None:
    """Insert units, dictionaries, codes and the sample subtables."""
    async with conn.cursor() as cur:
        for unit in SEED_UNITS:
            await cur.execute(_q(sql_insert_unit(), schema), unit)
        for dictionary in SEED_DICTIONARIES:
            await cur.execute(
                _q(sql_insert_dictionary(), schema),
                {**dictionary, "entries": json.dumps(dictionary["entries"], ensure_ascii=False)},
            )
        for code in SEED_CODES:
            await cur.execute(_q(sql_insert_code(), schema), code)
        print(f"Seeded {len(SEED_UNITS)} units, {len(SEED_DICTIONARIES)} dictionaries, {len(SEED_CODES)} codes")

        for position, subtable in enumerate(SEED_SUBTABLES):
            await cur.execute("BEGIN")
            try:
                await cur.execute(
                    _q(sql_insert_subtable(), schema),
                    {
                        "subtable": subtable["subtable"],
                        "table_name": subtable["table_name"],
                        "layout": subtable["layout"],
                        "title": subtable["title"],
                        "symbol": subtable["symbol"],
                        "position": position,
                    },
                )
                if await cur.fetchone() is None:
                    await cur.execute("ROLLBACK")
                    print(f"Subtable already exists: {subtable['subtable']}")
                    continue

                for column_position, column in enumerate(subtable["columns"]):
                    await cur.execute(
                        _q(sql_insert_column(), schema),
                        {
                            "subtable": subtable["subtable"],
                            "column_name": column["column_name"],
                            "title": column.get("title", ""),
                            "symbol": column.get("symbol", ""),
                            "position": column_position,
                            "unit": column.get("unit"),
                            "required": column.get("required", False),
                            "min_value": column.get("min_value"),
                            "max_value": column.get("max_value"),
                            "message": column.get("message"),
                            "dictionary": column.get("dictionary"),
                        },
                    )
                for code_position, code in enumerate(subtable["codes"]):
                    await cur.execute(
                        _q(sql_insert_subtable_code(), schema),
                        {"subtable": subtable["subtable"], "code": code, "position": code_position},
                    )
                for column_name, code in subtable["blocks"]:
                    await cur.execute(
                        _q(sql_insert_block(), schema),
                        {"subtable": subtable["subtable"], "column_name": column_name, "code": code},
                    )

                await cur.execute("COMMIT")
                print(f"Created subtable: {subtable['symbol']} {subtable['title']} ({subtable['layout']})")
            except Exception as e:
                await cur.execute("ROLLBACK")
                print(f"Error creating subtable {subtable['subtable']}: {e}")
                raise
