"""Create or drop the metadata and data tables of one survey year."""

from psycopg import sql


def sql_create_tables() -> str:
    """DDL for a year schema; ``{schema}`` is filled with the quoted schema name."""
    return """
        CREATE SCHEMA IF NOT EXISTS {schema};

        CREATE TABLE IF NOT EXISTS {schema}.subtables (
            subtable text PRIMARY KEY,
            table_name text NOT NULL,
            layout text NOT NULL,
            title text NOT NULL DEFAULT '',
            symbol text NOT NULL DEFAULT '',
            position integer NOT NULL DEFAULT 0,
            description text
        );

        CREATE TABLE IF NOT EXISTS {schema}.units (
            unit text PRIMARY KEY,
            data_type text NOT NULL DEFAULT 'string',
            format text NOT NULL DEFAULT '$',
            description text
        );

        CREATE TABLE IF NOT EXISTS {schema}.dictionaries (
            dictionary text PRIMARY KEY,
            dictionary_type text,
            entries text NOT NULL DEFAULT '[]',
            description text
        );

        CREATE TABLE IF NOT EXISTS {schema}.grid_columns (
            subtable text NOT NULL REFERENCES {schema}.subtables (subtable),
            column_name text NOT NULL,
            title text NOT NULL DEFAULT '',
            symbol text NOT NULL DEFAULT '',
            position integer NOT NULL DEFAULT 0,
            unit text REFERENCES {schema}.units (unit),
            required boolean NOT NULL DEFAULT false,
            visible boolean NOT NULL DEFAULT true,
            width integer NOT NULL DEFAULT 0,
            formula text,
            validation text,
            min_value bigint,
            max_value bigint,
            message text,
            dictionary text REFERENCES {schema}.dictionaries (dictionary),
            PRIMARY KEY (subtable, column_name)
        );

        CREATE TABLE IF NOT EXISTS {schema}.codes (
            code text PRIMARY KEY,
            title text NOT NULL DEFAULT '',
            description text
        );

        CREATE TABLE IF NOT EXISTS {schema}.subtable_codes (
            subtable text NOT NULL REFERENCES {schema}.subtables (subtable),
            code text NOT NULL REFERENCES {schema}.codes (code),
            position integer NOT NULL DEFAULT 0,
            PRIMARY KEY (subtable, code)
        );

        CREATE TABLE IF NOT EXISTS {schema}.blocks (
            subtable text NOT NULL,
            column_name text NOT NULL,
            code text NOT NULL,
            PRIMARY KEY (subtable, column_name, code)
        );

        CREATE TABLE IF NOT EXISTS {schema}.survey_data (
            survey_id text NOT NULL,
            subtable text NOT NULL,
            payload text NOT NULL,
            modified_at timestamptz NOT NULL DEFAULT now(),
            PRIMARY KEY (survey_id, subtable)
        );
    """


def sql_drop_schema() -> str:
    return "DROP SCHEMA IF EXISTS {schema} CASCADE"


async def create_year_schema(conn, schema: str) -> None:
    async with conn.cursor() as cur:
        await cur.execute(sql.SQL(sql_create_tables()).format(schema=sql.Identifier(schema)))
    print(f"Schema ready: {schema}")


async def drop_year_schema(conn, schema: str) -> None:
    async with conn.cursor() as cur:
        await cur.execute(sql.SQL(sql_drop_schema()).format(schema=sql.Identifier(schema)))
    print(f"Dropped schema: {schema}")
