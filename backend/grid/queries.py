"""Named SQL statements for the per-year survey schema.

Statements are unqualified; the store pins ``search_path`` to the year's
schema before running them.
"""


def sql_select_subtable() -> str:
    """Get a subtable's layout and display identity."""
    return """
        SELECT subtable, table_name, layout, title, symbol, description
        FROM subtables
        WHERE subtable = %(subtable)s
    """


def sql_select_columns() -> str:
    """List a subtable's columns joined with their unit and dictionary."""
    return """
        SELECT
            c.column_name,
            c.title,
            c.symbol,
            c.position,
            c.unit,
            c.required,
            c.visible,
            c.width,
            c.formula,
            c.validation,
            c.min_value,
            c.max_value,
            c.message,
            c.dictionary,
            u.data_type,
            u.format,
            d.entries,
            d.dictionary_type
        FROM grid_columns c
        LEFT JOIN units u ON u.unit = c.unit
        LEFT JOIN dictionaries d ON d.dictionary = c.dictionary
        WHERE c.subtable = %(subtable)s
        ORDER BY c.position, c.column_name
    """


def sql_select_codes() -> str:
    """List the codes of a subtable with their catalogue titles."""
    return """
        SELECT sc.code, k.title
        FROM subtable_codes sc
        JOIN codes k ON k.code = sc.code
        WHERE sc.subtable = %(subtable)s
        ORDER BY sc.position, sc.code
    """


def sql_select_blocks() -> str:
    """List every blocked (code, column) pair of a subtable."""
    return """
        SELECT code, column_name
        FROM blocks
        WHERE subtable = %(subtable)s
    """


def sql_select_blocks_for_code() -> str:
    return """
        SELECT code, column_name
        FROM blocks
        WHERE subtable = %(subtable)s AND code = %(code)s
    """


def sql_select_code_title() -> str:
    return """
        SELECT code, title
        FROM codes
        WHERE code = %(code)s
    """


def sql_select_survey_data() -> str:
    """Get the raw JSON payload saved for one survey and subtable."""
    return """
        SELECT payload, modified_at
        FROM survey_data
        WHERE survey_id = %(survey_id)s AND subtable = %(subtable)s
    """


def sql_upsert_survey_data() -> str:
    """Replace the stored payload wholesale."""
    return """
        INSERT INTO survey_data (survey_id, subtable, payload, modified_at)
        VALUES (%(survey_id)s, %(subtable)s, %(payload)s, now())
        ON CONFLICT (survey_id, subtable)
        DO UPDATE SET payload = EXCLUDED.payload, modified_at = EXCLUDED.modified_at
    """


STATEMENTS = {
    "subtable_by_name": sql_select_subtable(),
    "columns_by_subtable": sql_select_columns(),
    "codes_by_subtable": sql_select_codes(),
    "blocks_by_subtable": sql_select_blocks(),
    "blocks_by_subtable_and_code": sql_select_blocks_for_code(),
    "code_title": sql_select_code_title(),
    "survey_data_by_subtable": sql_select_survey_data(),
    "survey_data_replace": sql_upsert_survey_data(),
}
