from __future__ import annotations

from collections.abc import Mapping, Sequence

"""MySQL table definition and bulk-load statement generation.

Both functions are pure: the statements are returned as text and never
executed here.
"""

__all__ = [
    "SQL_TYPES",
    "eol_literal",
    "generate_create_table",
    "generate_load_data",
]

SQL_TYPES: dict[str, str] = {
    "tinyint": "TINYINT",
    "smallint": "SMALLINT",
    "int": "INT",
    "bigint": "BIGINT",
    "decimal": "DECIMAL(15,4)",
    "decimal_money": "DECIMAL(10,2)",
    "bool": "TINYINT(1)",
    "date": "DATE",
    "text": "TEXT",
    "longtext": "LONGTEXT",
    "varchar": "VARCHAR(255)",
    "varchar_long": "VARCHAR(500)",
    "email": "VARCHAR(320)",
}
DEFAULT_SQL_TYPE = "TEXT"
NAME_WIDTH = 30

_EOL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}


def _column_def(name: str, sql_type: str, suffix: str = "") -> str:
    pad = " " * max(1, NAME_WIDTH - len(name))
    return f"    `{name}`{pad}{sql_type}{suffix}"


def generate_create_table(
    table_name: str,
    headers: Sequence[str],
    types: Mapping[str, str],
    pk_column: str = "",
    database: str = "mydb",
) -> str:
    """CREATE TABLE for the cleaned headers.

    A header equal to ``pk_column`` becomes the auto-increment primary key;
    when ``pk_column`` is set but absent from the headers a BIGINT key column
    is prepended.
    """
    defs = []
    for h in headers:
        sql_type = SQL_TYPES.get(types.get(h, ""), DEFAULT_SQL_TYPE)
        suffix = " NOT NULL AUTO_INCREMENT PRIMARY KEY" if pk_column and h == pk_column else ""
        defs.append(_column_def(h, sql_type, suffix))
    if pk_column and pk_column not in headers:
        defs.insert(0, _column_def(pk_column, "BIGINT", " NOT NULL AUTO_INCREMENT PRIMARY KEY"))

    lines = [
        "-- Generated by datascrub",
        "",
        f"CREATE DATABASE IF NOT EXISTS {database}",
        "  CHARACTER SET utf8mb4",
        "  COLLATE utf8mb4_unicode_ci;",
        f"USE {database};",
        "",
        f"DROP TABLE IF EXISTS `{table_name}`;",
        "",
        f"CREATE TABLE `{table_name}` (",
        ",\n".join(defs),
        ") ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_unicode_ci;",
    ]
    return "\n".join(lines)


def eol_literal(eol: str) -> str:
    """Render a line terminator the way LOAD DATA expects it ('\\r\\n', ...)."""
    return "".join(_EOL_ESCAPES.get(ch, ch) for ch in eol)


def generate_load_data(
    table_name: str,
    cleaned_file_name: str,
    headers: Sequence[str],
    eol: str = "\n",
) -> str:
    """LOAD DATA LOCAL INFILE for the cleaned file, columns in output order."""
    columns = ", ".join(f"`{h}`" for h in headers)
    lines = [
        "-- Import cleaned CSV data",
        "",
        f"LOAD DATA LOCAL INFILE '{cleaned_file_name}'",
        f"INTO TABLE `{table_name}`",
        "CHARACTER SET utf8mb4",
        "FIELDS TERMINATED BY ','",
        "OPTIONALLY ENCLOSED BY '\"'",
        f"LINES TERMINATED BY '{eol_literal(eol)}'",
        "IGNORE 1 ROWS",
        f"({columns});",
        "",
        "-- Verify",
        f"SELECT COUNT(*) AS total_rows FROM `{table_name}`;",
        f"SELECT * FROM `{table_name}` LIMIT 10;",
    ]
    return "\n".join(lines)
