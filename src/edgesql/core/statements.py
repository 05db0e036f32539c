"""SQL script splitting.

Scripts are cut at semicolons that actually end a statement, as judged by
:func:`sqlite3.complete_statement`, so semicolons inside string literals,
quoted identifiers and ``CREATE TRIGGER ... BEGIN ... END`` bodies do not
split anything. Full-line ``--`` comments are dropped.

Example::

    >>> split_sql("INSERT INTO t VALUES ('a;b');\\nSELECT 1")
    ["INSERT INTO t VALUES ('a;b');", 'SELECT 1']
"""

from __future__ import annotations

import re
import sqlite3

_LINE_COMMENT = re.compile(r"--[^\n]*")


def _is_blank(text: str) -> bool:
    return not _LINE_COMMENT.sub("", text).replace(";", "").strip()


def split_sql(script: str) -> list[str]:
    """Split ``script`` into individual statements, in order."""
    lines = [line for line in script.splitlines() if not line.strip().startswith("--")]
    pieces = "\n".join(lines).split(";")

    statements: list[str] = []
    current = ""
    for index, piece in enumerate(pieces):
        last = index == len(pieces) - 1
        current += piece if last else piece + ";"
        if not last and not sqlite3.complete_statement(current):
            continue
        if not _is_blank(current):
            statements.append(current.strip())
        current = ""
    return statements


__all__ = ["split_sql"]
