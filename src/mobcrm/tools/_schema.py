"""Schema helpers for CRM tools.

These let tools intersect their column lists with what the live table
actually carries instead of hard-coding a single table shape.
"""

from __future__ import annotations

import asyncpg


async def table_columns(conn: asyncpg.Pool | asyncpg.Connection, table: str) -> set[str]:
    """Return the set of column names for *table* in the current schema."""
    rows = await conn.fetch(
        """
        SELECT column_name
        FROM information_schema.columns
        WHERE table_schema = current_schema() AND table_name = $1
        """,
        table,
    )
    return {row["column_name"] for row in rows}
