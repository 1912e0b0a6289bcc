"""Owner-scoped contact lookup shared by the merge engine and duplicate detector."""

from __future__ import annotations

import uuid
from typing import Any

import asyncpg


def _as_uuid(value: uuid.UUID | str) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def compose_name(first_name: str | None, last_name: str | None) -> str:
    """Join first and last name the way contacts are displayed in tool output."""
    return " ".join(p.strip() for p in (first_name, last_name) if p and p.strip())


def _parse_contact(row: asyncpg.Record) -> dict[str, Any]:
    """Convert a contact row to a dict with a readable ``name``."""
    d = dict(row)
    d["name"] = compose_name(d.get("first_name"), d.get("last_name")) or d.get("nickname") or ""
    return d


async def get_owned_contact(
    conn: asyncpg.Pool | asyncpg.Connection,
    user_id: str,
    contact_id: uuid.UUID | str,
) -> dict[str, Any] | None:
    """Fetch a contact owned by *user_id*.

    Returns None when the id is malformed, the row does not exist, belongs to
    another user, or is soft-deleted. Callers cannot tell these cases apart,
    so foreign contacts never leak.
    """
    cid = _as_uuid(contact_id)
    if cid is None:
        return None
    row = await conn.fetchrow(
        "SELECT * FROM contacts WHERE id = $1 AND user_id = $2 AND deleted_at IS NULL",
        cid,
        user_id,
    )
    if row is None:
        return None
    return _parse_contact(row)
