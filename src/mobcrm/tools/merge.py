"""Contact merge — fold a secondary contact and all its dependents into a primary.

Everything after the precondition checks runs on one connection inside a
single transaction: dependent rows are re-pointed (or dropped where moving
them would break an invariant), scalar fields are coalesced onto the
primary, and the secondary is soft-deleted. Any database error rolls the
whole merge back.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Mapping
from typing import Any

import asyncpg

from mobcrm.core.logging import contact_log_context
from mobcrm.tools._schema import table_columns
from mobcrm.tools.contacts import _as_uuid, get_owned_contact
from mobcrm.tools.relationship_types import inverse_type

logger = logging.getLogger(__name__)

# Child tables whose rows are re-pointed unconditionally.
_SIMPLE_CHILD_TABLES = (
    "notes",
    "contact_methods",
    "addresses",
    "reminders",
    "gifts",
    "debts",
    "tasks",
)

SUMMARY_KEYS = (
    *_SIMPLE_CHILD_TABLES,
    "life_events",
    "activity_participants",
    "contact_tags",
    "relationships",
    "food_preferences",
    "custom_fields",
    "fields_copied",
)

FOOD_PREFERENCE_ARRAY_FIELDS = (
    "dietary_restrictions",
    "allergies",
    "favorite_foods",
    "disliked_foods",
)

# Nullable contact columns filled from the secondary when empty on the primary.
COALESCE_FIELDS = (
    "last_name",
    "nickname",
    "maiden_name",
    "gender",
    "pronouns",
    "avatar_url",
    "birthday_mode",
    "birthday_date",
    "birthday_month",
    "birthday_day",
    "birthday_year_approximate",
    "deceased_date",
    "met_at_date",
    "met_at_location",
    "met_through_contact_id",
    "met_description",
    "job_title",
    "company",
    "industry",
    "work_notes",
)


class ContactMergeError(ValueError):
    """Base class for contact merge failures."""


class SelfMergeError(ContactMergeError):
    """Raised when a contact is merged into itself."""

    def __init__(self) -> None:
        super().__init__("Cannot merge a contact with itself")


class PrimaryNotFoundError(ContactMergeError):
    """Primary contact is missing, owned by someone else, or soft-deleted."""

    def __init__(self, contact_id: Any) -> None:
        super().__init__(f"Primary contact {contact_id} not found")


class SecondaryNotFoundError(ContactMergeError):
    """Secondary contact is missing, owned by someone else, or soft-deleted."""

    def __init__(self, contact_id: Any) -> None:
        super().__init__(f"Secondary contact {contact_id} not found")


class MergeFailedError(ContactMergeError):
    """The merge transaction failed and was rolled back; nothing changed."""


def _rows_affected(status: str) -> int:
    """Row count from an asyncpg command tag such as ``UPDATE 3`` or ``INSERT 0 2``."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (AttributeError, ValueError):
        return 0


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def union_preserving_order(*lists: Iterable[str] | None) -> list[str]:
    """Set-union of *lists*, keeping first-seen order."""
    merged: dict[str, None] = {}
    for items in lists:
        for item in items or ():
            merged.setdefault(item, None)
    return list(merged)


def merge_food_preferences(
    primary: Mapping[str, Any], secondary: Mapping[str, Any]
) -> dict[str, Any]:
    """Return the column values to write onto the primary's food preference row."""
    updates: dict[str, Any] = {
        field: union_preserving_order(primary.get(field), secondary.get(field))
        for field in FOOD_PREFERENCE_ARRAY_FIELDS
    }
    primary_notes = (primary.get("notes") or "").strip()
    secondary_notes = (secondary.get("notes") or "").strip()
    if secondary_notes and not primary_notes:
        updates["notes"] = secondary_notes
    elif secondary_notes and secondary_notes != primary_notes:
        updates["notes"] = f"{primary_notes}\n{secondary_notes}"
    return updates


def coalesce_fields(
    primary: Mapping[str, Any],
    secondary: Mapping[str, Any],
    fields: Iterable[str] = COALESCE_FIELDS,
) -> dict[str, Any]:
    """Pick secondary values for fields that are empty on the primary.

    A non-empty primary value is never overwritten.
    """
    return {
        field: secondary[field]
        for field in fields
        if _is_blank(primary.get(field)) and not _is_blank(secondary.get(field))
    }


# ---------------------------------------------------------------------------
# Merge steps (all run on the transaction's connection)
# ---------------------------------------------------------------------------


async def _lock_contacts(conn: asyncpg.Connection, *contact_ids: uuid.UUID) -> None:
    # Fixed lock order so merges over the same pair cannot deadlock
    await conn.execute(
        "SELECT 1 FROM contacts WHERE id = ANY($1::uuid[]) ORDER BY id FOR UPDATE",
        sorted(contact_ids),
    )


async def _reassign_simple_children(
    conn: asyncpg.Connection,
    primary_id: uuid.UUID,
    secondary_id: uuid.UUID,
    summary: dict[str, int],
) -> None:
    for table in _SIMPLE_CHILD_TABLES:
        status = await conn.execute(
            f"UPDATE {table} SET contact_id = $1, updated_at = now() WHERE contact_id = $2",  # noqa: S608
            primary_id,
            secondary_id,
        )
        summary[table] = _rows_affected(status)


async def _merge_life_events(
    conn: asyncpg.Connection,
    primary_id: uuid.UUID,
    secondary_id: uuid.UUID,
    summary: dict[str, int],
) -> None:
    status = await conn.execute(
        "UPDATE life_events SET contact_id = $1, updated_at = now() WHERE contact_id = $2",
        primary_id,
        secondary_id,
    )
    summary["life_events"] = _rows_affected(status)

    await conn.execute(
        """
        DELETE FROM life_event_contacts
        WHERE contact_id = $2
          AND life_event_id IN (
              SELECT life_event_id FROM life_event_contacts WHERE contact_id = $1
          )
        """,
        primary_id,
        secondary_id,
    )
    await conn.execute(
        "UPDATE life_event_contacts SET contact_id = $1 WHERE contact_id = $2",
        primary_id,
        secondary_id,
    )


async def _merge_activity_participants(
    conn: asyncpg.Connection,
    primary_id: uuid.UUID,
    secondary_id: uuid.UUID,
    summary: dict[str, int],
) -> None:
    await conn.execute(
        """
        DELETE FROM activity_participants
        WHERE contact_id = $2
          AND activity_id IN (
              SELECT activity_id FROM activity_participants WHERE contact_id = $1
          )
        """,
        primary_id,
        secondary_id,
    )
    status = await conn.execute(
        "UPDATE activity_participants SET contact_id = $1 WHERE contact_id = $2",
        primary_id,
        secondary_id,
    )
    summary["activity_participants"] = _rows_affected(status)


async def _merge_contact_tags(
    conn: asyncpg.Connection,
    primary_id: uuid.UUID,
    secondary_id: uuid.UUID,
    summary: dict[str, int],
) -> None:
    status = await conn.execute(
        """
        INSERT INTO contact_tags (contact_id, tag_id)
        SELECT $1, tag_id FROM contact_tags WHERE contact_id = $2
        ON CONFLICT (contact_id, tag_id) DO NOTHING
        """,
        primary_id,
        secondary_id,
    )
    summary["contact_tags"] = _rows_affected(status)
    await conn.execute("DELETE FROM contact_tags WHERE contact_id = $1", secondary_id)


async def _merge_relationships(
    conn: asyncpg.Connection,
    primary_id: uuid.UUID,
    secondary_id: uuid.UUID,
    summary: dict[str, int],
) -> None:
    # Third parties the primary was related to before the merge started
    primary_related = {
        row["related_contact_id"]
        for row in await conn.fetch(
            "SELECT related_contact_id FROM relationships WHERE contact_id = $1",
            primary_id,
        )
    }
    secondary_rows = await conn.fetch(
        """
        SELECT id, related_contact_id, relationship_type
        FROM relationships
        WHERE contact_id = $1
        ORDER BY created_at, id
        """,
        secondary_id,
    )

    moved = 0
    for rel in secondary_rows:
        related_id = rel["related_contact_id"]
        reverse_label = inverse_type(rel["relationship_type"])

        if related_id == primary_id:
            # Would become a self-relationship: drop both directions
            await conn.execute(
                """
                DELETE FROM relationships
                WHERE (contact_id = $1 AND related_contact_id = $2)
                   OR (contact_id = $2 AND related_contact_id = $1)
                """,
                secondary_id,
                primary_id,
            )
            continue

        if related_id in primary_related:
            await conn.execute("DELETE FROM relationships WHERE id = $1", rel["id"])
            await conn.execute(
                """
                DELETE FROM relationships
                WHERE contact_id = $1 AND related_contact_id = $2 AND relationship_type = $3
                """,
                related_id,
                secondary_id,
                reverse_label,
            )
            continue

        await conn.execute(
            "UPDATE relationships SET contact_id = $1, updated_at = now() WHERE id = $2",
            primary_id,
            rel["id"],
        )
        await conn.execute(
            """
            UPDATE relationships r
            SET related_contact_id = $1, updated_at = now()
            WHERE r.contact_id = $2
              AND r.related_contact_id = $3
              AND r.relationship_type = $4
              AND NOT EXISTS (
                  SELECT 1 FROM relationships d
                  WHERE d.contact_id = $2
                    AND d.related_contact_id = $1
                    AND d.relationship_type = $4
              )
            """,
            primary_id,
            related_id,
            secondary_id,
            reverse_label,
        )
        moved += 1

    # Single-direction rows still pointing at the secondary
    await conn.execute(
        "DELETE FROM relationships WHERE contact_id = $1 AND related_contact_id = $2",
        primary_id,
        secondary_id,
    )
    await conn.execute(
        """
        DELETE FROM relationships r
        WHERE r.related_contact_id = $2
          AND EXISTS (
              SELECT 1 FROM relationships d
              WHERE d.contact_id = r.contact_id
                AND d.related_contact_id = $1
                AND d.relationship_type = r.relationship_type
          )
        """,
        primary_id,
        secondary_id,
    )
    await conn.execute(
        """
        UPDATE relationships SET related_contact_id = $1, updated_at = now()
        WHERE related_contact_id = $2
        """,
        primary_id,
        secondary_id,
    )
    summary["relationships"] = moved


async def _merge_food_preferences(
    conn: asyncpg.Connection,
    primary_id: uuid.UUID,
    secondary_id: uuid.UUID,
    summary: dict[str, int],
) -> None:
    secondary = await conn.fetchrow(
        "SELECT * FROM food_preferences WHERE contact_id = $1", secondary_id
    )
    if secondary is None:
        summary["food_preferences"] = 0
        return

    primary = await conn.fetchrow(
        "SELECT * FROM food_preferences WHERE contact_id = $1", primary_id
    )
    if primary is None:
        await conn.execute(
            "UPDATE food_preferences SET contact_id = $1 WHERE contact_id = $2",
            primary_id,
            secondary_id,
        )
        summary["food_preferences"] = 1
        return

    updates = merge_food_preferences(dict(primary), dict(secondary))
    set_clauses = [f"{col} = ${idx}" for idx, col in enumerate(updates, start=2)]
    await conn.execute(
        f"UPDATE food_preferences SET {', '.join(set_clauses)} WHERE contact_id = $1",  # noqa: S608
        primary_id,
        *updates.values(),
    )
    await conn.execute("DELETE FROM food_preferences WHERE contact_id = $1", secondary_id)
    summary["food_preferences"] = 1


async def _merge_custom_fields(
    conn: asyncpg.Connection,
    primary_id: uuid.UUID,
    secondary_id: uuid.UUID,
    summary: dict[str, int],
) -> None:
    taken = {
        row["field_name"]
        for row in await conn.fetch(
            "SELECT field_name FROM custom_fields WHERE contact_id = $1", primary_id
        )
    }
    secondary_fields = await conn.fetch(
        """
        SELECT id, field_name FROM custom_fields
        WHERE contact_id = $1
        ORDER BY created_at, id
        """,
        secondary_id,
    )

    to_move: list[uuid.UUID] = []
    for field in secondary_fields:
        # Colliding names stay behind on the soft-deleted secondary
        if field["field_name"] in taken:
            continue
        taken.add(field["field_name"])
        to_move.append(field["id"])

    if to_move:
        await conn.execute(
            """
            UPDATE custom_fields SET contact_id = $1, updated_at = now()
            WHERE id = ANY($2::uuid[])
            """,
            primary_id,
            to_move,
        )
    summary["custom_fields"] = len(to_move)


async def _coalesce_contact_fields(
    conn: asyncpg.Connection,
    primary: Mapping[str, Any],
    secondary: Mapping[str, Any],
    summary: dict[str, int],
) -> None:
    cols = await table_columns(conn, "contacts")
    fields = [f for f in COALESCE_FIELDS if f in cols]
    updates = coalesce_fields(primary, secondary, fields)
    if updates.get("met_through_contact_id") == primary["id"]:
        updates.pop("met_through_contact_id")

    summary["fields_copied"] = len(updates)
    if not updates:
        return

    set_clauses = [f"{col} = ${idx}" for idx, col in enumerate(updates, start=2)]
    set_clauses.append("updated_at = now()")
    await conn.execute(
        f"UPDATE contacts SET {', '.join(set_clauses)} WHERE id = $1",  # noqa: S608
        primary["id"],
        *updates.values(),
    )


async def _redirect_met_through(
    conn: asyncpg.Connection,
    user_id: str,
    primary_id: uuid.UUID,
    secondary_id: uuid.UUID,
) -> None:
    # The primary cannot have been met through itself
    await conn.execute(
        """
        UPDATE contacts SET met_through_contact_id = NULL, updated_at = now()
        WHERE id = $1 AND met_through_contact_id = $2
        """,
        primary_id,
        secondary_id,
    )
    await conn.execute(
        """
        UPDATE contacts SET met_through_contact_id = $1, updated_at = now()
        WHERE user_id = $3
          AND met_through_contact_id = $2
          AND id <> $1
          AND id <> $2
        """,
        primary_id,
        secondary_id,
        user_id,
    )


async def _merge_in_transaction(
    pool: asyncpg.Pool,
    user_id: str,
    primary_id: uuid.UUID | str,
    secondary_id: uuid.UUID | str,
    summary: dict[str, int],
) -> None:
    primary_uuid = _as_uuid(primary_id)
    secondary_uuid = _as_uuid(secondary_id)
    try:
        async with pool.acquire() as conn:
            async with conn.transaction():
                await _lock_contacts(
                    conn, *(cid for cid in (primary_uuid, secondary_uuid) if cid is not None)
                )

                primary = await get_owned_contact(conn, user_id, primary_uuid)
                if primary is None:
                    raise PrimaryNotFoundError(primary_id)
                secondary = (
                    await get_owned_contact(conn, user_id, secondary_uuid)
                    if secondary_uuid is not None
                    else None
                )
                if secondary is None:
                    raise SecondaryNotFoundError(secondary_id)

                await _reassign_simple_children(conn, primary_uuid, secondary_uuid, summary)
                await _merge_life_events(conn, primary_uuid, secondary_uuid, summary)
                await _merge_activity_participants(conn, primary_uuid, secondary_uuid, summary)
                await _merge_contact_tags(conn, primary_uuid, secondary_uuid, summary)
                await _merge_relationships(conn, primary_uuid, secondary_uuid, summary)
                await _merge_food_preferences(conn, primary_uuid, secondary_uuid, summary)
                await _merge_custom_fields(conn, primary_uuid, secondary_uuid, summary)
                await _coalesce_contact_fields(conn, primary, secondary, summary)
                await _redirect_met_through(conn, user_id, primary_uuid, secondary_uuid)

                await conn.execute(
                    "UPDATE contacts SET deleted_at = now(), updated_at = now() WHERE id = $1",
                    secondary_uuid,
                )
    except asyncpg.PostgresError as exc:
        logger.exception("contact_merge rolled back")
        raise MergeFailedError(
            "Contact merge failed and was rolled back; no changes were made"
        ) from exc


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


async def contact_merge(
    pool: asyncpg.Pool,
    user_id: str,
    primary_id: uuid.UUID | str,
    secondary_id: uuid.UUID | str,
) -> dict[str, Any]:
    """Merge the secondary contact into the primary contact.

    The primary survives; every dependent row of the secondary is re-pointed
    to it, then the secondary is soft-deleted. Merging is deliberately not
    idempotent: repeating a completed merge raises ``SecondaryNotFoundError``.

    Returns:
        ``{"contact": <refreshed primary>, "summary": {<entity>: <count>}}``
        where the summary carries every key in :data:`SUMMARY_KEYS`.

    Raises:
        SelfMergeError: If both ids name the same contact.
        PrimaryNotFoundError: If the primary is missing, foreign, or deleted.
        SecondaryNotFoundError: If the secondary is missing, foreign, or deleted.
        MergeFailedError: If the transaction failed; nothing was changed.
    """
    primary_uuid = _as_uuid(primary_id)
    secondary_uuid = _as_uuid(secondary_id)
    if primary_uuid is None:
        if str(primary_id) == str(secondary_id):
            raise SelfMergeError()
        raise PrimaryNotFoundError(primary_id)
    if primary_uuid == secondary_uuid:
        raise SelfMergeError()

    summary: dict[str, int] = dict.fromkeys(SUMMARY_KEYS, 0)
    with contact_log_context(
        "contact_merge",
        primary_contact_id=primary_uuid,
        secondary_contact_id=secondary_uuid or secondary_id,
    ):
        await _merge_in_transaction(pool, user_id, primary_uuid, secondary_id, summary)
        merged = await get_owned_contact(pool, user_id, primary_uuid)
        logger.info(
            "Merged contact %s into %s",
            secondary_uuid,
            primary_uuid,
            extra={"summary": {k: v for k, v in summary.items() if v}},
        )
    return {"contact": merged, "summary": summary}
