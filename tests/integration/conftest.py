"""Fixtures for database-backed CRM tests."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

import asyncpg
import pytest

from mobcrm.tools.relationship_types import inverse_type

USER_ID = "user-1"
OTHER_USER_ID = "user-2"


class CrmFactory:
    """Inserts CRM rows directly, standing in for the per-entity services."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def contact(
        self,
        first_name: str,
        last_name: str | None = None,
        *,
        user_id: str = USER_ID,
        **fields: Any,
    ) -> uuid.UUID:
        cols = ["user_id", "first_name", "last_name", *fields]
        values = [user_id, first_name, last_name, *fields.values()]
        placeholders = ", ".join(f"${i}" for i in range(1, len(values) + 1))
        return await self.pool.fetchval(
            f"INSERT INTO contacts ({', '.join(cols)}) VALUES ({placeholders}) RETURNING id",
            *values,
        )

    async def method(self, contact_id: uuid.UUID, type: str, value: str) -> uuid.UUID:
        return await self.pool.fetchval(
            """
            INSERT INTO contact_methods (contact_id, type, value)
            VALUES ($1, $2, $3)
            RETURNING id
            """,
            contact_id,
            type,
            value,
        )

    async def note(self, contact_id: uuid.UUID, body: str = "note") -> uuid.UUID:
        return await self.pool.fetchval(
            "INSERT INTO notes (contact_id, body) VALUES ($1, $2) RETURNING id",
            contact_id,
            body,
        )

    async def relationship(
        self, contact_id: uuid.UUID, related_contact_id: uuid.UUID, type: str
    ) -> None:
        """Create both directions, as the relationship service does."""
        await self.pool.execute(
            """
            INSERT INTO relationships (contact_id, related_contact_id, relationship_type)
            VALUES ($1, $2, $3), ($2, $1, $4)
            """,
            contact_id,
            related_contact_id,
            type,
            inverse_type(type),
        )

    async def tag(self, contact_id: uuid.UUID, name: str, *, user_id: str = USER_ID) -> uuid.UUID:
        tag_id = await self.pool.fetchval(
            """
            INSERT INTO tags (user_id, name) VALUES ($1, $2)
            ON CONFLICT (user_id, name) DO UPDATE SET name = EXCLUDED.name
            RETURNING id
            """,
            user_id,
            name,
        )
        await self.pool.execute(
            "INSERT INTO contact_tags (contact_id, tag_id) VALUES ($1, $2)",
            contact_id,
            tag_id,
        )
        return tag_id

    async def activity(self, *participants: uuid.UUID, user_id: str = USER_ID) -> uuid.UUID:
        activity_id = await self.pool.fetchval(
            """
            INSERT INTO activities (user_id, type, title, occurred_at)
            VALUES ($1, 'in_person', 'Lunch', $2)
            RETURNING id
            """,
            user_id,
            datetime.now(UTC),
        )
        for contact_id in participants:
            await self.pool.execute(
                "INSERT INTO activity_participants (activity_id, contact_id) VALUES ($1, $2)",
                activity_id,
                contact_id,
            )
        return activity_id

    async def life_event(
        self, contact_id: uuid.UUID, *related: uuid.UUID, title: str = "Graduated"
    ) -> uuid.UUID:
        event_id = await self.pool.fetchval(
            """
            INSERT INTO life_events (contact_id, event_type, title)
            VALUES ($1, 'education', $2)
            RETURNING id
            """,
            contact_id,
            title,
        )
        for related_id in related:
            await self.pool.execute(
                "INSERT INTO life_event_contacts (life_event_id, contact_id) VALUES ($1, $2)",
                event_id,
                related_id,
            )
        return event_id

    async def food_preferences(self, contact_id: uuid.UUID, **fields: Any) -> None:
        cols = ["contact_id", *fields]
        values = [contact_id, *fields.values()]
        placeholders = ", ".join(f"${i}" for i in range(1, len(values) + 1))
        await self.pool.execute(
            f"INSERT INTO food_preferences ({', '.join(cols)}) VALUES ({placeholders})",
            *values,
        )

    async def custom_field(self, contact_id: uuid.UUID, name: str, value: str) -> uuid.UUID:
        return await self.pool.fetchval(
            """
            INSERT INTO custom_fields (contact_id, field_name, field_value)
            VALUES ($1, $2, $3)
            RETURNING id
            """,
            contact_id,
            name,
            value,
        )

    async def table_counts(self) -> dict[str, int]:
        tables = (
            "contacts",
            "notes",
            "contact_methods",
            "relationships",
            "contact_tags",
            "food_preferences",
            "custom_fields",
            "activity_participants",
            "life_events",
            "life_event_contacts",
        )
        counts: dict[str, int] = {}
        for table in tables:
            counts[table] = await self.pool.fetchval(f"SELECT count(*) FROM {table}")  # noqa: S608
        return counts


@pytest.fixture
async def pool(provisioned_postgres_pool):
    """Provision a fresh database with the CRM schema and return a pool."""
    async with provisioned_postgres_pool() as p:
        yield p


@pytest.fixture
def crm(pool) -> CrmFactory:
    return CrmFactory(pool)
