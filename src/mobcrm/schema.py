"""PostgreSQL schema for the CRM entity store.

Each statement is idempotent (``IF NOT EXISTS``) so
:meth:`mobcrm.db.Database.init_schema` can run on every ``init-db`` and in
test fixtures.
"""

from __future__ import annotations

SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS contacts (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id TEXT NOT NULL,
        first_name TEXT NOT NULL,
        last_name TEXT,
        nickname TEXT,
        maiden_name TEXT,
        gender TEXT,
        pronouns TEXT,
        avatar_url TEXT,
        birthday_mode TEXT
            CHECK (birthday_mode IN ('full_date', 'month_day', 'approximate_age')),
        birthday_date DATE,
        birthday_month INT CHECK (birthday_month BETWEEN 1 AND 12),
        birthday_day INT CHECK (birthday_day BETWEEN 1 AND 31),
        birthday_year_approximate INT,
        status TEXT NOT NULL DEFAULT 'active'
            CHECK (status IN ('active', 'archived', 'deceased')),
        deceased_date DATE,
        is_favorite BOOLEAN NOT NULL DEFAULT false,
        is_me BOOLEAN NOT NULL DEFAULT false,
        met_at_date DATE,
        met_at_location TEXT,
        met_through_contact_id UUID REFERENCES contacts(id) ON DELETE SET NULL,
        met_description TEXT,
        job_title TEXT,
        company TEXT,
        industry TEXT,
        work_notes TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        deleted_at TIMESTAMPTZ
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_contacts_user_deleted ON contacts (user_id, deleted_at)",
    "CREATE INDEX IF NOT EXISTS idx_contacts_name ON contacts (user_id, last_name, first_name)",
    """
    CREATE UNIQUE INDEX IF NOT EXISTS uq_contacts_is_me
        ON contacts (user_id) WHERE is_me AND deleted_at IS NULL
    """,
    """
    CREATE TABLE IF NOT EXISTS contact_methods (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        contact_id UUID NOT NULL REFERENCES contacts(id) ON DELETE CASCADE,
        type TEXT NOT NULL CHECK (type IN (
            'email', 'phone', 'whatsapp', 'telegram', 'signal', 'twitter',
            'instagram', 'facebook', 'linkedin', 'website', 'other'
        )),
        value TEXT NOT NULL,
        label TEXT,
        is_primary BOOLEAN NOT NULL DEFAULT false,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_contact_methods_contact ON contact_methods (contact_id)",
    """
    CREATE TABLE IF NOT EXISTS addresses (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        contact_id UUID NOT NULL REFERENCES contacts(id) ON DELETE CASCADE,
        label TEXT,
        street_line_1 TEXT,
        street_line_2 TEXT,
        city TEXT,
        state_province TEXT,
        postal_code TEXT,
        country TEXT,
        is_primary BOOLEAN NOT NULL DEFAULT false,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_addresses_contact ON addresses (contact_id)",
    """
    CREATE TABLE IF NOT EXISTS food_preferences (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        contact_id UUID NOT NULL UNIQUE REFERENCES contacts(id) ON DELETE CASCADE,
        dietary_restrictions TEXT[] NOT NULL DEFAULT '{}',
        allergies TEXT[] NOT NULL DEFAULT '{}',
        favorite_foods TEXT[] NOT NULL DEFAULT '{}',
        disliked_foods TEXT[] NOT NULL DEFAULT '{}',
        notes TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS custom_fields (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        contact_id UUID NOT NULL REFERENCES contacts(id) ON DELETE CASCADE,
        field_name TEXT NOT NULL,
        field_value TEXT NOT NULL,
        field_group TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_custom_fields_contact ON custom_fields (contact_id)",
    """
    CREATE TABLE IF NOT EXISTS relationships (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        contact_id UUID NOT NULL REFERENCES contacts(id) ON DELETE CASCADE,
        related_contact_id UUID NOT NULL REFERENCES contacts(id) ON DELETE CASCADE,
        relationship_type TEXT NOT NULL,
        notes TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        UNIQUE (contact_id, related_contact_id, relationship_type)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_relationships_contact ON relationships (contact_id)",
    "CREATE INDEX IF NOT EXISTS idx_relationships_related ON relationships (related_contact_id)",
    """
    CREATE TABLE IF NOT EXISTS notes (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        contact_id UUID NOT NULL REFERENCES contacts(id) ON DELETE CASCADE,
        title TEXT,
        body TEXT NOT NULL,
        is_pinned BOOLEAN NOT NULL DEFAULT false,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        deleted_at TIMESTAMPTZ
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_notes_contact ON notes (contact_id)",
    """
    CREATE TABLE IF NOT EXISTS tags (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id TEXT NOT NULL,
        name TEXT NOT NULL,
        color TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        UNIQUE (user_id, name)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS contact_tags (
        contact_id UUID NOT NULL REFERENCES contacts(id) ON DELETE CASCADE,
        tag_id UUID NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
        PRIMARY KEY (contact_id, tag_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS activities (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id TEXT NOT NULL,
        type TEXT NOT NULL CHECK (type IN (
            'phone_call', 'video_call', 'text_message', 'in_person',
            'email', 'activity', 'other'
        )),
        title TEXT,
        description TEXT,
        occurred_at TIMESTAMPTZ NOT NULL,
        duration_minutes INT,
        location TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        deleted_at TIMESTAMPTZ
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_activities_user ON activities (user_id, occurred_at)",
    """
    CREATE TABLE IF NOT EXISTS activity_participants (
        activity_id UUID NOT NULL REFERENCES activities(id) ON DELETE CASCADE,
        contact_id UUID NOT NULL REFERENCES contacts(id) ON DELETE CASCADE,
        PRIMARY KEY (activity_id, contact_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS life_events (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        contact_id UUID NOT NULL REFERENCES contacts(id) ON DELETE CASCADE,
        event_type TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT,
        occurred_at DATE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        deleted_at TIMESTAMPTZ
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_life_events_contact ON life_events (contact_id)",
    """
    CREATE TABLE IF NOT EXISTS life_event_contacts (
        life_event_id UUID NOT NULL REFERENCES life_events(id) ON DELETE CASCADE,
        contact_id UUID NOT NULL REFERENCES contacts(id) ON DELETE CASCADE,
        PRIMARY KEY (life_event_id, contact_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS reminders (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        contact_id UUID NOT NULL REFERENCES contacts(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        description TEXT,
        reminder_date DATE NOT NULL,
        frequency TEXT NOT NULL DEFAULT 'one_time'
            CHECK (frequency IN ('one_time', 'weekly', 'monthly', 'yearly')),
        status TEXT NOT NULL DEFAULT 'active'
            CHECK (status IN ('active', 'snoozed', 'completed', 'dismissed')),
        is_auto_generated BOOLEAN NOT NULL DEFAULT false,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        deleted_at TIMESTAMPTZ
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_reminders_contact ON reminders (contact_id)",
    """
    CREATE TABLE IF NOT EXISTS gifts (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        contact_id UUID NOT NULL REFERENCES contacts(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        description TEXT,
        url TEXT,
        estimated_cost NUMERIC(12, 2),
        currency TEXT DEFAULT 'USD',
        occasion TEXT,
        status TEXT NOT NULL DEFAULT 'idea'
            CHECK (status IN ('idea', 'planned', 'purchased', 'given', 'received')),
        direction TEXT NOT NULL DEFAULT 'giving'
            CHECK (direction IN ('giving', 'receiving')),
        date DATE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        deleted_at TIMESTAMPTZ
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_gifts_contact ON gifts (contact_id)",
    """
    CREATE TABLE IF NOT EXISTS debts (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        contact_id UUID NOT NULL REFERENCES contacts(id) ON DELETE CASCADE,
        amount NUMERIC(12, 2) NOT NULL,
        currency TEXT DEFAULT 'USD',
        direction TEXT NOT NULL CHECK (direction IN ('i_owe_them', 'they_owe_me')),
        reason TEXT,
        incurred_at DATE,
        settled_at DATE,
        status TEXT NOT NULL DEFAULT 'active' CHECK (status IN ('active', 'settled')),
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        deleted_at TIMESTAMPTZ
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_debts_contact ON debts (contact_id)",
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id TEXT NOT NULL,
        contact_id UUID REFERENCES contacts(id) ON DELETE SET NULL,
        title TEXT NOT NULL,
        description TEXT,
        due_date DATE,
        priority TEXT NOT NULL DEFAULT 'medium' CHECK (priority IN ('low', 'medium', 'high')),
        status TEXT NOT NULL DEFAULT 'pending'
            CHECK (status IN ('pending', 'in_progress', 'completed')),
        completed_at TIMESTAMPTZ,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        deleted_at TIMESTAMPTZ
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_tasks_contact ON tasks (contact_id)",
)
