"""Duplicate detection — propose candidate duplicate contact pairs.

Read-only and advisory: nothing here mutates contacts. A pair is reported
once per distinct reason, so the same two contacts can show up several times
(e.g. same name *and* same email).
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from collections.abc import Iterable, Mapping
from itertools import combinations
from typing import Any, TypedDict

import asyncpg

from mobcrm.core.logging import contact_log_context
from mobcrm.tools.contacts import compose_name

logger = logging.getLogger(__name__)

DEFAULT_DUPLICATE_LIMIT = 20

_NON_DIGITS = re.compile(r"\D")


class DuplicateMatch(TypedDict):
    contact_id_1: str
    contact_id_2: str
    contact_name_1: str
    contact_name_2: str
    reason: str


def normalize_name(first_name: str | None, last_name: str | None) -> tuple[str, str] | None:
    """Comparison key for the same-name rule, or None when it cannot apply.

    Both parts are trimmed and lowercased; a missing last name disqualifies
    the contact so lone common first names do not pair up.
    """
    first = (first_name or "").strip().lower()
    last = (last_name or "").strip().lower()
    if not first or not last:
        return None
    return first, last


def normalize_email(value: str | None) -> str:
    return (value or "").strip().lower()


def normalize_phone(value: str | None) -> str:
    """Digits only, so ``+1-555-0123`` and ``15550123`` compare equal."""
    return _NON_DIGITS.sub("", value or "")


def find_duplicate_matches(
    contacts: Iterable[Mapping[str, Any]],
    contact_methods: Iterable[Mapping[str, Any]] = (),
) -> list[DuplicateMatch]:
    """Pair up contacts that look like duplicates.

    *contacts* carry ``id``, ``first_name`` and ``last_name``;
    *contact_methods* carry ``contact_id``, ``type`` and ``value``. Methods
    whose contact is not in *contacts* are ignored. Returns every match in a
    stable order: by first contact name, second contact name, ids, reason.
    """
    names: dict[str, str] = {}
    by_name: dict[tuple[str, str], list[str]] = defaultdict(list)
    for contact in contacts:
        cid = str(contact["id"])
        names[cid] = compose_name(contact.get("first_name"), contact.get("last_name"))
        key = normalize_name(contact.get("first_name"), contact.get("last_name"))
        if key is not None:
            by_name[key].append(cid)

    # normalized value -> {contact_id: raw value as first seen on that contact}
    by_email: dict[str, dict[str, str]] = defaultdict(dict)
    by_phone: dict[str, dict[str, str]] = defaultdict(dict)
    for method in contact_methods:
        cid = str(method["contact_id"])
        if cid not in names:
            continue
        raw = method.get("value") or ""
        if method.get("type") == "email":
            normalized = normalize_email(raw)
            if normalized:
                by_email[normalized].setdefault(cid, raw)
        elif method.get("type") == "phone":
            normalized = normalize_phone(raw)
            if normalized:
                by_phone[normalized].setdefault(cid, raw)

    matches: list[DuplicateMatch] = []
    seen: set[tuple[str, str, str]] = set()

    def _add(id_a: str, id_b: str, reason: str, dedup_key: str) -> None:
        id_1, id_2 = sorted((id_a, id_b))
        key = (id_1, id_2, dedup_key)
        if key in seen:
            return
        seen.add(key)
        matches.append(
            DuplicateMatch(
                contact_id_1=id_1,
                contact_id_2=id_2,
                contact_name_1=names[id_1],
                contact_name_2=names[id_2],
                reason=reason,
            )
        )

    for ids in by_name.values():
        for id_a, id_b in combinations(sorted(set(ids)), 2):
            _add(id_a, id_b, "same name", "name")

    for label, groups in (("email", by_email), ("phone", by_phone)):
        for normalized, raw_by_contact in groups.items():
            for id_a, id_b in combinations(sorted(raw_by_contact), 2):
                _add(
                    id_a,
                    id_b,
                    f"same {label}: {raw_by_contact[id_a]}",
                    f"{label}:{normalized}",
                )

    matches.sort(
        key=lambda m: (
            m["contact_name_1"].lower(),
            m["contact_name_2"].lower(),
            m["contact_id_1"],
            m["contact_id_2"],
            m["reason"],
        )
    )
    return matches


async def contact_find_duplicates(
    pool: asyncpg.Pool,
    user_id: str,
    limit: int = DEFAULT_DUPLICATE_LIMIT,
) -> dict[str, Any]:
    """Scan a user's active contacts for likely duplicates.

    Returns ``{"data": [...], "total": n}`` where ``total`` counts every match
    and ``data`` holds at most ``limit`` of them.
    """
    with contact_log_context("contact_find_duplicates"):
        contacts = await pool.fetch(
            """
            SELECT id, first_name, last_name
            FROM contacts
            WHERE user_id = $1 AND deleted_at IS NULL
            """,
            user_id,
        )
        methods = await pool.fetch(
            """
            SELECT cm.contact_id, cm.type, cm.value
            FROM contact_methods cm
            JOIN contacts c ON c.id = cm.contact_id
            WHERE c.user_id = $1
              AND c.deleted_at IS NULL
              AND cm.type IN ('email', 'phone')
            ORDER BY cm.created_at, cm.id
            """,
            user_id,
        )
        matches = find_duplicate_matches(
            [dict(row) for row in contacts],
            [dict(row) for row in methods],
        )
        logger.info(
            "Found %d duplicate candidates among %d contacts", len(matches), len(contacts)
        )
    return {"data": matches[:limit], "total": len(matches)}
