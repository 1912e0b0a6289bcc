"""Contacts module — wires merge and duplicate tools into the FastMCP server.

The tool closures strip ``pool`` and ``user_id`` from the MCP-visible
signature and inject them from module state and the caller's access token at
call time.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from typing import Any

from fastmcp.server.dependencies import AccessToken, get_access_token
from pydantic import BaseModel, ConfigDict, Field

from mobcrm.core.logging import bind_user
from mobcrm.tools.duplicates import DEFAULT_DUPLICATE_LIMIT

logger = logging.getLogger(__name__)


class ContactsModuleConfig(BaseModel):
    """Configuration for the contacts module from ``[modules.contacts]``."""

    model_config = ConfigDict(extra="forbid")

    duplicate_limit: int = Field(default=DEFAULT_DUPLICATE_LIMIT, ge=1, le=200)


def _normalize_actor_field(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    normalized = value.strip()
    return normalized or None


def user_id_from_access_token(access_token: AccessToken | None) -> str | None:
    """Resolve the acting user from a FastMCP access token, if present."""
    if access_token is None:
        return None
    raw_claims = getattr(access_token, "claims", None)
    claims = raw_claims if isinstance(raw_claims, Mapping) else {}
    return (
        _normalize_actor_field(getattr(access_token, "resource_owner", None))
        or _normalize_actor_field(claims.get("sub"))
        or _normalize_actor_field(access_token.client_id)
    )


class ContactsModule:
    """Exposes ``contact_merge`` and ``contact_find_duplicates`` as MCP tools."""

    def __init__(
        self,
        config: ContactsModuleConfig | None = None,
        default_user_id: str | None = None,
    ) -> None:
        self._config = config or ContactsModuleConfig()
        self._default_user_id = default_user_id
        self._db: Any = None

    @property
    def name(self) -> str:
        return "contacts"

    @property
    def config_schema(self) -> type[BaseModel]:
        return ContactsModuleConfig

    @property
    def config(self) -> ContactsModuleConfig:
        return self._config

    async def on_startup(self, db: Any) -> None:
        """Store the Database reference for later pool access."""
        self._db = db

    async def on_shutdown(self) -> None:
        self._db = None

    def _get_pool(self):
        """Return the asyncpg pool, raising if not initialised."""
        if self._db is None:
            raise RuntimeError("ContactsModule not initialised -- no DB available")
        return self._db.require_pool()

    def _get_user_id(self) -> str:
        """Acting user: access token owner first, then the configured default."""
        try:
            token = get_access_token()
        except RuntimeError:
            token = None
        user_id = user_id_from_access_token(token) or self._default_user_id
        if user_id is None:
            raise PermissionError("No authenticated user and no default_user_id configured")
        bind_user(user_id)
        return user_id

    def register_tools(self, mcp: Any, db: Any) -> None:
        """Register the contacts MCP tools."""
        self._db = db
        register_tools(mcp, self)


def register_tools(mcp: Any, module: ContactsModule) -> None:
    """Register contacts MCP tools as closures over *module*."""

    # Deferred to avoid import-time side effects
    from mobcrm.tools import duplicates as _dups
    from mobcrm.tools import merge as _merge

    @mcp.tool()
    async def contact_merge(
        primary_contact_id: uuid.UUID,
        secondary_contact_id: uuid.UUID,
    ) -> dict[str, Any]:
        """Merge two contacts into one.

        All child records (notes, activities, tags, relationships, etc.) from
        the secondary contact are moved to the primary. Empty fields on the
        primary are filled from the secondary; existing values are kept. The
        secondary contact is soft-deleted after the merge.
        """
        return await _merge.contact_merge(
            module._get_pool(),
            module._get_user_id(),
            primary_contact_id,
            secondary_contact_id,
        )

    @mcp.tool()
    async def contact_find_duplicates() -> dict[str, Any]:
        """Scan for potential duplicate contacts using name, email, and phone
        matching. Returns pairs of contacts that may be duplicates with the
        reason for the match."""
        return await _dups.contact_find_duplicates(
            module._get_pool(),
            module._get_user_id(),
            limit=module.config.duplicate_limit,
        )
