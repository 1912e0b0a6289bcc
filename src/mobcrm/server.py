"""FastMCP server assembly for the CRM."""

from __future__ import annotations

import logging

import uvicorn
from fastmcp import FastMCP
from pydantic import ValidationError

from mobcrm.config import ConfigError, CrmConfig
from mobcrm.db import Database
from mobcrm.module import ContactsModule, ContactsModuleConfig

logger = logging.getLogger(__name__)


def build_contacts_module(config: CrmConfig) -> ContactsModule:
    """Validate ``[modules.contacts]`` and build the module."""
    raw = config.modules.get("contacts", {})
    try:
        module_config = ContactsModuleConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid [modules.contacts] config: {exc}") from exc
    return ContactsModule(module_config, default_user_id=config.default_user_id)


def create_mcp(config: CrmConfig, db: Database) -> tuple[FastMCP, ContactsModule]:
    """Create the FastMCP server and register the contacts tools on it."""
    module = build_contacts_module(config)
    mcp = FastMCP(config.name)
    module.register_tools(mcp, db)
    return mcp, module


async def serve(config: CrmConfig, host: str = "0.0.0.0") -> None:
    """Connect the pool and serve the MCP tools over SSE until stopped."""
    db = Database.from_env(config.db.name, schema=config.db.schema)
    await db.connect()
    mcp, module = create_mcp(config, db)
    await module.on_startup(db)

    app = mcp.http_app(transport="sse")
    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=host,
            port=config.port,
            log_level="info",
            timeout_graceful_shutdown=0,
        )
    )
    logger.info("Serving %s on %s:%d", config.name, host, config.port)
    try:
        await server.serve()
    finally:
        await module.on_shutdown()
        await db.close()
