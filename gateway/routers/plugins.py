"""External plugin REST API endpoints (read-only diagnostics)."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from gateway.dependencies import get_plugin_manager
from gateway.plugins.manager import ExternalPluginManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/external-plugins", tags=["external-plugins"])


@router.get("/")
async def list_plugins(manager: ExternalPluginManager = Depends(get_plugin_manager)):
    """List all discovered external plugins."""
    return {"plugins": manager.list_plugins()}


@router.get("/servers")
async def list_servers(manager: ExternalPluginManager = Depends(get_plugin_manager)):
    """List configured plugin servers and their process state."""
    return {"servers": manager.list_servers()}


@router.get("/{name}")
async def get_plugin(name: str, manager: ExternalPluginManager = Depends(get_plugin_manager)):
    """Get detailed information about a specific plugin."""
    info = manager.get_plugin_info(name)
    if not info:
        raise HTTPException(status_code=404, detail=f"Plugin '{name}' not found")
    return info


@router.get("/{name}/schema")
async def get_plugin_schema(name: str, manager: ExternalPluginManager = Depends(get_plugin_manager)):
    """Get the configuration schema declared by a plugin."""
    entry = manager.load_plugin(name)
    if not entry:
        raise HTTPException(status_code=404, detail=f"Plugin '{name}' not found")
    return {"name": name, "schema": entry.schema}
