"""Dependency providers for API routes."""

from fastapi import HTTPException, Request

from gateway.plugins.manager import ExternalPluginManager


def get_plugin_manager(request: Request) -> ExternalPluginManager:
    """Get the worker's external plugin manager (created at application startup)."""
    manager = getattr(request.app.state, "external_plugins", None)
    if manager is None:
        raise HTTPException(status_code=503, detail="External plugins are not initialized")
    return manager
