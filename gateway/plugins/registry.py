"""Plugin registry - name-indexed table of all discovered external plugins."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from gateway.plugins.config import ServerDefinitionStore
from gateway.plugins.discovery import DiscoveryClient
from gateway.plugins.errors import ConfigError, DiscoveryError, DuplicatePluginError
from gateway.plugins.models import PluginInfo, ServerDefinition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistryEntry:
    """A discovered plugin together with the server that provides it."""

    info: PluginInfo
    server: ServerDefinition

    @property
    def name(self) -> str:
        return self.info.name

    @property
    def priority(self) -> int:
        return self.info.priority

    @property
    def version(self) -> str:
        return self.info.version

    @property
    def schema(self) -> Any:
        return self.info.plugin_schema

    def to_dict(self) -> dict:
        """Serialize entry to dict for API responses."""
        return {
            "name": self.name,
            "priority": self.priority,
            "version": self.version,
            "schema": self.schema,
            "server": self.server.name,
            "socket": self.server.socket,
        }


class PluginRegistry:
    """Registry of external plugins across all plugin servers.

    Built once, on first access, by running discovery against every server
    definition; there is no invalidation (rediscovery needs a restart).
    """

    def __init__(self, store: ServerDefinitionStore, discovery: DiscoveryClient):
        self.store = store
        self.discovery = discovery
        self._plugins: Optional[Dict[str, RegistryEntry]] = None

    @property
    def built(self) -> bool:
        return self._plugins is not None

    def build(self) -> Dict[str, RegistryEntry]:
        """Discover every server's plugins (first call only) and return the table."""
        if self._plugins is not None:
            return self._plugins

        self._plugins = {}
        try:
            definitions = self.store.definitions()
        except ConfigError as e:
            logger.error(f"External plugins disabled: {e}")
            return self._plugins

        for definition, result in self.discovery.discover_all(definitions):
            if isinstance(result, DiscoveryError):
                logger.error(str(result))
                continue
            for info in result:
                self.register(definition, info)

        logger.info(
            f"Registered {len(self._plugins)} external plugin(s) "
            f"from {len(definitions)} server(s)"
        )
        return self._plugins

    def register(self, server: ServerDefinition, info: PluginInfo) -> bool:
        """Add a plugin; the first server to register a name keeps it.

        Returns:
            False if the name was already registered
        """
        plugins = self.build()
        existing = plugins.get(info.name)
        if existing is not None:
            logger.error(str(DuplicatePluginError(info.name, existing.server.name, server.name)))
            return False

        plugins[info.name] = RegistryEntry(info=info, server=server)
        logger.debug(f"Registered external plugin: {info.name} ({server.name})")
        return True

    def load_plugin(self, name: str) -> Optional[RegistryEntry]:
        """Get a plugin by name, building the registry if needed."""
        return self.build().get(name)

    def load_schema(self, name: str) -> Any:
        """Get the configuration schema of a plugin, or None if unknown."""
        entry = self.load_plugin(name)
        return entry.schema if entry else None

    def get_all(self) -> List[RegistryEntry]:
        """Get all registered plugins in registration order."""
        return list(self.build().values())

    def names(self) -> List[str]:
        return list(self.build().keys())

    def has(self, name: str) -> bool:
        """Check if a plugin is registered."""
        return name in self.build()

    def count(self) -> int:
        """Get total number of registered plugins."""
        return len(self.build())
