"""External plugin manager - top-level orchestrator for external plugin servers."""

import logging
from pathlib import Path
from typing import Any, List, Optional

from gateway.plugins.config import ServerDefinitionStore
from gateway.plugins.discovery import DiscoveryClient
from gateway.plugins.errors import ConfigError
from gateway.plugins.leadership import LeadershipGate
from gateway.plugins.registry import PluginRegistry, RegistryEntry
from gateway.plugins.supervisor import ProcessSupervisor, TransitionCallback

logger = logging.getLogger(__name__)


class ExternalPluginManager:
    """Coordinates discovery, the plugin registry and plugin server supervision.

    One instance per gateway worker. The registry is built by every worker
    that needs it; the supervisor only runs on the leader worker.
    """

    def __init__(
        self,
        config_file: Optional[Path],
        worker_id: int = 0,
        leader_id: int = 0,
        info_timeout: Optional[float] = None,
        respawn_delay: float = 0.0,
        on_transition: Optional[TransitionCallback] = None,
    ):
        self.store = ServerDefinitionStore(config_file)
        self.discovery = DiscoveryClient(timeout=info_timeout)
        self.registry = PluginRegistry(self.store, self.discovery)
        self.gate = LeadershipGate(worker_id, leader_id)
        self.supervisor = ProcessSupervisor(respawn_delay=respawn_delay, on_transition=on_transition)

    def discover(self) -> int:
        """Discovery phase: build the plugin registry.

        Blocks on the servers' info commands, so run it before serving requests.

        Returns:
            Number of registered plugins
        """
        return len(self.registry.build())

    def load_plugin(self, name: str) -> Optional[RegistryEntry]:
        return self.registry.load_plugin(name)

    def load_schema(self, name: str) -> Any:
        return self.registry.load_schema(name)

    async def manage_servers(self) -> bool:
        """Start supervising plugin servers if this worker is the leader.

        Returns:
            True if this worker supervises the plugin servers
        """
        if not self.gate.is_supervisor_eligible():
            return False

        if not self.store.configured:
            logger.info("no external plugins")
            return False

        try:
            definitions = self.store.definitions()
            self.supervisor.start(definitions)
        except ConfigError as e:
            logger.error(f"External plugin servers not managed: {e}")
            return False
        return True

    async def shutdown(self, terminate: bool = False, grace_period: float = 5.0) -> None:
        """Stop respawning plugin servers."""
        if not self.supervisor.started:
            return
        await self.supervisor.stop(terminate=terminate, grace_period=grace_period)
        logger.info("External plugin servers stopped")

    def list_plugins(self) -> List[dict]:
        """List all registered plugins as dicts."""
        return [entry.to_dict() for entry in self.registry.get_all()]

    def get_plugin_info(self, name: str) -> Optional[dict]:
        """Get plugin information as dict."""
        entry = self.registry.load_plugin(name)
        return entry.to_dict() if entry else None

    def list_servers(self) -> List[dict]:
        """List configured plugin servers with their supervision state."""
        try:
            definitions = self.store.definitions()
        except ConfigError as e:
            logger.error(str(e))
            return []

        servers = []
        for definition in definitions:
            info = definition.to_dict()
            managed = self.supervisor.processes.get(definition.name)
            info["process"] = managed.to_dict() if managed else None
            servers.append(info)
        return servers
