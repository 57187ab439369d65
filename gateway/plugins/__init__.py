"""External plugin servers: discovery, registry and process supervision.

Imports are lazy so that lightweight components (config, discovery) can be
used by the admin CLI without importing the asyncio supervisor.
"""

__all__ = [
    "ServerDefinition",
    "PluginInfo",
    "ServerDefinitionStore",
    "DiscoveryClient",
    "PluginRegistry",
    "RegistryEntry",
    "ProcessSupervisor",
    "ProcessState",
    "ManagedProcess",
    "LeadershipGate",
    "LogForwarder",
    "ExternalPluginManager",
]


def __getattr__(name):
    if name in ("ServerDefinition", "PluginInfo"):
        from gateway.plugins import models
        return getattr(models, name)
    if name == "ServerDefinitionStore":
        from gateway.plugins.config import ServerDefinitionStore
        return ServerDefinitionStore
    if name == "DiscoveryClient":
        from gateway.plugins.discovery import DiscoveryClient
        return DiscoveryClient
    if name in ("PluginRegistry", "RegistryEntry"):
        from gateway.plugins import registry
        return getattr(registry, name)
    if name in ("ProcessSupervisor", "ProcessState", "ManagedProcess"):
        from gateway.plugins import supervisor
        return getattr(supervisor, name)
    if name == "LeadershipGate":
        from gateway.plugins.leadership import LeadershipGate
        return LeadershipGate
    if name == "LogForwarder":
        from gateway.plugins.log_forwarder import LogForwarder
        return LogForwarder
    if name == "ExternalPluginManager":
        from gateway.plugins.manager import ExternalPluginManager
        return ExternalPluginManager
    raise AttributeError(f"module 'gateway.plugins' has no attribute {name!r}")
