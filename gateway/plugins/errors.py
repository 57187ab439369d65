"""External plugin server error types."""

from typing import Optional


class ExternalPluginError(Exception):
    """Base error for external plugin servers."""


class ConfigError(ExternalPluginError):
    """Raised when the plugin servers configuration is missing, unreadable or malformed."""


class DiscoveryError(ExternalPluginError):
    """Raised when a server's info command fails or returns an unusable document."""

    def __init__(self, server_name: str, message: str):
        super().__init__(f"loading plugins info from [{server_name}]: {message}")
        self.server_name = server_name


class DuplicatePluginError(ExternalPluginError):
    """Raised (and logged) when two servers declare the same plugin name."""

    def __init__(self, plugin_name: str, registered_by: str, rejected: str):
        super().__init__(
            f"Duplicate plugin name [{plugin_name}] by {registered_by} and {rejected}"
        )
        self.plugin_name = plugin_name
        self.registered_by = registered_by
        self.rejected = rejected


class SpawnError(ExternalPluginError):
    """Raised when a plugin server process cannot be started."""

    def __init__(self, server_name: str, cause: Exception):
        super().__init__(f"failed to start external pluginserver '{server_name}': {cause}")
        self.server_name = server_name
        self.cause = cause


class ChildExitedError(ExternalPluginError):
    """Describes how a managed plugin server process terminated."""

    def __init__(self, server_name: str, returncode: Optional[int], reason: str):
        super().__init__(f"external pluginserver '{server_name}' terminated: {reason}")
        self.server_name = server_name
        self.returncode = returncode
        self.reason = reason
