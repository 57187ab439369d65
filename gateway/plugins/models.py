"""Plugin server definition and plugin info models."""

from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class ServerDefinition(BaseModel):
    """One external plugin server, as declared in the plugin servers config file."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(..., min_length=1, description="Unique server name")
    socket: Optional[str] = Field(
        default=None,
        description="Unix domain socket path used for RPC; servers without one are ignored",
    )
    executable: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("executable", "exec"),
        description="Server executable; if omitted the process is managed externally",
    )
    args: List[str] = Field(default_factory=list, description="Command line arguments")
    environment: Optional[Dict[str, str]] = Field(
        default=None,
        validation_alias=AliasChoices("environment", "env"),
        description="Environment of the server process",
    )
    inherit_environment: bool = Field(
        default=False,
        description="Merge `environment` over the gateway's environment instead of replacing it",
    )
    info_command: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("info_command", "info_cmd"),
        description="Shell command printing the plugin info list",
    )

    @field_validator("args", mode="before")
    @classmethod
    def _stringify_args(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            return [str(v) for v in value]
        return value

    @field_validator("environment", mode="before")
    @classmethod
    def _stringify_environment(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(k): "" if v is None else str(v) for k, v in value.items()}
        return value

    @property
    def is_managed(self) -> bool:
        """True when the gateway spawns and supervises this server."""
        return bool(self.socket and self.executable)

    @property
    def is_discoverable(self) -> bool:
        """Servers with neither socket nor executable are never queried."""
        return bool(self.socket or self.executable)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "socket": self.socket,
            "executable": self.executable,
            "args": list(self.args),
            "info_command": self.info_command,
            "managed": self.is_managed,
        }


class PluginInfo(BaseModel):
    """One plugin record returned by a server's info command."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    name: str = Field(..., min_length=1, description="Globally unique plugin name")
    priority: int = Field(default=0, description="Phase ordering priority")
    version: str = Field(default="", description="Plugin version")
    plugin_schema: Any = Field(
        default=None,
        alias="schema",
        description="Plugin configuration schema, passed through untouched",
    )

    @field_validator("version", mode="before")
    @classmethod
    def _stringify_version(cls, value: Any) -> Any:
        # YAML reads `version: 1.0` as a float
        if value is None:
            return ""
        if isinstance(value, (int, float)):
            return str(value)
        return value
