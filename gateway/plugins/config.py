"""Plugin servers configuration - loads the external plugin servers definition file."""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yaml
from pydantic import ValidationError

from gateway.plugins.errors import ConfigError
from gateway.plugins.models import ServerDefinition

logger = logging.getLogger(__name__)


class ServerDefinitionStore:
    """Ordered list of plugin server definitions from the config file.

    Config format (YAML or JSON):

        - name: go-plugins
          socket: /usr/local/kong/go_pluginserver.sock
          exec: /usr/local/bin/go-pluginserver
          args: ["-kong-prefix", "/usr/local/kong"]
          env:
            LOG_LEVEL: info
          info_cmd: /usr/local/bin/go-pluginserver -dump-all-plugins

    `exec`, `env` and `info_cmd` may also be spelled `executable`,
    `environment` and `info_command`. Unnamed servers are called
    "plugin server #<n>" after their 1-based position.
    """

    def __init__(self, config_file: Optional[Path]):
        self.config_file = config_file
        self._definitions: Optional[List[ServerDefinition]] = None

    @property
    def configured(self) -> bool:
        return self.config_file is not None

    def definitions(self) -> List[ServerDefinition]:
        """Get the server definitions, loading the config file on first use.

        Raises:
            ConfigError: the file is missing, unreadable or malformed
        """
        if self._definitions is None:
            if self.config_file is None:
                logger.info("no external plugins")
                self._definitions = []
            else:
                self._definitions = self._load()
        return list(self._definitions)

    def _load(self) -> List[ServerDefinition]:
        try:
            content = Path(self.config_file).read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read plugin servers config {self.config_file}: {e}") from e

        try:
            conf = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid plugin servers config {self.config_file}: {e}") from e

        definitions = parse_definitions(conf, source=str(self.config_file))
        logger.info(f"Loaded {len(definitions)} plugin server definition(s) from {self.config_file}")
        return definitions


def parse_definitions(conf: Any, source: str = "<config>") -> List[ServerDefinition]:
    """Validate a decoded config document into server definitions.

    Args:
        conf: Decoded document, expected to be a list of mappings
        source: Label used in error messages

    Returns:
        Definitions in declaration order, with names synthesized
    """
    if conf is None:
        conf = []
    if not isinstance(conf, list):
        raise ConfigError(f"Plugin servers config {source} is not a list (got {type(conf).__name__})")

    definitions = []
    for index, entry in enumerate(conf, start=1):
        if not isinstance(entry, dict):
            raise ConfigError(
                f"Plugin server entry #{index} in {source} is not a mapping (got {type(entry).__name__})"
            )
        data: Dict[str, Any] = dict(entry)
        if not data.get("name"):
            data["name"] = f"plugin server #{index}"
        try:
            definitions.append(ServerDefinition.model_validate(data))
        except ValidationError as e:
            raise ConfigError(f"Invalid plugin server entry #{index} in {source}: {e}") from e

    return definitions


def check_unique_names(definitions: Iterable[ServerDefinition]) -> None:
    """Raise ConfigError if two definitions share a name."""
    seen = set()
    for definition in definitions:
        if definition.name in seen:
            raise ConfigError(f"Duplicate plugin server name: {definition.name}")
        seen.add(definition.name)
