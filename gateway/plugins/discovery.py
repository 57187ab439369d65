"""Plugin discovery - asks each plugin server which plugins it provides.

The gateway needs every plugin schema at initialization time, before the
event loop serves requests, so discovery shells out to the server's
`info_command` and blocks until it finishes. The command prints a JSON (or
YAML) list describing all plugins available through that server:

    [{"name": "...", "priority": 1000, "version": "1.0", "schema": {...}}, ...]

Never call this from a request handler.
"""

import json
import logging
import subprocess
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple, Union

import yaml
from pydantic import ValidationError

from gateway.plugins.errors import DiscoveryError
from gateway.plugins.models import PluginInfo, ServerDefinition

logger = logging.getLogger(__name__)

DiscoveryResult = Tuple[ServerDefinition, Union[List[PluginInfo], DiscoveryError]]


class DiscoveryClient:
    """Runs info commands and parses their plugin info lists."""

    def __init__(self, timeout: Optional[float] = None, max_workers: int = 4):
        """
        Args:
            timeout: Seconds to wait for one info command (None or 0 waits forever)
            max_workers: Info commands run concurrently by discover_all()
        """
        self.timeout = timeout or None
        self.max_workers = max_workers

    def discover(self, definition: ServerDefinition) -> List[PluginInfo]:
        """Run the server's info command and return the plugins it reports.

        Raises:
            DiscoveryError: the command failed or printed an invalid document
        """
        if not definition.info_command:
            logger.info(f"No info query for {definition.name}")
            return []

        output = self._run(definition)
        return parse_plugin_infos(definition, output)

    def discover_all(self, definitions: Sequence[ServerDefinition]) -> List[DiscoveryResult]:
        """Discover plugins for several servers at once.

        Definitions with neither socket nor executable are left out.

        Returns:
            (definition, plugins or DiscoveryError) pairs in definition order
        """
        eligible = []
        for definition in definitions:
            if definition.is_discoverable:
                eligible.append(definition)
            else:
                logger.info(f"Server {definition.name} has neither socket nor executable, not queried")
        if not eligible:
            return []

        workers = max(1, min(self.max_workers, len(eligible)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="plugin-discovery") as pool:
            return list(zip(eligible, pool.map(self._discover_safe, eligible)))

    def _discover_safe(self, definition: ServerDefinition) -> Union[List[PluginInfo], DiscoveryError]:
        try:
            return self.discover(definition)
        except DiscoveryError as e:
            return e
        except Exception as e:
            logger.exception(f"Unexpected error discovering plugins of {definition.name}")
            return DiscoveryError(definition.name, f"unexpected error: {e}")

    def _run(self, definition: ServerDefinition) -> str:
        logger.debug(f"Running info command for {definition.name}: {definition.info_command}")
        try:
            result = subprocess.run(
                definition.info_command,
                shell=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            raise DiscoveryError(
                definition.name,
                f"info command timed out after {self.timeout}s: {definition.info_command}",
            )
        except (OSError, ValueError) as e:
            # ValueError: the command contains a NUL byte
            raise DiscoveryError(definition.name, f"cannot run {definition.info_command}: {e}") from e

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            logger.warning(
                f"Info command for {definition.name} exited with status {result.returncode}: "
                f"{definition.info_command}\n{stderr}"
            )
        return result.stdout.decode("utf-8", errors="replace")


def parse_plugin_infos(definition: ServerDefinition, output: str) -> List[PluginInfo]:
    """Parse an info command's output into PluginInfo records."""
    try:
        infos = json.loads(output)
    except json.JSONDecodeError:
        # Not JSON, try YAML
        try:
            infos = yaml.safe_load(output)
        except yaml.YAMLError as e:
            raise DiscoveryError(
                definition.name,
                f"Not a plugin info table: \n{definition.info_command}\n{output}\n({e})",
            ) from e

    if not isinstance(infos, list):
        raise DiscoveryError(
            definition.name,
            f"Not a plugin info table: \n{definition.info_command}\n{output}",
        )

    plugins = []
    for position, record in enumerate(infos, start=1):
        if not isinstance(record, dict):
            raise DiscoveryError(
                definition.name,
                f"plugin info #{position} is not a record: {record!r}",
            )
        if not record.get("name"):
            raise DiscoveryError(definition.name, f"plugin info #{position} has no name")
        try:
            plugins.append(PluginInfo.model_validate(record))
        except ValidationError as e:
            raise DiscoveryError(
                definition.name,
                f"invalid plugin info '{record.get('name')}': {e}",
            ) from e

    logger.info(f"Server {definition.name} provides {len(plugins)} plugin(s)")
    return plugins
