"""Global constants for the gateway's external plugin servers."""

import os
from pathlib import Path
from typing import Optional

GATEWAY_ROOT = Path(__file__).resolve().parent.parent


def _optional_path(env_key: str) -> Optional[Path]:
    value = os.getenv(env_key, "").strip()
    if not value:
        return None
    path = Path(value)
    # Relative paths are resolved against the project root
    return path if path.is_absolute() else (GATEWAY_ROOT / path).resolve()


# Path of the external plugin servers definition file (YAML or JSON list).
# Unset disables both discovery and supervision.
EXTERNAL_PLUGINS_CONFIG = _optional_path("EXTERNAL_PLUGINS_CONFIG")

# Ordinal of this worker in the gateway's worker pool, and the ordinal that owns supervision
WORKER_ID = int(os.getenv("GATEWAY_WORKER_ID", "0"))
SUPERVISOR_WORKER_ID = int(os.getenv("EXTERNAL_PLUGINS_LEADER_ID", "0"))

# Timeout for a single discovery (info) command, in seconds. 0 waits forever.
INFO_COMMAND_TIMEOUT = float(os.getenv("EXTERNAL_PLUGINS_INFO_TIMEOUT", "30"))

# Fixed pause between a plugin server exit and its respawn (seconds)
RESPAWN_DELAY = float(os.getenv("EXTERNAL_PLUGINS_RESPAWN_DELAY", "0"))

# Grace period before SIGKILL when terminating plugin servers on shutdown (seconds)
STOP_TIMEOUT = float(os.getenv("EXTERNAL_PLUGINS_STOP_TIMEOUT", "5"))
