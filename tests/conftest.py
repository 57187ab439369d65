"""Shared pytest fixtures for external plugin tests."""

import json
import shlex
import sys
from pathlib import Path
from typing import Any, Callable

import pytest
import yaml

from gateway.plugins.models import ServerDefinition


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[[Any], Path]:
    """Write a plugin servers config file and return its path."""

    def _write(entries: Any, name: str = "plugin_servers.yaml") -> Path:
        path = tmp_path / name
        path.write_text(yaml.safe_dump(entries), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def info_command(tmp_path: Path) -> Callable[..., str]:
    """Build a shell command that prints the given document as JSON."""
    counter = {"n": 0}

    def _make(document: Any, raw: bool = False) -> str:
        counter["n"] += 1
        path = tmp_path / f"info_{counter['n']}.json"
        path.write_text(document if raw else json.dumps(document), encoding="utf-8")
        return f"cat {shlex.quote(str(path))}"

    return _make


@pytest.fixture
def python_server(tmp_path: Path) -> Callable[..., ServerDefinition]:
    """Build a managed server definition running a Python snippet."""

    def _make(name: str, code: str, **kwargs) -> ServerDefinition:
        return ServerDefinition(
            name=name,
            socket=str(tmp_path / f"{name}.sock"),
            executable=sys.executable,
            args=["-c", code],
            **kwargs,
        )

    return _make

