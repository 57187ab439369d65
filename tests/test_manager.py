"""Tests for the external plugin manager."""

import logging
import sys

import pytest

from gateway.plugins.manager import ExternalPluginManager
from gateway.plugins.supervisor import ProcessState

from helpers import plugin_doc, wait_until


@pytest.fixture
def config_file(write_config, info_command, tmp_path):
    return write_config([
        {
            "name": "go-plugins",
            "socket": str(tmp_path / "go.sock"),
            "exec": sys.executable,
            "args": ["-c", "import time; time.sleep(60)"],
            "info_cmd": info_command(plugin_doc("echo", "rate-limit")),
        },
        {
            "name": "external",
            "socket": str(tmp_path / "external.sock"),
            "info_cmd": info_command(plugin_doc("rate-limit", "cors")),
        },
        {"name": "passive"},
    ])


class TestExternalPluginManager:
    """Tests for ExternalPluginManager."""

    def test_discover_builds_registry(self, config_file, caplog):
        manager = ExternalPluginManager(config_file)

        with caplog.at_level(logging.ERROR):
            assert manager.discover() == 3

        assert manager.load_plugin("rate-limit").server.name == "go-plugins"
        assert manager.load_plugin("cors").server.name == "external"
        assert manager.load_schema("echo") == {"fields": []}
        assert "Duplicate plugin name [rate-limit] by go-plugins and external" in caplog.text

    def test_list_plugins(self, config_file):
        manager = ExternalPluginManager(config_file)

        names = [p["name"] for p in manager.list_plugins()]

        assert names == ["echo", "rate-limit", "cors"]
        assert manager.get_plugin_info("cors")["server"] == "external"
        assert manager.get_plugin_info("nope") is None

    def test_no_config_disables_everything(self):
        manager = ExternalPluginManager(None)

        assert manager.discover() == 0
        assert manager.list_servers() == []

    @pytest.mark.asyncio
    async def test_no_config_supervises_nothing(self):
        manager = ExternalPluginManager(None)

        assert await manager.manage_servers() is False
        assert manager.supervisor.processes == {}
        await manager.shutdown()

    @pytest.mark.asyncio
    async def test_leader_supervises_managed_servers(self, config_file):
        states = []
        manager = ExternalPluginManager(
            config_file,
            worker_id=0,
            on_transition=lambda name, state: states.append((name, state)),
        )

        assert await manager.manage_servers() is True
        await wait_until(lambda: ("go-plugins", ProcessState.RUNNING) in states)

        assert list(manager.supervisor.processes) == ["go-plugins"]
        servers = {s["name"]: s for s in manager.list_servers()}
        assert servers["go-plugins"]["process"]["state"] == "running"
        assert servers["go-plugins"]["process"]["pid"] is not None
        assert servers["external"]["process"] is None
        assert servers["passive"]["managed"] is False

        await manager.shutdown(terminate=True, grace_period=5)
        assert manager.supervisor.processes["go-plugins"].state == ProcessState.STOPPED

    @pytest.mark.asyncio
    async def test_non_leader_does_not_supervise(self, config_file):
        manager = ExternalPluginManager(config_file, worker_id=1)

        assert await manager.manage_servers() is False
        assert manager.supervisor.processes == {}
        assert manager.supervisor.started is False

    @pytest.mark.asyncio
    async def test_duplicate_server_names_disable_supervision(self, write_config, caplog):
        config = write_config([
            {"name": "dup", "socket": "/tmp/a.sock", "exec": sys.executable},
            {"name": "dup", "socket": "/tmp/b.sock", "exec": sys.executable},
        ])
        manager = ExternalPluginManager(config)

        with caplog.at_level(logging.ERROR):
            assert await manager.manage_servers() is False

        assert "Duplicate plugin server name: dup" in caplog.text
        assert manager.supervisor.processes == {}

    @pytest.mark.asyncio
    async def test_manage_servers_twice_raises(self, write_config):
        manager = ExternalPluginManager(write_config([]))

        assert await manager.manage_servers() is True
        with pytest.raises(RuntimeError):
            await manager.manage_servers()

    @pytest.mark.asyncio
    async def test_broken_config_is_not_fatal(self, tmp_path, caplog):
        manager = ExternalPluginManager(tmp_path / "missing.yaml")

        with caplog.at_level(logging.ERROR):
            assert manager.discover() == 0
            assert await manager.manage_servers() is False

        assert "missing.yaml" in caplog.text
