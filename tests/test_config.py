"""Tests for the plugin servers definition store."""

import pytest

from gateway.plugins.config import ServerDefinitionStore, check_unique_names, parse_definitions
from gateway.plugins.errors import ConfigError
from gateway.plugins.models import ServerDefinition


class TestServerDefinitionStore:
    """Tests for ServerDefinitionStore."""

    def test_no_config_file_is_empty(self):
        """No configured file means no servers, not an error."""
        store = ServerDefinitionStore(None)

        assert store.configured is False
        assert store.definitions() == []

    def test_missing_file_raises(self, tmp_path):
        store = ServerDefinitionStore(tmp_path / "missing.yaml")

        with pytest.raises(ConfigError):
            store.definitions()

    def test_invalid_yaml_raises(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("- name: [unclosed\n", encoding="utf-8")

        with pytest.raises(ConfigError):
            ServerDefinitionStore(path).definitions()

    def test_not_a_list_raises(self, write_config):
        path = write_config({"name": "a", "socket": "/tmp/a.sock"})

        with pytest.raises(ConfigError, match="not a list"):
            ServerDefinitionStore(path).definitions()

    def test_entry_not_a_mapping_raises(self, write_config):
        path = write_config(["just a string"])

        with pytest.raises(ConfigError, match="not a mapping"):
            ServerDefinitionStore(path).definitions()

    def test_keeps_declaration_order_and_synthesizes_names(self, write_config):
        path = write_config([
            {"name": "first", "socket": "/tmp/1.sock"},
            {"socket": "/tmp/2.sock"},
            {"name": "third"},
        ])

        names = [d.name for d in ServerDefinitionStore(path).definitions()]

        assert names == ["first", "plugin server #2", "third"]

    def test_accepts_short_field_names(self, write_config):
        """exec/env/info_cmd are accepted as aliases."""
        path = write_config([{
            "name": "go",
            "socket": "/tmp/go.sock",
            "exec": "/usr/bin/go-pluginserver",
            "args": ["-kong-prefix", "/tmp", 8080],
            "env": {"LOG_LEVEL": "info"},
            "info_cmd": "go-pluginserver -dump-all-plugins",
        }])

        definition = ServerDefinitionStore(path).definitions()[0]

        assert definition.executable == "/usr/bin/go-pluginserver"
        assert definition.args == ["-kong-prefix", "/tmp", "8080"]
        assert definition.environment == {"LOG_LEVEL": "info"}
        assert definition.info_command == "go-pluginserver -dump-all-plugins"
        assert definition.is_managed is True

    def test_definition_without_socket_or_executable_is_accepted(self, write_config):
        path = write_config([{"name": "external"}])

        definition = ServerDefinitionStore(path).definitions()[0]

        assert definition.socket is None
        assert definition.executable is None
        assert definition.is_managed is False

    def test_definitions_are_cached(self, write_config):
        path = write_config([{"name": "a"}])
        store = ServerDefinitionStore(path)
        first = store.definitions()

        path.unlink()

        assert store.definitions() == first

    def test_duplicate_names_are_not_rejected_by_store(self, write_config):
        """Name collisions are a supervisor start error, not a load error."""
        path = write_config([{"name": "dup"}, {"name": "dup"}])

        assert len(ServerDefinitionStore(path).definitions()) == 2


class TestParseDefinitions:
    """Tests for parse_definitions and check_unique_names."""

    def test_empty_document(self):
        assert parse_definitions(None) == []

    def test_invalid_field_type_raises(self):
        with pytest.raises(ConfigError, match="entry #1"):
            parse_definitions([{"name": "a", "args": "not-a-list"}])

    def test_check_unique_names_raises_on_collision(self):
        definitions = [ServerDefinition(name="a"), ServerDefinition(name="a")]

        with pytest.raises(ConfigError, match="Duplicate plugin server name: a"):
            check_unique_names(definitions)

    def test_check_unique_names_after_synthesis(self):
        """A declared name may collide with a synthesized one."""
        definitions = parse_definitions([{}, {"name": "plugin server #1"}])

        with pytest.raises(ConfigError, match="plugin server #1"):
            check_unique_names(definitions)
