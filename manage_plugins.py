#!/usr/bin/env python3
"""External plugin servers management CLI tool."""

import argparse
import json
import shutil
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Ensure project root is in path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

# Load environment variables before reading gateway constants
load_dotenv()

from gateway.constants import EXTERNAL_PLUGINS_CONFIG, INFO_COMMAND_TIMEOUT
from gateway.plugins.config import ServerDefinitionStore, check_unique_names
from gateway.plugins.discovery import DiscoveryClient
from gateway.plugins.errors import ConfigError, DiscoveryError
from gateway.plugins.registry import PluginRegistry


def get_store(args) -> ServerDefinitionStore:
    """Create a ServerDefinitionStore for the selected config file."""
    config_file: Optional[Path] = Path(args.config) if args.config else EXTERNAL_PLUGINS_CONFIG
    return ServerDefinitionStore(config_file)


def get_registry(args) -> PluginRegistry:
    """Create a PluginRegistry instance."""
    return PluginRegistry(get_store(args), DiscoveryClient(timeout=INFO_COMMAND_TIMEOUT))


def cmd_list(args):
    """List all discovered plugins."""
    plugins = get_registry(args).get_all()

    if not plugins:
        print("No external plugins found.")
        return

    print(f"{'Name':<25} {'Priority':<10} {'Version':<12} {'Server'}")
    print("-" * 80)

    for p in plugins:
        print(f"{p.name:<25} {p.priority:<10} {p.version:<12} {p.server.name}")


def cmd_info(args):
    """Show detailed plugin information."""
    entry = get_registry(args).load_plugin(args.name)
    if not entry:
        print(f"Plugin '{args.name}' not found.")
        sys.exit(1)

    print(f"Plugin: {entry.name}")
    print(f"  Priority:    {entry.priority}")
    print(f"  Version:     {entry.version}")
    print(f"  Server:      {entry.server.name}")
    print(f"  Socket:      {entry.server.socket}")
    if entry.schema is not None:
        print(f"  Schema:      {json.dumps(entry.schema, indent=4, ensure_ascii=False)}")


def cmd_servers(args):
    """List configured plugin servers."""
    try:
        definitions = get_store(args).definitions()
    except ConfigError as e:
        print(f"Config error: {e}")
        sys.exit(1)

    if not definitions:
        print("No plugin servers configured.")
        return

    print(f"{'Name':<25} {'Managed':<8} {'Socket':<35} {'Executable'}")
    print("-" * 100)

    for d in definitions:
        managed = "Yes" if d.is_managed else "No"
        print(f"{d.name:<25} {managed:<8} {d.socket or '-':<35} {d.executable or '-'}")


def cmd_doctor(args):
    """Run health checks on the plugin servers configuration."""
    issues = []
    store = get_store(args)

    if not store.configured:
        print("EXTERNAL_PLUGINS_CONFIG is not set; external plugins are disabled.")
        return

    try:
        definitions = store.definitions()
    except ConfigError as e:
        print(f"Found 1 issue(s):\n  1. {e}")
        sys.exit(1)

    try:
        check_unique_names(definitions)
    except ConfigError as e:
        issues.append(str(e))

    for d in definitions:
        if d.executable and not d.socket:
            issues.append(f"Server '{d.name}': executable set without socket, it will not be started")
        if d.executable and not (Path(d.executable).exists() or shutil.which(d.executable)):
            issues.append(f"Server '{d.name}': executable not found: {d.executable}")

    discovery = DiscoveryClient(timeout=INFO_COMMAND_TIMEOUT)
    seen = {}
    plugin_count = 0
    for definition, result in discovery.discover_all(definitions):
        if isinstance(result, DiscoveryError):
            issues.append(str(result))
            continue
        for info in result:
            plugin_count += 1
            if info.name in seen:
                issues.append(
                    f"Duplicate plugin name [{info.name}] by {seen[info.name]} and {definition.name}"
                )
            else:
                seen[info.name] = definition.name

    if issues:
        print(f"Found {len(issues)} issue(s):")
        for i, issue in enumerate(issues, 1):
            print(f"  {i}. {issue}")
        sys.exit(1)
    else:
        print(
            f"All checks passed. {len(definitions)} server(s) configured, "
            f"{plugin_count} plugin(s) discovered."
        )


def main(argv=None):
    parser = argparse.ArgumentParser(description="API Gateway External Plugin Manager")
    parser.add_argument("--config", help="Plugin servers config file (default: $EXTERNAL_PLUGINS_CONFIG)")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # list
    subparsers.add_parser("list", help="List all discovered plugins")

    # info
    info_parser = subparsers.add_parser("info", help="Show plugin details")
    info_parser.add_argument("name", help="Plugin name")

    # servers
    subparsers.add_parser("servers", help="List configured plugin servers")

    # doctor
    subparsers.add_parser("doctor", help="Check the plugin servers configuration")

    args = parser.parse_args(argv)

    commands = {
        "list": cmd_list,
        "info": cmd_info,
        "servers": cmd_servers,
        "doctor": cmd_doctor,
    }

    if args.command in commands:
        commands[args.command](args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
