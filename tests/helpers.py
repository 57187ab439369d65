"""Shared test helpers."""

import asyncio
import time
from typing import Callable


async def wait_until(predicate: Callable[[], bool], timeout: float = 10.0, interval: float = 0.02) -> None:
    """Poll `predicate` until it returns True or fail after `timeout` seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError(f"condition not met within {timeout}s")
        await asyncio.sleep(interval)


def plugin_doc(*names: str) -> list:
    """Discovery document declaring the given plugin names."""
    return [
        {"name": n, "priority": 1000, "version": "1.0", "schema": {"fields": []}}
        for n in names
    ]


def wait_until_sync(predicate: Callable[[], bool], timeout: float = 10.0, interval: float = 0.05) -> None:
    """Blocking variant of wait_until for code outside the event loop."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError(f"condition not met within {timeout}s")
        time.sleep(interval)
