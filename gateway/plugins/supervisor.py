"""Plugin server supervision - spawns managed plugin servers and respawns them when they die.

Servers that declare both a `socket` and an `executable` are launched by the
gateway. Each one gets its own asyncio task which starts the process, logs
its joined stdout/stderr, waits for it to exit and starts it again, until
the supervisor is stopped.
"""
from __future__ import annotations

import asyncio
import logging
import os
import signal
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from gateway.plugins.config import check_unique_names
from gateway.plugins.errors import ChildExitedError, SpawnError
from gateway.plugins.log_forwarder import LogForwarder, log_notice
from gateway.plugins.models import ServerDefinition

logger = logging.getLogger(__name__)


class ProcessState(str, Enum):
    """Plugin server process states."""

    IDLE = "idle"
    SPAWNING = "spawning"
    RUNNING = "running"
    EXITED = "exited"
    STOPPED = "stopped"


@dataclass
class ManagedProcess:
    """Runtime state of one supervised plugin server."""

    definition: ServerDefinition
    state: ProcessState = ProcessState.IDLE
    process: Optional[asyncio.subprocess.Process] = field(default=None, repr=False)
    restart_count: int = 0
    last_exit_reason: Optional[str] = None
    last_error: Optional[str] = None

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process else None

    def to_dict(self) -> dict:
        """Serialize process state to dict for API responses."""
        return {
            "name": self.name,
            "state": self.state.value,
            "pid": self.pid,
            "restart_count": self.restart_count,
            "last_exit_reason": self.last_exit_reason,
            "last_error": self.last_error,
        }


TransitionCallback = Callable[[str, ProcessState], None]


def describe_exit(returncode: Optional[int]) -> str:
    """Human readable termination reason for a process return code."""
    if returncode is None:
        return "unknown"
    if returncode < 0:
        try:
            return f"killed by signal {signal.Signals(-returncode).name}"
        except ValueError:
            return f"killed by signal {-returncode}"
    return f"exit code {returncode}"


class ProcessSupervisor:
    """Owns the plugin server processes of one gateway worker.

    Respawning is unconditional: a server that exits for any reason is
    started again until stop() is called. `respawn_delay` adds a fixed pause
    between an exit and the next start; a server whose executable cannot be
    started at all waits `spawn_failure_delay` before the next attempt.
    """

    def __init__(
        self,
        respawn_delay: float = 0.0,
        spawn_failure_delay: float = 1.0,
        forwarder: Optional[LogForwarder] = None,
        on_transition: Optional[TransitionCallback] = None,
    ):
        self.respawn_delay = respawn_delay
        self.spawn_failure_delay = spawn_failure_delay
        self.forwarder = forwarder or LogForwarder()
        self.on_transition = on_transition
        self.processes: Dict[str, ManagedProcess] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        self._shutdown = asyncio.Event()
        self._started = False
        self._terminate_on_stop = False
        self._grace_period = 5.0

    @property
    def started(self) -> bool:
        return self._started

    @property
    def stopping(self) -> bool:
        return self._shutdown.is_set()

    def start(self, definitions: Iterable[ServerDefinition]) -> List[ManagedProcess]:
        """Start one supervision task per managed server definition.

        Must be called from a running event loop, once per supervisor.

        Raises:
            RuntimeError: start() was already called
            ConfigError: two definitions share a name
        """
        if self._started:
            raise RuntimeError("ProcessSupervisor.start() must not be called more than once")
        self._started = True

        definitions = list(definitions)
        check_unique_names(definitions)

        for definition in definitions:
            if not definition.socket:
                logger.debug(f"Plugin server {definition.name} has no socket, ignoring")
                continue
            if not definition.executable:
                logger.info(f"Plugin server {definition.name} is not managed by the gateway")
                continue

            managed = ManagedProcess(definition=definition)
            self.processes[definition.name] = managed
            self._tasks[definition.name] = asyncio.create_task(
                self._supervise(managed), name=f"pluginserver:{definition.name}"
            )

        logger.info(f"Supervising {len(self._tasks)} plugin server(s)")
        return list(self.processes.values())

    async def stop(
        self,
        terminate: bool = False,
        grace_period: float = 5.0,
        timeout: Optional[float] = None,
    ) -> None:
        """Stop respawning servers and wait for the supervision tasks to finish.

        Args:
            terminate: Send SIGTERM to running servers (SIGKILL after grace_period)
                instead of letting them exit on their own
            grace_period: Seconds between SIGTERM and SIGKILL
            timeout: Seconds to wait for the tasks; remaining tasks are cancelled
        """
        self._terminate_on_stop = terminate
        self._grace_period = grace_period
        if not self._shutdown.is_set():
            self._shutdown.set()
            log_notice(logger, "Stopping plugin server supervision")

        if terminate:
            await asyncio.gather(*(self._terminate(m) for m in self.processes.values()))

        tasks = [t for t in self._tasks.values() if not t.done()]
        if not tasks:
            return

        _, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            logger.warning(f"Plugin server task {task.get_name()} still running, cancelling")
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def _set_state(self, managed: ManagedProcess, state: ProcessState) -> None:
        managed.state = state
        logger.debug(f"Plugin server {managed.name}: {state.value}")
        if self.on_transition:
            self.on_transition(managed.name, state)

    async def _supervise(self, managed: ManagedProcess) -> None:
        try:
            while not self._shutdown.is_set():
                if managed.state != ProcessState.IDLE:
                    managed.restart_count += 1

                try:
                    await self._run_once(managed)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    managed.last_error = str(e)
                    logger.exception(f"Error supervising external pluginserver '{managed.name}': {e}")
                    self._set_state(managed, ProcessState.EXITED)
                    await self._pause(self.spawn_failure_delay)

                if self.respawn_delay > 0:
                    await self._pause(self.respawn_delay)
                # Let other tasks run even when a server dies instantly
                await asyncio.sleep(0)
        finally:
            managed.process = None
            self._set_state(managed, ProcessState.STOPPED)
            log_notice(logger, f"Exiting: external pluginserver '{managed.name}' not respawned.")

    async def _run_once(self, managed: ManagedProcess) -> None:
        definition = managed.definition
        self._set_state(managed, ProcessState.SPAWNING)
        log_notice(logger, f"Starting {definition.name}")

        try:
            process = await asyncio.create_subprocess_exec(
                definition.executable,
                *definition.args,
                env=self._environment(definition),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            error = SpawnError(definition.name, e)
            logger.error(str(error))
            managed.last_error = str(error)
            managed.last_exit_reason = "spawn failed"
            self._set_state(managed, ProcessState.EXITED)
            await self._pause(self.spawn_failure_delay)
            return

        managed.process = process
        self._set_state(managed, ProcessState.RUNNING)
        if self._shutdown.is_set() and self._terminate_on_stop:
            # stop() ran while this process was being spawned
            await self._terminate(managed)

        pump = asyncio.create_task(self.forwarder.pump(definition.name, process.stdout))
        try:
            returncode = await process.wait()
            await pump
        finally:
            if not pump.done():
                pump.cancel()

        exited = ChildExitedError(definition.name, returncode, describe_exit(returncode))
        managed.last_exit_reason = exited.reason
        managed.process = None
        log_notice(logger, str(exited))
        self._set_state(managed, ProcessState.EXITED)

    async def _terminate(self, managed: ManagedProcess) -> None:
        process = managed.process
        if process is None or process.returncode is not None:
            return

        logger.info(f"Terminating external pluginserver '{managed.name}' (pid {process.pid})")
        try:
            process.terminate()
        except ProcessLookupError:
            return

        try:
            await asyncio.wait_for(process.wait(), timeout=self._grace_period)
        except asyncio.TimeoutError:
            logger.warning(f"External pluginserver '{managed.name}' ignored SIGTERM, killing")
            try:
                process.kill()
            except ProcessLookupError:
                return
            await process.wait()

    async def _pause(self, delay: float) -> None:
        """Sleep for `delay` seconds, waking early on shutdown."""
        if delay <= 0:
            return
        try:
            await asyncio.wait_for(self._shutdown.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    @staticmethod
    def _environment(definition: ServerDefinition) -> Optional[Dict[str, str]]:
        if definition.environment is None:
            return None
        if definition.inherit_environment:
            env = dict(os.environ)
            env.update(definition.environment)
            return env
        return dict(definition.environment)
