"""
Bypass Driver - Supervises one bypass4netns helper per container.
"""

# bypassd - bypass4netns helper supervisor
# Copyright (C) 2026 bypassd Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
import os
import signal

import psutil

from bypassd.config.models import DriverConfig
from bypassd.exceptions import (
    BypassNotFoundError,
    ProcessLookupFailure,
    SignalError,
    SpawnError,
)
from bypassd.id_utils import shrink_id
from bypassd.logging_config import bind_container_id
from bypassd.schemas import BypassSpec, BypassStatus, ContainerInterfaces
from bypassd.supervisor.readiness import wait_for_ready_fd
from bypassd.supervisor.registry import Registry

logger = logging.getLogger(__name__)


def get_process_from_pid(pid: int) -> psutil.Process:
    """A wrapper for psutil.Process for easy testing/mocking."""
    return psutil.Process(pid)


# ── Bypass Driver ──────────────────────────────────────────────────

class BypassDriver:
    """
    Supervisor for bypass4netns helper processes.

    Responsibilities:
    - Build helper arguments from a BypassSpec and the driver config
    - Spawn the helper and wait for its readiness handshake
    - Track running sessions (bypass registry)
    - Track interfaces reported for each container (interface registry)
    - Stop helpers with SIGTERM, escalating to SIGKILL

    Both registries are owned by the driver instance and have independent
    locks.  All methods are safe to call from any number of threads.
    """

    def __init__(self, config: DriverConfig | None = None):
        self.config = config or DriverConfig()
        self.com_socket_path = self.config.resolved_com_socket_path()
        self._bypass: Registry[BypassStatus] = Registry()
        self._interfaces: Registry[ContainerInterfaces] = Registry()

    @classmethod
    def from_config(cls) -> BypassDriver:
        """Create a driver from the ``driver`` section of config.json."""
        from bypassd.config import load_config

        return cls(load_config().driver)

    # ── Helper arguments ───────────────────────────────────────────

    def build_args(self, spec: BypassSpec) -> list[str]:
        """Translate *spec* and the driver toggles into helper flags.

        ``--ready-fd`` is not included; :meth:`start_bypass` appends it.
        """
        cfg = self.config
        args: list[str] = []

        if cfg.debug:
            args.append("--debug")
        if spec.socket_path:
            args.append(f"--socket={spec.socket_path}")
        if spec.pid_file_path:
            args.append(f"--pid-file={spec.pid_file_path}")
        if spec.log_file_path:
            args.append(f"--log-file={spec.log_file_path}")

        for port in spec.port_mapping:
            args.append(f"-p={port.parent_port}:{port.child_port}")
        for subnet in spec.ignore_subnets:
            args.append(f"--ignore={subnet}")
        if spec.ignore_bind:
            args.append("--ignore-bind")

        args.append(f"--com-socket={self.com_socket_path}")
        if cfg.handle_c2c:
            args.append("--handle-c2c-connections")
        if cfg.tracer:
            args.append("--tracer=true")
        if cfg.multinode.enable:
            args.append("--multinode=true")
            args.append(f"--multinode-etcd-address={cfg.multinode.etcd_address}")
            args.append(f"--multinode-host-address={cfg.multinode.host_address}")

        return args

    # ── Bypass sessions ────────────────────────────────────────────

    def list_bypass(self) -> list[BypassStatus]:
        """Snapshot of all running sessions."""
        return self._bypass.list()

    def get_bypass(self, container_id: str) -> BypassStatus | None:
        return self._bypass.get(container_id)

    def start_bypass(self, spec: BypassSpec) -> BypassStatus:
        """
        Spawn a helper for *spec* and register it once it is ready.

        Blocks for the whole readiness handshake.  On any failure nothing
        is registered; a helper that was spawned but never became ready is
        left to its own fate.

        Raises:
            SpawnError: The helper could not be executed.
            ReadinessError: The helper died or its pipe failed before it
                signalled readiness.
        """
        with bind_container_id(spec.id):
            short_id = shrink_id(spec.id)
            logger.info("Starting bypass: %s", short_id)

            args = self.build_args(spec)
            ready_fd = self.config.ready_fd
            args.append(f"--ready-fd={ready_fd}")

            read_fd, write_fd = os.pipe()
            try:
                if write_fd == ready_fd:
                    # dup2 onto itself would keep O_CLOEXEC set
                    moved = os.dup(write_fd)
                    os.close(write_fd)
                    write_fd = moved

                argv = [self.config.executable_path, *args]
                logger.info("bypass4netns args: %s", args)
                try:
                    pid = os.posix_spawnp(
                        self.config.executable_path,
                        argv,
                        os.environ,
                        file_actions=[(os.POSIX_SPAWN_DUP2, write_fd, ready_fd)],
                    )
                except OSError as exc:
                    logger.error("Failed to spawn %s: %s", self.config.executable_path, exc)
                    raise SpawnError(
                        f"failed to spawn {self.config.executable_path}: {exc}"
                    ) from exc

                # Only the child may hold the write end from here on
                os.close(write_fd)
                write_fd = -1

                logger.debug("bypass4netns spawned: %s (PID %d)", short_id, pid)
                try:
                    wait_for_ready_fd(
                        pid,
                        read_fd,
                        interval=self.config.ready_poll_interval,
                        timeout=self.config.ready_timeout,
                    )
                except Exception as e:
                    logger.error("bypass4netns failed to become ready: %s (PID %d): %s", short_id, pid, e)
                    raise
                logger.info("bypass4netns successfully started: %s (PID %d)", short_id, pid)
            finally:
                os.close(read_fd)
                if write_fd >= 0:
                    os.close(write_fd)

            status = BypassStatus(id=spec.id, pid=pid, spec=spec)
            previous = self._bypass.insert(status.id, status)
            if previous is not None:
                logger.warning(
                    "Replaced existing bypass entry: %s (old PID %d, new PID %d)",
                    short_id, previous.pid, pid,
                )
            logger.info("Started bypass: %s", short_id)
            return status

    def stop_bypass(self, container_id: str) -> None:
        """
        Terminate the helper for *container_id* and forget the session.

        Shutdown flow:
        1. SIGTERM, then wait for exit (bounded by ``stop_timeout`` if set)
        2. If the wait fails, SIGKILL and a best-effort wait
        3. Remove the session, then the container's interfaces

        The bypass registry stays locked for the whole sequence, so
        concurrent stops of the same ID cannot both signal the helper.

        Raises:
            BypassNotFoundError: No session for *container_id*.
            ProcessLookupFailure: The recorded pid could not be resolved.
            SignalError: SIGTERM or SIGKILL could not be delivered.  When
                SIGKILL fails the session has already been removed.
        """
        with bind_container_id(container_id):
            short_id = shrink_id(container_id)
            logger.info("Stopping bypass: %s", short_id)

            kill_error: SignalError | None = None
            with self._bypass.exclusive() as entries:
                status = entries.get(container_id)
                if status is None:
                    raise BypassNotFoundError(f"bypass {container_id} not found")

                try:
                    proc = get_process_from_pid(status.pid)
                except psutil.Error as exc:
                    raise ProcessLookupFailure(
                        f"failed to find bypass4netns pid={status.pid}: {exc}"
                    ) from exc
                logger.debug("bypass4netns found pid=%d", proc.pid)

                logger.info("Terminating bypass4netns pid=%d", proc.pid)
                try:
                    proc.send_signal(signal.SIGTERM)
                except psutil.Error as exc:
                    raise SignalError(
                        f"failed to send SIGTERM to pid={proc.pid}: {exc}"
                    ) from exc

                try:
                    proc.wait(timeout=self.config.stop_timeout)
                except (psutil.Error, ChildProcessError) as exc:
                    logger.warning(
                        "Failed to terminate bypass4netns pid=%d with SIGTERM (%s), killing...",
                        proc.pid, exc,
                    )
                    kill_error = self._kill(proc)
                logger.info("Terminated bypass4netns pid=%d", proc.pid)

                entries.remove(container_id)
                logger.info("Stopped bypass: %s", short_id)

            self.delete_interface(container_id)

            if kill_error is not None:
                raise kill_error

    def _kill(self, proc: psutil.Process) -> SignalError | None:
        """SIGKILL *proc* and wait once.  Returns the delivery error, if any."""
        try:
            proc.kill()
        except psutil.NoSuchProcess:
            logger.debug("bypass4netns pid=%d already gone", proc.pid)
            return None
        except psutil.Error as exc:
            logger.error("Failed to kill bypass4netns pid=%d: %s", proc.pid, exc)
            return SignalError(f"failed to send SIGKILL to pid={proc.pid}: {exc}")

        try:
            proc.wait(timeout=self.config.stop_timeout)
        except (psutil.Error, ChildProcessError):
            logger.debug("Wait after SIGKILL failed for pid=%d", proc.pid, exc_info=True)
        return None

    def stop_all(self) -> dict[str, Exception]:
        """Stop every tracked session.

        Returns:
            Failures keyed by container ID; empty when everything stopped.
        """
        failures: dict[str, Exception] = {}
        for status in self.list_bypass():
            try:
                self.stop_bypass(status.id)
            except BypassNotFoundError:
                continue  # stopped concurrently
            except Exception as e:
                logger.error("Failed to stop bypass %s: %s", shrink_id(status.id), e)
                failures[status.id] = e
        return failures

    # ── Container interfaces ───────────────────────────────────────

    def list_interfaces(self) -> dict[str, ContainerInterfaces]:
        return self._interfaces.snapshot()

    def get_interface(self, container_id: str) -> ContainerInterfaces | None:
        return self._interfaces.get(container_id)

    def post_interface(self, container_id: str, interfaces: ContainerInterfaces) -> None:
        """Store *interfaces* for *container_id*, replacing any previous report."""
        self._interfaces.insert(container_id, interfaces)
        logger.debug(
            "Interfaces updated: %s (%d interfaces)",
            shrink_id(container_id), len(interfaces.interfaces),
        )

    def delete_interface(self, container_id: str) -> None:
        self._interfaces.remove(container_id)
