"""Readiness handshake with a freshly spawned helper process."""

# bypassd - bypass4netns helper supervisor
# Copyright (C) 2026 bypassd Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
import os
import select
import time

from bypassd.exceptions import (
    HelperExitedError,
    HelperKilledError,
    ReadinessError,
    ReadinessTimeoutError,
    ReadyPipeError,
)

logger = logging.getLogger(__name__)

_READ_SIZE = 16
_REAP_STEP = 0.01

_POLL_MASK = select.POLLIN | select.POLLPRI | select.POLLHUP | select.POLLERR


def _check_child(pid: int) -> ReadinessError | None:
    """Non-blocking status check.  Returns the error for a dead child."""
    try:
        waited_pid, status = os.waitpid(pid, os.WNOHANG)
    except ChildProcessError as exc:
        raise ReadinessError(f"failed to read helper process status: {exc}") from exc

    if waited_pid != pid:
        return None
    if os.WIFEXITED(status):
        return HelperExitedError(exit_code=os.WEXITSTATUS(status))
    if os.WIFSIGNALED(status):
        return HelperKilledError(signal_number=os.WTERMSIG(status))
    return None


def _reap_within(pid: int, seconds: float) -> ReadinessError | None:
    """Status checks for up to *seconds*.  Returns the error for a dead child."""
    end = time.monotonic() + seconds
    while True:
        error = _check_child(pid)
        if error is not None or time.monotonic() >= end:
            return error
        time.sleep(_REAP_STEP)


def wait_for_ready_fd(
    pid: int,
    fd: int,
    *,
    interval: float = 1.0,
    timeout: float | None = None,
) -> None:
    """Block until the helper writes to its ready pipe or is proven dead.

    The pipe is polled in slices of *interval* seconds.  After every empty
    slice the child's status is checked without blocking: a child that is
    still running keeps the wait going, one that exited or was killed ends
    it with an error.  EOF on the pipe gives the child one more slice to
    become reapable.  The content written by the helper is ignored.

    Args:
        pid: Process id of the helper (must be a child of this process).
        fd: Read end of the ready pipe.
        interval: Length of one polling slice in seconds.
        timeout: Overall bound in seconds.  None waits for as long as the
            helper stays alive.

    Raises:
        HelperExitedError: The helper exited before becoming ready.
        HelperKilledError: The helper was killed by a signal.
        ReadyPipeError: The pipe could not be read, or reached EOF while
            the helper stayed alive.
        ReadinessTimeoutError: *timeout* elapsed with the helper alive.
        ReadinessError: The child's status could not be read.
    """
    deadline = time.monotonic() + timeout if timeout is not None else None

    # poll() has no FD_SETSIZE ceiling, unlike select()
    poller = select.poll()
    poller.register(fd, _POLL_MASK)

    while True:
        try:
            events = poller.poll(interval * 1000)
        except OSError as exc:
            raise ReadyPipeError(f"failed to read from helper ready pipe: {exc}") from exc

        if events:
            _, revents = events[0]
            if revents & select.POLLNVAL:
                raise ReadyPipeError(f"helper ready pipe fd {fd} is not open")
            try:
                data = os.read(fd, _READ_SIZE)
            except OSError as exc:
                raise ReadyPipeError(f"failed to read from helper ready pipe: {exc}") from exc
            if data:
                logger.debug("Helper signalled readiness (pid=%d)", pid)
                return
            # EOF usually means the helper is exiting.  It becomes reapable
            # shortly after its descriptors are closed, so give it one slice.
            error = _reap_within(pid, interval)
            if error is not None:
                raise error
            raise ReadyPipeError("helper ready pipe closed before readiness was signalled")

        error = _check_child(pid)
        if error is not None:
            raise error

        if deadline is not None and time.monotonic() >= deadline:
            raise ReadinessTimeoutError(
                f"helper (pid={pid}) not ready within {timeout}s"
            )
        logger.debug("Still waiting for helper readiness (pid=%d)", pid)
