# bypassd - bypass4netns helper supervisor
# Copyright (C) 2026 bypassd Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of bypassd, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Unified exception hierarchy for bypassd.

All domain-specific exceptions derive from :class:`BypassdError`,
enabling callers to catch the entire family with a single clause::

    try:
        driver.start_bypass(spec)
    except BypassdError as e:
        logger.error("Bypass error: %s", e)
"""

from __future__ import annotations


class BypassdError(Exception):
    """Base exception for all bypassd errors."""


# ── Configuration ────────────────────────────────────────────


class ConfigError(BypassdError):
    """Configuration errors."""


class ConfigValidationError(ConfigError):
    """Configuration validation failure."""


# ── Supervisor ───────────────────────────────────────────────


class SupervisorError(BypassdError):
    """Helper process lifecycle errors."""


class SpawnError(SupervisorError):
    """The helper process could not be created."""


class ReadinessError(SupervisorError):
    """The helper did not complete the readiness handshake."""


class HelperExitedError(ReadinessError):
    """The helper exited before signalling readiness."""

    def __init__(
        self,
        message: str = "helper process failed to start",
        *,
        exit_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class HelperKilledError(ReadinessError):
    """The helper was killed by a signal before signalling readiness."""

    def __init__(
        self,
        message: str = "helper process was killed",
        *,
        signal_number: int | None = None,
    ) -> None:
        super().__init__(message)
        self.signal_number = signal_number


class ReadyPipeError(ReadinessError):
    """Reading the readiness pipe failed (including EOF)."""


class ReadinessTimeoutError(ReadinessError):
    """The configured readiness bound elapsed with the helper still alive."""


class BypassNotFoundError(SupervisorError):
    """Referenced bypass session does not exist."""


class ProcessLookupFailure(SupervisorError):
    """A process handle could not be resolved for a recorded pid."""


class SignalError(SupervisorError):
    """SIGTERM or SIGKILL could not be delivered."""
