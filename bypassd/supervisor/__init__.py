# bypassd - bypass4netns helper supervisor
# Copyright (C) 2026 bypassd Authors
# SPDX-License-Identifier: Apache-2.0
"""
Helper process supervisor package.

Runs one bypass4netns helper per container, waits for its readiness
handshake over a pipe, and tracks running sessions and the network
interfaces reported for each container.
"""

from __future__ import annotations

from bypassd.supervisor.driver import BypassDriver
from bypassd.supervisor.readiness import wait_for_ready_fd
from bypassd.supervisor.registry import LockedView, ReadWriteLock, Registry

__all__ = [
    "BypassDriver",
    "LockedView",
    "ReadWriteLock",
    "Registry",
    "wait_for_ready_fd",
]
