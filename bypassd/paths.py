# bypassd - bypass4netns helper supervisor
# Copyright (C) 2026 bypassd Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of bypassd, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Centralized path resolution for bypassd.

All modules import directory paths from here instead of computing them ad-hoc.
The data directory can be overridden via the BYPASSD_DATA_DIR environment
variable; the runtime directory follows XDG_RUNTIME_DIR.
"""

from __future__ import annotations

import os
from pathlib import Path

# Default data directory (config.json, logs)
_DEFAULT_DATA_DIR = Path.home() / ".bypassd"

COM_SOCKET_NAME = "bypass4netnsd-com.sock"


def get_data_dir() -> Path:
    """Return the data directory, respecting BYPASSD_DATA_DIR env var."""
    env_val = os.environ.get("BYPASSD_DATA_DIR")
    if env_val:
        return Path(env_val).expanduser().resolve()
    return _DEFAULT_DATA_DIR


def get_log_dir() -> Path:
    return get_data_dir() / "logs"


def get_runtime_dir() -> Path:
    """Return the per-user runtime directory (XDG_RUNTIME_DIR)."""
    env_val = os.environ.get("XDG_RUNTIME_DIR")
    if env_val:
        return Path(env_val)
    return Path("/run/user") / str(os.getuid())


def default_com_socket_path() -> Path:
    return get_runtime_dir() / COM_SOCKET_NAME
