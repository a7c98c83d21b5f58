# bypassd - bypass4netns helper supervisor
# Copyright (C) 2026 bypassd Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from bypassd.config.models import (
    BypassdConfig,
    DriverConfig,
    MultinodeConfig,
    get_config_path,
    invalidate_cache,
    load_config,
)

__all__ = [
    "BypassdConfig",
    "DriverConfig",
    "MultinodeConfig",
    "get_config_path",
    "invalidate_cache",
    "load_config",
]
