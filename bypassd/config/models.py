# bypassd - bypass4netns helper supervisor
# Copyright (C) 2026 bypassd Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of bypassd, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Central configuration module for bypassd.

Defines Pydantic models for config.json and provides load / resolve
helpers with a module-level singleton cache.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError, model_validator

from bypassd.exceptions import ConfigValidationError

logger = logging.getLogger("bypassd.config")

# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class MultinodeConfig(BaseModel):
    """Cross-host coordination toggles passed through to every helper."""

    enable: bool = False
    etcd_address: str = ""
    host_address: str = ""

    @model_validator(mode="after")
    def _validate_addresses(self) -> MultinodeConfig:
        if self.enable and not (self.etcd_address and self.host_address):
            raise ValueError(
                "multinode requires both etcd_address and host_address"
            )
        return self


class DriverConfig(BaseModel):
    """Settings for :class:`bypassd.supervisor.driver.BypassDriver`."""

    executable_path: str = "bypass4netns"
    com_socket_path: str | None = None  # None = <XDG_RUNTIME_DIR>/bypass4netnsd-com.sock
    debug: bool = False
    handle_c2c: bool = False
    tracer: bool = False
    multinode: MultinodeConfig = MultinodeConfig()
    ready_fd: int = 3
    ready_poll_interval: float = 1.0
    ready_timeout: float | None = None  # None = wait as long as the helper lives
    stop_timeout: float | None = None  # None = no grace period before SIGKILL

    @model_validator(mode="after")
    def _validate_timings(self) -> DriverConfig:
        if self.ready_poll_interval <= 0:
            raise ValueError(
                f"ready_poll_interval ({self.ready_poll_interval}) must be positive"
            )
        for name in ("ready_timeout", "stop_timeout"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ValueError(f"{name} ({value}) must be positive or null")
        if self.ready_fd < 3:
            raise ValueError(f"ready_fd ({self.ready_fd}) must not shadow stdio")
        return self

    def resolved_com_socket_path(self) -> str:
        if self.com_socket_path:
            return self.com_socket_path
        from bypassd.paths import default_com_socket_path

        return str(default_com_socket_path())


class BypassdConfig(BaseModel):
    log_level: str = "INFO"
    driver: DriverConfig = DriverConfig()


# ---------------------------------------------------------------------------
# Load
# ---------------------------------------------------------------------------

# Parsed configs keyed by file path; cleared by invalidate_cache()
_cache: dict[Path, BypassdConfig] = {}


def invalidate_cache() -> None:
    """Forget every loaded config so the next load re-reads the disk."""
    _cache.clear()


def get_config_path(data_dir: Path | None = None) -> Path:
    """Return ``config.json`` inside *data_dir* (default: the data dir)."""
    if data_dir is None:
        from bypassd.paths import get_data_dir

        data_dir = get_data_dir()
    return data_dir / "config.json"


def _read_config(path: Path) -> BypassdConfig:
    if not path.is_file():
        logger.info("Config file not found at %s; using defaults", path)
        return BypassdConfig()

    logger.debug("Loading config from %s", path)
    try:
        data: dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
        return BypassdConfig.model_validate(data)
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse %s: %s", path, exc)
        raise ConfigValidationError(f"invalid JSON in {path}: {exc}") from exc
    except ValidationError as exc:
        logger.error("Invalid config in %s: %s", path, exc)
        raise ConfigValidationError(f"invalid config in {path}: {exc}") from exc


def load_config(path: Path | None = None) -> BypassdConfig:
    """Load ``config.json``, parsing each path at most once per process.

    A missing file yields the defaults.

    Raises:
        ConfigValidationError: The file is not valid JSON or does not
            match the schema.  Failed loads are not cached.
    """
    if path is None:
        path = get_config_path()
    config = _cache.get(path)
    if config is None:
        config = _cache[path] = _read_config(path)
    return config
