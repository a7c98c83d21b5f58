# bypassd - bypass4netns helper supervisor
# Copyright (C) 2026 bypassd Authors
# SPDX-License-Identifier: Apache-2.0
"""Global test fixtures for bypassd.

Isolates the data and runtime directories and the config cache, and
reaps any fake helper processes a test leaves behind.
"""

from __future__ import annotations

import os
import signal
from collections.abc import Iterator
from pathlib import Path

import pytest

from tests.helpers.fake_helper import PID_DIR_NAME


# ── Fixtures ──────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _isolate_dirs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Point BYPASSD_DATA_DIR / XDG_RUNTIME_DIR at tmp_path and reset config."""
    from bypassd.config import invalidate_cache

    monkeypatch.setenv("BYPASSD_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("XDG_RUNTIME_DIR", str(tmp_path / "run"))
    invalidate_cache()
    yield
    invalidate_cache()


@pytest.fixture(autouse=True)
def _reap_fake_helpers(tmp_path: Path) -> Iterator[None]:
    """Kill fake helpers that are still alive after the test."""
    yield
    pid_dir = tmp_path / PID_DIR_NAME
    if not pid_dir.is_dir():
        return
    for pid_file in pid_dir.iterdir():
        pid = int(pid_file.name)
        try:
            os.kill(pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
        try:
            os.waitpid(pid, 0)
        except ChildProcessError:
            pass
