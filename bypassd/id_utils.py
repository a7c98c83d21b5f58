# bypassd - bypass4netns helper supervisor
# Copyright (C) 2026 bypassd Authors
# SPDX-License-Identifier: Apache-2.0

"""Container ID helpers."""

from __future__ import annotations

SHORT_ID_LENGTH = 12


def shrink_id(container_id: str) -> str:
    """Return the short form of a container ID used in log output."""
    return container_id[:SHORT_ID_LENGTH]
