# bypassd - bypass4netns helper supervisor
# Copyright (C) 2026 bypassd Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from cli.parser import cli_main

__all__ = ["cli_main"]
