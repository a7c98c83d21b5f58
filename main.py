# bypassd - bypass4netns helper supervisor
# Copyright (C) 2026 bypassd Authors
# SPDX-License-Identifier: Apache-2.0
"""bypassd entry point: ``python main.py run --id <container> ...``."""

from __future__ import annotations

from cli import cli_main

if __name__ == "__main__":
    cli_main()
