# bypassd - bypass4netns helper supervisor
# Copyright (C) 2026 bypassd Authors
# SPDX-License-Identifier: Apache-2.0
"""Control plane for bypass4netns helper processes."""

__version__ = "0.1.0"
