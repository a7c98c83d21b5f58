# bypassd - bypass4netns helper supervisor
# Copyright (C) 2026 bypassd Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of bypassd, licensed under Apache-2.0.
# See LICENSE for the full license text.

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ── Bypass Spec ───────────────────────────────────────────


class PortSpec(BaseModel):
    """A published port: traffic to ``parent_port`` reaches ``child_port``."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    parent_ip: str | None = Field(default=None, alias="parentIP")
    parent_port: int = Field(alias="parentPort")
    child_port: int = Field(alias="childPort")
    protocol: str | None = None  # "tcp" / "udp"; not forwarded to the helper


class BypassSpec(BaseModel):
    """Caller-supplied description of one bypass session.

    Absent optional values mean the corresponding helper flag is omitted.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    socket_path: str | None = Field(default=None, alias="socketPath")
    pid_file_path: str | None = Field(default=None, alias="pidFilePath")
    log_file_path: str | None = Field(default=None, alias="logFilePath")
    port_mapping: list[PortSpec] = Field(default_factory=list, alias="portMapping")
    ignore_subnets: list[str] = Field(default_factory=list, alias="ignoreSubnets")
    ignore_bind: bool = Field(default=False, alias="ignoreBind")


class BypassStatus(BaseModel):
    """A running bypass session. Never mutated after creation."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    pid: int
    spec: BypassSpec


# ── Container Interfaces ──────────────────────────────────


class InterfaceInfo(BaseModel):
    """One network interface as reported by a helper.

    Unknown keys are kept so the payload round-trips unchanged.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str = ""
    hw_addr: Any = Field(default=None, alias="hwAddr")
    addresses: list[Any] = Field(default_factory=list)


class ContainerInterfaces(BaseModel):
    """Interface snapshot for one container, stored opaquely."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    container_id: str = Field(default="", alias="containerID")
    interfaces: list[InterfaceInfo] = Field(default_factory=list)
    last_updated: datetime | None = Field(default=None, alias="lastUpdated")
