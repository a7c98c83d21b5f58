# bypassd - bypass4netns helper supervisor
# Copyright (C) 2026 bypassd Authors
# SPDX-License-Identifier: Apache-2.0
"""Tests for bypassd/schemas.py."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from bypassd.schemas import BypassSpec, BypassStatus, ContainerInterfaces, PortSpec


class TestBypassSpec:
    def test_wire_names(self):
        """Specs written by container engines use camelCase keys."""
        spec = BypassSpec.model_validate({
            "id": "abc",
            "socketPath": "/run/b4nn.sock",
            "pidFilePath": "/run/b4nn.pid",
            "logFilePath": "/var/log/b4nn.log",
            "portMapping": [{"parentIP": "0.0.0.0", "parentPort": 8080, "childPort": 80, "protocol": "tcp"}],
            "ignoreSubnets": ["127.0.0.0/8"],
            "ignoreBind": True,
        })

        assert spec.socket_path == "/run/b4nn.sock"
        assert spec.port_mapping == [PortSpec(parent_ip="0.0.0.0", parent_port=8080, child_port=80, protocol="tcp")]
        assert spec.ignore_bind is True

    def test_defaults_mean_absent(self):
        spec = BypassSpec(id="abc")
        assert spec.socket_path is None
        assert spec.port_mapping == []
        assert spec.ignore_subnets == []
        assert spec.ignore_bind is False

    def test_dump_uses_wire_names(self):
        dumped = BypassSpec(id="abc", ignore_bind=True).model_dump(by_alias=True)
        assert dumped["ignoreBind"] is True
        assert "ignore_bind" not in dumped

    def test_id_required(self):
        with pytest.raises(ValidationError):
            BypassSpec.model_validate({"socketPath": "/x"})


class TestBypassStatus:
    def test_frozen(self):
        status = BypassStatus(id="abc", pid=10, spec=BypassSpec(id="abc"))
        with pytest.raises(ValidationError):
            status.pid = 11


class TestContainerInterfaces:
    def test_round_trip_keeps_unknown_fields(self):
        raw = {
            "containerID": "abc",
            "interfaces": [{"name": "eth0", "hwAddr": "02:42:ac:11:00:02", "addresses": [{"IP": "10.0.0.2"}], "mtu": 1500}],
            "lastUpdated": "2026-01-01T00:00:00Z",
        }

        ci = ContainerInterfaces.model_validate(raw)
        dumped = ci.model_dump(by_alias=True, mode="json")

        assert dumped["containerID"] == "abc"
        assert dumped["interfaces"][0]["mtu"] == 1500
        assert dumped["interfaces"][0]["addresses"] == [{"IP": "10.0.0.2"}]
