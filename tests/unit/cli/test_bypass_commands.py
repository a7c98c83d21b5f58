# bypassd - bypass4netns helper supervisor
# Copyright (C) 2026 bypassd Authors
# SPDX-License-Identifier: Apache-2.0
"""Unit tests for cli/parser.py and cli/commands/bypass.py."""

from __future__ import annotations

import json
import shlex
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from bypassd.exceptions import ConfigValidationError, HelperExitedError
from bypassd.schemas import BypassSpec, BypassStatus
from cli.commands.bypass import build_driver, cmd_args, cmd_run, load_specs
from cli.parser import build_parser


def _parse(*argv: str):
    return build_parser().parse_args(list(argv))


# ── Parser ────────────────────────────────────────────────


class TestParser:
    def test_run_spec_flags(self):
        args = _parse(
            "run", "--id", "abc", "-p", "8080:80", "-p", "8443:443",
            "--ignore", "10.0.0.0/8", "--ignore-bind", "--socket", "/tmp/s.sock",
        )
        assert args.container_id == "abc"
        assert args.ports == ["8080:80", "8443:443"]
        assert args.ignore_subnets == ["10.0.0.0/8"]
        assert args.ignore_bind is True
        assert args.socket_path == "/tmp/s.sock"

    def test_driver_flags_default_to_unset(self):
        args = _parse("args", "--id", "abc")
        assert args.handle_c2c is None
        assert args.tracer is None
        assert args.multinode is None
        assert args.executable_path is None


# ── Driver / spec construction ────────────────────────────


class TestBuildDriver:
    def test_cli_overrides_config(self, tmp_path: Path):
        data_dir = tmp_path / "data"
        data_dir.mkdir()
        (data_dir / "config.json").write_text(json.dumps({
            "driver": {"executable_path": "/opt/b4nn", "com_socket_path": "/run/a.sock"},
        }), encoding="utf-8")

        driver = build_driver(_parse(
            "run", "--id", "x", "--com-socket", "/run/b.sock", "--tracer", "--debug",
        ))

        assert driver.config.executable_path == "/opt/b4nn"
        assert driver.com_socket_path == "/run/b.sock"
        assert driver.config.tracer is True
        assert driver.config.debug is True
        assert driver.config.handle_c2c is False

    def test_multinode_flags(self):
        driver = build_driver(_parse(
            "run", "--id", "x", "--multinode",
            "--multinode-etcd-address", "http://etcd:2379",
            "--multinode-host-address", "10.0.0.2",
        ))
        assert driver.config.multinode.enable is True
        assert driver.config.multinode.etcd_address == "http://etcd:2379"

    def test_multinode_without_addresses_rejected(self):
        with pytest.raises(ConfigValidationError):
            build_driver(_parse("run", "--id", "x", "--multinode"))


class TestLoadSpecs:
    def test_from_flags(self):
        specs = load_specs(_parse("run", "--id", "abc", "-p", "8080:80", "--ignore", "10.0.0.0/8"))

        assert len(specs) == 1
        assert specs[0].id == "abc"
        assert specs[0].port_mapping[0].parent_port == 8080
        assert specs[0].port_mapping[0].child_port == 80
        assert specs[0].ignore_subnets == ["10.0.0.0/8"]

    def test_bad_port(self):
        with pytest.raises(ValueError, match="PARENT:CHILD"):
            load_specs(_parse("run", "--id", "abc", "-p", "8080"))

    def test_id_required(self):
        with pytest.raises(ValueError, match="--id"):
            load_specs(_parse("run"))

    def test_from_file_list(self, tmp_path: Path):
        spec_file = tmp_path / "specs.json"
        spec_file.write_text(json.dumps([
            {"id": "a", "portMapping": [{"parentPort": 1, "childPort": 2}]},
            {"id": "b", "ignoreBind": True},
        ]), encoding="utf-8")

        specs = load_specs(_parse("run", "--spec-file", str(spec_file)))

        assert [s.id for s in specs] == ["a", "b"]
        assert specs[1].ignore_bind is True

    def test_from_file_single_object(self, tmp_path: Path):
        spec_file = tmp_path / "spec.json"
        spec_file.write_text(json.dumps({"id": "a"}), encoding="utf-8")

        assert [s.id for s in load_specs(_parse("run", "--spec-file", str(spec_file)))] == ["a"]


# ── Commands ──────────────────────────────────────────────


class TestCmdArgs:
    def test_prints_command_line(self, capsys):
        cmd_args(_parse(
            "args", "--id", "abc", "-p", "80:8080", "--com-socket", "/run/c.sock",
            "--b4nn-executable", "/usr/bin/bypass4netns",
        ))

        out = capsys.readouterr().out.strip()
        assert shlex.split(out) == [
            "/usr/bin/bypass4netns", "-p=80:8080", "--com-socket=/run/c.sock", "--ready-fd=3",
        ]

    def test_invalid_input_exits(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cmd_args(_parse("args"))
        assert exc_info.value.code == 1
        assert "Error" in capsys.readouterr().err


class TestCmdRun:
    @pytest.fixture
    def driver(self) -> MagicMock:
        d = MagicMock()
        d.stop_all.return_value = {}
        return d

    def test_start_failure_exits_and_cleans_up(self, driver, capsys):
        driver.start_bypass.side_effect = HelperExitedError(exit_code=1)

        with patch("cli.commands.bypass.build_driver", return_value=driver), \
             patch("cli.commands.bypass.signal.signal"):
            with pytest.raises(SystemExit) as exc_info:
                cmd_run(_parse("run", "--id", "abc"))

        assert exc_info.value.code == 1
        driver.stop_all.assert_called_once()
        assert "failed to start" in capsys.readouterr().err

    def test_runs_until_signal(self, driver, capsys):
        handlers = {}
        driver.start_bypass.return_value = BypassStatus(id="abc", pid=99, spec=BypassSpec(id="abc"))

        def fake_signal(signum, handler):
            handlers[signum] = handler

        def wait_and_fire(self_event, timeout=None):
            # Deliver SIGTERM as soon as the command starts waiting
            import signal as _signal

            handlers[_signal.SIGTERM](_signal.SIGTERM, None)
            return True

        with patch("cli.commands.bypass.build_driver", return_value=driver), \
             patch("cli.commands.bypass.signal.signal", side_effect=fake_signal), \
             patch("threading.Event.wait", autospec=True, side_effect=wait_and_fire):
            cmd_run(_parse("run", "--id", "abc"))

        driver.start_bypass.assert_called_once()
        driver.stop_all.assert_called_once()
        assert "Started bypass abc (pid=99)" in capsys.readouterr().out

    def test_stop_failures_exit_nonzero(self, driver):
        driver.start_bypass.return_value = BypassStatus(id="abc", pid=99, spec=BypassSpec(id="abc"))
        driver.stop_all.return_value = {"abc": RuntimeError("boom")}

        with patch("cli.commands.bypass.build_driver", return_value=driver), \
             patch("cli.commands.bypass.signal.signal"), \
             patch("threading.Event.wait", return_value=True):
            with pytest.raises(SystemExit) as exc_info:
                cmd_run(_parse("run", "--id", "abc"))

        assert exc_info.value.code == 1
