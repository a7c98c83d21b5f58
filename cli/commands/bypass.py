# bypassd - bypass4netns helper supervisor
# Copyright (C) 2026 bypassd Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import argparse
import json
import logging
import shlex
import signal
import sys
import threading
from pathlib import Path
from typing import Any

from pydantic import ValidationError

logger = logging.getLogger("bypassd.cli")


# ── Driver / spec construction ────────────────────────────


def _driver_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Collect driver settings given on the command line."""
    overrides: dict[str, Any] = {}
    for key in ("executable_path", "com_socket_path", "handle_c2c", "tracer"):
        value = getattr(args, key, None)
        if value is not None:
            overrides[key] = value
    if getattr(args, "debug", False):
        overrides["debug"] = True

    multinode: dict[str, Any] = {}
    if args.multinode is not None:
        multinode["enable"] = args.multinode
    if args.multinode_etcd_address is not None:
        multinode["etcd_address"] = args.multinode_etcd_address
    if args.multinode_host_address is not None:
        multinode["host_address"] = args.multinode_host_address
    if multinode:
        overrides["multinode"] = multinode
    return overrides


def build_driver(args: argparse.Namespace):
    """Create a BypassDriver from config.json plus command-line overrides."""
    from bypassd.config import DriverConfig, load_config
    from bypassd.exceptions import ConfigValidationError
    from bypassd.supervisor import BypassDriver

    base = load_config().driver.model_dump()
    overrides = _driver_overrides(args)
    if "multinode" in overrides:
        overrides["multinode"] = {**base["multinode"], **overrides["multinode"]}
    try:
        config = DriverConfig.model_validate({**base, **overrides})
    except ValidationError as exc:
        raise ConfigValidationError(f"invalid driver settings: {exc}") from exc
    return BypassDriver(config)


def _parse_port(value: str) -> dict[str, int]:
    parent, sep, child = value.partition(":")
    if not sep:
        raise ValueError(f"invalid port mapping {value!r}, expected PARENT:CHILD")
    return {"parent_port": int(parent), "child_port": int(child)}


def load_specs(args: argparse.Namespace) -> list:
    """Build the bypass specs requested by *args*.

    ``--spec-file`` wins over the individual spec flags.
    """
    from bypassd.schemas import BypassSpec

    if args.spec_file:
        data = json.loads(Path(args.spec_file).read_text(encoding="utf-8"))
        items = data if isinstance(data, list) else [data]
        return [BypassSpec.model_validate(item) for item in items]

    if not args.container_id:
        raise ValueError("either --id or --spec-file is required")
    return [
        BypassSpec(
            id=args.container_id,
            socket_path=args.socket_path,
            pid_file_path=args.pid_file_path,
            log_file_path=args.log_file_path,
            port_mapping=[_parse_port(p) for p in args.ports],
            ignore_subnets=args.ignore_subnets,
            ignore_bind=args.ignore_bind,
        )
    ]


# ── Commands ──────────────────────────────────────────────


def cmd_args(args: argparse.Namespace) -> None:
    """Print the helper command line for each requested spec."""
    from bypassd.exceptions import BypassdError

    try:
        driver = build_driver(args)
        specs = load_specs(args)
    except (BypassdError, ValueError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    for spec in specs:
        argv = [
            driver.config.executable_path,
            *driver.build_args(spec),
            f"--ready-fd={driver.config.ready_fd}",
        ]
        print(shlex.join(argv))


def cmd_run(args: argparse.Namespace) -> None:
    """Start the requested sessions and stop them on SIGINT / SIGTERM."""
    from bypassd.exceptions import BypassdError
    from bypassd.id_utils import shrink_id

    try:
        driver = build_driver(args)
        specs = load_specs(args)
    except (BypassdError, ValueError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    stop_requested = threading.Event()

    def _on_signal(signum: int, _frame: Any) -> None:
        logger.info("Received signal %d, shutting down", signum)
        stop_requested.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    exit_code = 0
    try:
        for spec in specs:
            if stop_requested.is_set():
                break
            try:
                status = driver.start_bypass(spec)
            except BypassdError as exc:
                print(f"Error: failed to start bypass {shrink_id(spec.id)}: {exc}", file=sys.stderr)
                exit_code = 1
                break
            print(f"Started bypass {shrink_id(status.id)} (pid={status.pid})")

        if exit_code == 0:
            stop_requested.wait()
    finally:
        failures = driver.stop_all()
        for container_id, exc in failures.items():
            print(f"Error: failed to stop bypass {shrink_id(container_id)}: {exc}", file=sys.stderr)
            exit_code = 1

    if exit_code:
        sys.exit(exit_code)
