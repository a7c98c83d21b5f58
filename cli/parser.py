# bypassd - bypass4netns helper supervisor
# Copyright (C) 2026 bypassd Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import argparse
import os


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bypassd",
        description="bypassd - supervisor for bypass4netns helper processes",
    )
    parser.add_argument(
        "--data-dir",
        default=None,
        help="Override data directory (default: ~/.bypassd or BYPASSD_DATA_DIR)",
    )
    sub = parser.add_subparsers(dest="command")

    # Options shared by every command that builds a driver
    driver_opts = argparse.ArgumentParser(add_help=False)
    driver_opts.add_argument("--debug", action="store_true", help="Debug logging; also passed to the helper")
    driver_opts.add_argument(
        "--b4nn-executable", dest="executable_path", default=None,
        help="Path to the bypass4netns executable",
    )
    driver_opts.add_argument(
        "--com-socket", dest="com_socket_path", default=None,
        help="Socket the helpers report interfaces to",
    )
    driver_opts.add_argument(
        "--handle-c2c-connections", dest="handle_c2c", action="store_true", default=None,
        help="Let helpers handle container-to-container connections",
    )
    driver_opts.add_argument("--tracer", action="store_true", default=None, help="Enable the helper tracer")
    driver_opts.add_argument("--multinode", action="store_true", default=None, help="Enable multinode mode")
    driver_opts.add_argument("--multinode-etcd-address", default=None, help="etcd address for multinode mode")
    driver_opts.add_argument("--multinode-host-address", default=None, help="This host's address for multinode mode")

    # Options describing one bypass session
    spec_opts = argparse.ArgumentParser(add_help=False)
    spec_opts.add_argument("--id", dest="container_id", default=None, help="Container ID")
    spec_opts.add_argument("--socket", dest="socket_path", default=None, help="Helper seccomp socket path")
    spec_opts.add_argument("--pid-file", dest="pid_file_path", default=None, help="Helper PID file")
    spec_opts.add_argument("--log-file", dest="log_file_path", default=None, help="Helper log file")
    spec_opts.add_argument(
        "-p", "--publish", dest="ports", action="append", default=[], metavar="PARENT:CHILD",
        help="Port mapping (repeatable)",
    )
    spec_opts.add_argument(
        "--ignore", dest="ignore_subnets", action="append", default=[], metavar="SUBNET",
        help="Subnet the helper must not bypass (repeatable)",
    )
    spec_opts.add_argument("--ignore-bind", action="store_true", help="Do not bypass bind(2)")
    spec_opts.add_argument(
        "--spec-file", default=None, metavar="PATH",
        help="JSON file holding one bypass spec or a list of specs",
    )

    # ── Run ───────────────────────────────────────────────
    p_run = sub.add_parser(
        "run", parents=[driver_opts, spec_opts],
        help="Start bypass sessions and supervise them until interrupted",
    )
    p_run.set_defaults(func=_lazy_run)

    # ── Args ──────────────────────────────────────────────
    p_args = sub.add_parser(
        "args", parents=[driver_opts, spec_opts],
        help="Print the helper command line without starting it",
    )
    p_args.set_defaults(func=_lazy_args)

    return parser


def _resolve_log_level(args: argparse.Namespace) -> str:
    """--debug, then BYPASSD_LOG_LEVEL, then ``log_level`` in config.json."""
    if getattr(args, "debug", False):
        return "DEBUG"
    env_level = os.environ.get("BYPASSD_LOG_LEVEL")
    if env_level:
        return env_level

    from bypassd.config import load_config
    from bypassd.exceptions import ConfigError

    try:
        return load_config().log_level
    except ConfigError:
        # Logging is not set up yet; the command reports the broken file
        return "INFO"


def cli_main(argv: list[str] | None = None) -> None:
    from dotenv import load_dotenv

    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)

    # Apply --data-dir override before any command
    if args.data_dir:
        os.environ["BYPASSD_DATA_DIR"] = args.data_dir

    from bypassd.logging_config import setup_logging
    from bypassd.paths import get_log_dir

    setup_logging(level=_resolve_log_level(args), log_dir=get_log_dir())

    if hasattr(args, "func"):
        args.func(args)
    else:
        parser.print_help()


# ── Lazy import wrappers ──────────────────────────────────


def _lazy_run(args: argparse.Namespace) -> None:
    from cli.commands.bypass import cmd_run

    cmd_run(args)


def _lazy_args(args: argparse.Namespace) -> None:
    from cli.commands.bypass import cmd_args

    cmd_args(args)
