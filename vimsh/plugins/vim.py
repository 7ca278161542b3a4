# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vimsh/plugins/vim.py
"""
vSphere commands: connect, tasks, and connection bookkeeping.
"""
from __future__ import annotations

import argparse
import logging
import os
from typing import Any, Optional

from ..config.config_loader import DEFAULTS, api_cap
from ..core.utils import create_console
from ..shell.commands import arg, command
from ..shell.state import ShellState
from ..vmware.clients.session import VimSession
from ..vmware.known_hosts import KnownHosts
from ..vmware.trust import TrustVerifier
from ..vmware.uri import parse_uri
from ..vmware.vsphere.tasks import TaskWatcher


def _cfg(state: ShellState, key: str) -> Any:
    v = state.config.get(key)
    return DEFAULTS[key] if v is None else v


def _max_api_version(state: ShellState) -> Optional[str]:
    env = os.environ.get(_cfg(state, "vimrev_env"))
    if env:
        return api_cap(env)
    if "max_api_version" in state.config:
        return state.config["max_api_version"]
    return DEFAULTS["max_api_version"]


@command(
    "connect",
    summary="Open a connection to ESX/VC",
    args=[
        arg("uri", help="Host to connect to: [user[:password]@]host[:port][:sha256-digest]"),
        arg("--rev", default=None, help="Override protocol revision"),
    ],
)
def connect(state: ShellState, args: argparse.Namespace, logger: logging.Logger) -> str:
    uri = parse_uri(
        args.uri,
        user_env=_cfg(state, "user_env"),
        password_env=_cfg(state, "password_env"),
    )
    console = create_console()
    trust = TrustVerifier(KnownHosts(_cfg(state, "known_hosts_file"), logger=logger), logger=logger, console=console)

    session = VimSession(
        logger,
        uri,
        trust=trust,
        rev=args.rev,
        max_api_version=_max_api_version(state),
        keepalive_interval=_cfg(state, "keepalive_interval"),
        login_attempts=_cfg(state, "login_attempts"),
        timeout=_cfg(state, "connect_timeout"),
        console=console,
    )
    session.connect()

    name = state.add_connection(uri.host, session)
    state.session.set_connection(name, host=uri.host, username=session.username, rev=args.rev)
    logger.info("Connection %s ready (%s)", name, uri.display())
    return name


@command(
    "tasks",
    summary="Watch tasks in progress",
    args=[
        arg("-C", "--connection", default=None, help="Connection name (default: most recent)"),
        arg("--json", action="store_true", help="One JSON object per task event"),
    ],
)
def tasks(state: ShellState, args: argparse.Namespace, logger: logging.Logger) -> int:
    conn = state.single_connection(args.connection)
    watcher = TaskWatcher(
        conn,
        logger=logger,
        json_output=args.json,
        max_wait=_cfg(state, "tasks_max_wait"),
    )
    return watcher.watch()


@command("connections", summary="List open connections")
def connections(state: ShellState, args: argparse.Namespace, logger: logging.Logger) -> None:
    console = create_console()
    if not state.connections:
        console.print("no connections")
    for name, conn in state.connections.items():
        mark = "*" if name == state.current else " "
        console.print(f"{mark} {name} {conn.username}@{conn.host}:{conn.port} rev={conn.rev}", markup=False)

    saved = [n for n in state.session.connection_names() if n not in state.connections]
    if saved:
        console.print(f"saved in session {state.session.root.name}: {', '.join(saved)}", markup=False)


@command(
    "info",
    summary="Show the product behind a connection",
    args=[arg("-C", "--connection", default=None, help="Connection name (default: most recent)")],
)
def info(state: ShellState, args: argparse.Namespace, logger: logging.Logger) -> None:
    state.single_connection(args.connection).display_info()


@command(
    "disconnect",
    summary="Close a connection and forget its session record",
    args=[arg("name", help="Connection name")],
)
def disconnect(state: ShellState, args: argparse.Namespace, logger: logging.Logger) -> None:
    conn = state.remove_connection(args.name)
    conn.close()
    state.session.delete_connection(args.name)
    logger.info("Disconnected %s", args.name)
