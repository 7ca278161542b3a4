# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vimsh/shell/state.py
"""
Shell-global state: open connections and the persisted session record.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

import yaml

from ..core.exceptions import NoConnectionError, VimshError
from ..core.utils import U

_TRAILING_NUM_RE = re.compile(r"^(.*?)(\d+)$")


def succ(name: str) -> str:
    """
    Increment the trailing number: "vc:1" -> "vc:2", "vc:9" -> "vc:10".
    A name without one gets "1" appended.
    """
    m = _TRAILING_NUM_RE.match(name)
    if not m:
        return name + "1"
    head, num = m.group(1), m.group(2)
    return f"{head}{int(num) + 1:0{len(num)}d}"


def unique_connection_name(host: str, taken: Any) -> str:
    name = host
    if name in taken:
        name = f"{name}:1"
    while name in taken:
        name = succ(name)
    return name


def _file_name(conn_name: str) -> str:
    return quote(conn_name, safe="") + ".yaml"


class SessionStore:
    """
    Persists connection records under
    <session_dir>/<session_name>/connections/<conn>.yaml
    """

    def __init__(
        self,
        session_dir: Union[str, Path],
        session_name: str = "default",
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.root = Path(session_dir).expanduser() / session_name
        self.logger = logger or logging.getLogger("vimsh")

    @property
    def connections_dir(self) -> Path:
        return self.root / "connections"

    def _path(self, name: str) -> Path:
        return self.connections_dir / _file_name(name)

    def set_connection(self, name: str, **record: Any) -> Path:
        U.ensure_dir(self.connections_dir)
        data = {"name": name}
        data.update(record)
        p = self._path(name)
        p.write_text(yaml.safe_dump(data, sort_keys=True), encoding="utf-8")
        self.logger.debug("Session: saved connection %s -> %s", name, p)
        return p

    def get_connection(self, name: str) -> Optional[Dict[str, Any]]:
        p = self._path(name)
        if not p.is_file():
            return None
        try:
            data = yaml.safe_load(p.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise VimshError(msg=f"Corrupt session record {p}: {e}", cause=e)
        return data if isinstance(data, dict) else None

    def connection_names(self) -> List[str]:
        if not self.connections_dir.is_dir():
            return []
        names: List[str] = []
        for p in sorted(self.connections_dir.glob("*.yaml")):
            try:
                data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
            except yaml.YAMLError:
                self.logger.warning("Session: ignoring unreadable record %s", p)
                continue
            names.append(str(data.get("name") or p.stem))
        return names

    def delete_connection(self, name: str) -> bool:
        p = self._path(name)
        if not p.exists():
            return False
        p.unlink()
        return True


@dataclass
class ShellState:
    """
    What every command can see: open connections (name -> VimSession) and
    the session store.
    """
    session: SessionStore
    config: Dict[str, Any] = field(default_factory=dict)
    connections: Dict[str, Any] = field(default_factory=dict)
    current: Optional[str] = None

    def add_connection(self, host: str, conn: Any) -> str:
        name = unique_connection_name(host, self.connections)
        self.connections[name] = conn
        self.current = name
        return name

    def remove_connection(self, name: str) -> Any:
        conn = self.connections.pop(name, None)
        if conn is None:
            raise NoConnectionError(msg=f"no such connection: {name}")
        if self.current == name:
            self.current = list(self.connections)[-1] if self.connections else None
        return conn

    def single_connection(self, name: Optional[str] = None) -> Any:
        if name:
            try:
                return self.connections[name]
            except KeyError:
                raise NoConnectionError(msg=f"no such connection: {name}")
        if self.current is None or self.current not in self.connections:
            raise NoConnectionError(msg="no connection (use 'connect' first)")
        return self.connections[self.current]

    def close_all(self) -> None:
        for name in list(self.connections):
            conn = self.connections.pop(name)
            close = getattr(conn, "close", None)
            if callable(close):
                close()
        self.current = None
