# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vimsh/vmware/uri.py
"""
Connection URI parsing for the connect command.

    [user[:password]@]host[:port][:certdigest]

certdigest is the SHA-256 fingerprint (64 lowercase hex chars) the peer
certificate must match; it replaces the known_hosts lookup.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import Mapping, Optional

from ..core.exceptions import ConnectionURIError

DEFAULT_PORT = 443

URI_RE = re.compile(
    r"""
    ^
    (?:
        (?P<user>[^@:]+)
        (?::(?P<password>[^@]*))?
        @
    )?
    (?P<host>[^@:]+)
    (?::(?P<port>\d{1,5}))?
    (?::(?P<certdigest>[0-9a-z]{64}))?
    $
    """,
    re.VERBOSE,
)


@dataclass(frozen=True)
class ConnectionURI:
    host: str
    port: int = DEFAULT_PORT
    user: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    certdigest: Optional[str] = None

    @property
    def password_given(self) -> bool:
        return self.password is not None

    def display(self) -> str:
        """user@host:port without the secret."""
        who = f"{self.user}@" if self.user else ""
        return f"{who}{self.host}:{self.port}"


def parse_uri(
    uri: str,
    *,
    env: Optional[Mapping[str, str]] = None,
    user_env: str = "VIMSH_USER",
    password_env: str = "VIMSH_PASSWORD",
) -> ConnectionURI:
    """
    Parse a connection URI, filling user/password from the environment when
    the URI leaves them out.
    """
    m = URI_RE.match((uri or "").strip())
    if not m:
        raise ConnectionURIError(code=2, msg="invalid hostname", context={"uri": uri})

    env = os.environ if env is None else env

    port = int(m.group("port")) if m.group("port") else DEFAULT_PORT
    if not 0 < port <= 65535:
        raise ConnectionURIError(code=2, msg=f"invalid port: {port}")

    user = m.group("user") or env.get(user_env) or None
    password = m.group("password")
    if password is None:
        password = env.get(password_env)

    return ConnectionURI(
        host=m.group("host"),
        port=port,
        user=user,
        password=password,
        certdigest=m.group("certdigest"),
    )
