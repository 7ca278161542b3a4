# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vimsh/vmware/known_hosts.py
"""
SSH-style known_hosts store for TLS endpoints.

Each line is "<hashed host> <fingerprint>" where the hashed host is
sha256("<protocol>:<host>") so the file does not list the hosts a user
talks to. Fingerprints are the SHA-256 digest of the DER certificate.
"""
from __future__ import annotations

import hashlib
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional, Tuple, Union

from ..core.utils import U

DEFAULT_KNOWN_HOSTS = Path("~/.vimsh/known_hosts")


class KnownHostResult(Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    MISMATCH = "mismatch"


def fingerprint(der: bytes) -> str:
    return hashlib.sha256(der).hexdigest()


def hash_host(protocol: str, host: str) -> str:
    return hashlib.sha256(f"{protocol}:{host}".encode("utf-8")).hexdigest()


class KnownHosts:
    def __init__(self, filename: Union[str, Path, None] = None, logger: Optional[logging.Logger] = None):
        self._path = Path(filename or DEFAULT_KNOWN_HOSTS).expanduser()
        self.logger = logger or logging.getLogger("vimsh")

    @property
    def filename(self) -> str:
        return str(self._path)

    def _entries(self) -> Iterator[Tuple[int, str, str]]:
        if not self._path.exists():
            return
        with self._path.open("r", encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                parts = line.split()
                if len(parts) != 2:
                    self.logger.debug("known_hosts: skipping malformed line %s:%d", self.filename, lineno)
                    continue
                yield lineno, parts[0], parts[1]

    def verify(self, protocol: str, host: str, der: bytes) -> Tuple[KnownHostResult, Union[str, int, None]]:
        """
        (NOT_FOUND, fingerprint) if the host was never seen,
        (MISMATCH, lineno) if the recorded fingerprint differs,
        (OK, None) if it matches.
        """
        want_host = hash_host(protocol, host)
        fp = fingerprint(der)
        for lineno, hashed, recorded in self._entries():
            if hashed != want_host:
                continue
            if recorded == fp:
                return KnownHostResult.OK, None
            return KnownHostResult.MISMATCH, lineno
        return KnownHostResult.NOT_FOUND, fp

    def add(self, protocol: str, host: str, der: bytes) -> None:
        U.ensure_dir(self._path.parent)
        fd = os.open(self._path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, 0o600)
        with os.fdopen(fd, "a", encoding="utf-8") as f:
            f.write(f"{hash_host(protocol, host)} {fingerprint(der)}\n")
        self.logger.debug("known_hosts: added %s (%s) to %s", host, protocol, self.filename)
