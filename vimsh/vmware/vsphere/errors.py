# SPDX-License-Identifier: LGPL-3.0-or-later
# vimsh/vmware/vsphere/errors.py
# -*- coding: utf-8 -*-
"""Error classification and exit codes for shell commands"""
from __future__ import annotations

import errno
import socket
from enum import IntEnum

from ...core.exceptions import (
    ConnectionURIError,
    LoginError,
    NoConnectionError,
    TrustError,
    VimshError,
    VMwareError,
)


class VsphereExitCode(IntEnum):
    OK = 0
    UNKNOWN = 1
    USAGE = 2

    AUTH = 10
    TRUST = 11
    NETWORK = 12
    TOOL_MISSING = 13
    NO_CONNECTION = 14

    VSPHERE_API = 30

    INTERRUPTED = 130


def _is_auth_error(e: BaseException) -> bool:
    msg = str(e).lower()
    needles = [
        "not authenticated",
        "incorrect user name or password",
        "invalid login",
        "unauthorized",
        "no permission",
    ]
    return any(n in msg for n in needles)


def _is_network_error(e: BaseException) -> bool:
    if isinstance(e, (socket.timeout, socket.gaierror, TimeoutError, ConnectionError)):
        return True
    if isinstance(e, OSError) and e.errno in (
        errno.ECONNREFUSED,
        errno.ETIMEDOUT,
        errno.EHOSTUNREACH,
        errno.ENETUNREACH,
        errno.ECONNRESET,
    ):
        return True
    msg = str(e).lower()
    needles = [
        "timed out",
        "connection refused",
        "connection reset",
        "name or service not known",
        "temporary failure in name resolution",
        "no route to host",
    ]
    return any(n in msg for n in needles)


def _is_tool_missing_error(e: BaseException) -> bool:
    return "not installed" in str(e).lower()


def classify_exit_code(e: BaseException) -> VsphereExitCode:
    if isinstance(e, KeyboardInterrupt):
        return VsphereExitCode.INTERRUPTED
    if isinstance(e, ConnectionURIError):
        return VsphereExitCode.USAGE
    if isinstance(e, NoConnectionError):
        return VsphereExitCode.NO_CONNECTION
    if isinstance(e, TrustError):
        return VsphereExitCode.TRUST
    if isinstance(e, LoginError):
        return VsphereExitCode.AUTH

    if isinstance(e, VMwareError):
        if _is_tool_missing_error(e):
            return VsphereExitCode.TOOL_MISSING
        if _is_auth_error(e):
            return VsphereExitCode.AUTH
        if _is_network_error(e) or (e.cause is not None and _is_network_error(e.cause)):
            return VsphereExitCode.NETWORK
        return VsphereExitCode.VSPHERE_API

    if isinstance(e, VimshError):
        return VsphereExitCode.USAGE if e.code == 2 else VsphereExitCode.UNKNOWN

    if _is_network_error(e):
        return VsphereExitCode.NETWORK
    return VsphereExitCode.UNKNOWN
