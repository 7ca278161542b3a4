# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tests for exit code classification."""
from __future__ import annotations

import socket

import pytest

from vimsh.core.exceptions import (
    ConnectionURIError,
    LoginError,
    NoConnectionError,
    TrustError,
    VimshError,
    VMwareError,
)
from vimsh.vmware.vsphere.errors import VsphereExitCode, classify_exit_code


@pytest.mark.unit
@pytest.mark.parametrize(
    "exc,expected",
    [
        (KeyboardInterrupt(), VsphereExitCode.INTERRUPTED),
        (ConnectionURIError(code=2, msg="invalid hostname"), VsphereExitCode.USAGE),
        (NoConnectionError(msg="no connection"), VsphereExitCode.NO_CONNECTION),
        (TrustError(code=11, msg="Connection failed"), VsphereExitCode.TRUST),
        (LoginError(code=10, msg="bad"), VsphereExitCode.AUTH),
        (VMwareError(code=13, msg="pyvmomi not installed"), VsphereExitCode.TOOL_MISSING),
        (VMwareError(msg="Cannot complete login due to an incorrect user name or password."), VsphereExitCode.AUTH),
        (VMwareError(msg="esx01: boom", cause=socket.gaierror(-2, "x")), VsphereExitCode.NETWORK),
        (VMwareError(msg="esx01: connection refused"), VsphereExitCode.NETWORK),
        (VMwareError(msg="ManagedObjectNotFound"), VsphereExitCode.VSPHERE_API),
        (VimshError(code=2, msg="usage"), VsphereExitCode.USAGE),
        (VimshError(msg="other"), VsphereExitCode.UNKNOWN),
        (ConnectionRefusedError(), VsphereExitCode.NETWORK),
        (ValueError("x"), VsphereExitCode.UNKNOWN),
    ],
)
def test_classify_exit_code(exc, expected):
    assert classify_exit_code(exc) is expected
