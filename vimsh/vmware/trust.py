# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vimsh/vmware/trust.py
"""
TLS trust decisions for endpoints whose certificate does not verify
against the system CA store (self-signed ESX/vCenter certificates).
"""
from __future__ import annotations

import logging
import socket
import ssl
from typing import Any, Callable, Optional

try:
    from rich.prompt import Confirm
except Exception:  # pragma: no cover
    Confirm = None  # type: ignore

from ..core.exceptions import TrustError, VMwareError
from ..core.utils import create_console
from .known_hosts import KnownHostResult, KnownHosts, fingerprint

PROTOCOL = "vim"


def unverified_ssl_context() -> ssl.SSLContext:
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def probe_peer_certificate(host: str, port: int = 443, timeout: float = 10.0) -> bytes:
    """
    Fetch the DER certificate the endpoint presents, without verifying it.
    """
    ctx = unverified_ssl_context()
    try:
        with socket.create_connection((host, port), timeout=timeout) as sock:
            with ctx.wrap_socket(sock, server_hostname=host) as ssock:
                der = ssock.getpeercert(binary_form=True)
    except (OSError, ssl.SSLError) as e:
        raise VMwareError(code=12, msg=f"Could not read TLS certificate from {host}:{port}: {e}", cause=e)
    if not der:
        raise VMwareError(code=12, msg=f"{host}:{port} presented no TLS certificate")
    return der


def _default_confirm(console: Any) -> Callable[[str], bool]:
    def ask(question: str) -> bool:
        return bool(Confirm.ask(question, console=console, show_choices=False))

    return ask


class TrustVerifier:
    """
    Decide whether an unverifiable certificate is acceptable:
      - a digest given on the command line must match exactly
      - otherwise known_hosts decides, asking the user on first contact
    """

    def __init__(
        self,
        known_hosts: KnownHosts,
        *,
        logger: Optional[logging.Logger] = None,
        console: Any = None,
        confirm: Optional[Callable[[str], bool]] = None,
    ) -> None:
        self.known_hosts = known_hosts
        self.logger = logger or logging.getLogger("vimsh")
        self.console = console if console is not None else create_console()
        self.confirm = confirm or _default_confirm(self.console)

    def check(self, host: str, der: bytes, certdigest: Optional[str] = None) -> str:
        """
        Return the accepted SHA-256 fingerprint or raise TrustError.
        """
        fp = fingerprint(der)

        if certdigest:
            if certdigest.lower() != fp:
                raise TrustError(code=11, msg=f"Bad certificate digest specified for {host}!")
            self.logger.debug("Certificate for %s matches digest given on command line", host)
            return fp

        result, arg = self.known_hosts.verify(PROTOCOL, host, der)

        if result is KnownHostResult.NOT_FOUND:
            self.console.print(f"The authenticity of host '{host}' can't be established.", markup=False)
            self.console.print(f"Public key fingerprint is {arg}.", markup=False)
            if not self.confirm("Are you sure you want to continue connecting (y/n)?"):
                raise TrustError(code=11, msg="Connection failed")
            self.console.print(f"Warning: Permanently added '{host}' ({PROTOCOL}) to the list of known hosts", markup=False)
            self.known_hosts.add(PROTOCOL, host, der)
            return fp

        if result is KnownHostResult.MISMATCH:
            raise TrustError(
                code=11,
                msg=f"Public key fingerprint for host '{host}' does not match {self.known_hosts.filename}:{arg}.",
            )

        if result is KnownHostResult.OK:
            self.logger.debug("Certificate for %s found in %s", host, self.known_hosts.filename)
            return fp

        raise TrustError(code=11, msg="Unexpected result from known_hosts check")
