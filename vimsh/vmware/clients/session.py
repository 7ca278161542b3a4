# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vimsh/vmware/clients/session.py
from __future__ import annotations

"""
Authenticated vSphere session (ESX host or vCenter) on top of pyVmomi.
"""

import errno
import logging
import socket
import ssl
import threading
from typing import Any, Callable, List, Optional, Tuple

try:
    from rich.prompt import Prompt
except Exception:  # pragma: no cover
    Prompt = None  # type: ignore

try:
    from pyVim.connect import Disconnect, SmartStubAdapter  # type: ignore
    from pyVmomi import VmomiSupport, vim  # type: ignore

    PYVMOMI_AVAILABLE = True
except Exception:  # pragma: no cover
    SmartStubAdapter = None  # type: ignore
    Disconnect = None  # type: ignore
    VmomiSupport = None  # type: ignore
    vim = None  # type: ignore
    PYVMOMI_AVAILABLE = False

from ...core.exceptions import LoginError, TrustError, VMwareError
from ...core.logger import Log
from ...core.utils import create_console
from ..trust import TrustVerifier, probe_peer_certificate, unverified_ssl_context
from ..uri import ConnectionURI

SDK_PATH = "/sdk"
API_NAMESPACE = "vim25"
DEFAULT_KEEPALIVE_S = 600

_NETWORK_ERRNOS = (
    errno.EHOSTUNREACH,
    errno.ENETUNREACH,
    errno.ECONNREFUSED,
    errno.ETIMEDOUT,
    errno.ECONNRESET,
)


def rev_tuple(rev: str) -> Tuple[int, ...]:
    """
    "8.0.2.0" -> (8, 0, 2, 0); "7.0" -> (7, 0, 0, 0).
    Non-numeric parts sort as 0.
    """
    parts: List[int] = []
    for p in str(rev or "").strip().split("."):
        parts.append(int(p) if p.isdigit() else 0)
    while len(parts) < 4:
        parts.append(0)
    return tuple(parts)


def min_rev(a: str, b: str) -> str:
    return a if rev_tuple(a) <= rev_tuple(b) else b


def known_revisions() -> List[Tuple[str, str]]:
    """
    (api revision, pyVmomi version id) pairs the installed pyVmomi knows for
    the vim25 namespace, oldest first.
    """
    if VmomiSupport is None:
        return []
    prefix = API_NAMESPACE + "/"
    out = [
        (key[len(prefix):], version)
        for key, version in VmomiSupport.versionMap.items()
        if key.startswith(prefix) and key[len(prefix):][:1].isdigit()
    ]
    return sorted(out, key=lambda kv: rev_tuple(kv[0]))


def version_for_rev(rev: str) -> str:
    """
    Newest pyVmomi version id whose revision is <= rev.
    """
    want = rev_tuple(rev)
    best: Optional[str] = None
    for known, version in known_revisions():
        if rev_tuple(known) <= want:
            best = version
    if best is None:
        raise VMwareError(code=2, msg=f"Unsupported API revision: {rev}")
    return best


def _stub_revision(stub: Any) -> Optional[str]:
    if VmomiSupport is None:
        return None
    version = getattr(stub, "version", None)
    if not version:
        return None
    return VmomiSupport.versionIdMap.get(version) or None


def _is_network_error(e: BaseException) -> bool:
    if isinstance(e, (socket.gaierror, socket.timeout, TimeoutError, ConnectionError)):
        return True
    return isinstance(e, OSError) and e.errno in _NETWORK_ERRNOS


class _KeepAlive(threading.Thread):
    """
    Calls CurrentTime() periodically so idle sessions are not reaped.
    """

    def __init__(self, session: "VimSession", interval: float) -> None:
        super().__init__(name=f"vimsh-keepalive-{session.host}", daemon=True)
        self.session = session
        self.interval = float(interval)
        self._stop_event = threading.Event()

    def run(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                self.session.current_time()
            except Exception as e:
                self.session.logger.warning("Keep-alive for %s failed: %s", self.session.host, e)

    def stop(self) -> None:
        self._stop_event.set()


class VimSession:
    """
    One connection to an ESX host or vCenter.

    connect() runs the whole sequence: TLS trust, API revision, login,
    keep-alive. The pyVmomi service instance is exposed as `si` and its
    ServiceContent as `content`.
    """

    def __init__(
        self,
        logger: logging.Logger,
        uri: ConnectionURI,
        *,
        trust: TrustVerifier,
        rev: Optional[str] = None,
        max_api_version: Optional[str] = "8.0",
        keepalive_interval: float = DEFAULT_KEEPALIVE_S,
        login_attempts: int = 3,
        timeout: Optional[float] = 10.0,
        console: Any = None,
        prompt_password: Optional[Callable[[], str]] = None,
    ) -> None:
        self.logger = logger
        self.uri = uri
        self.host = uri.host
        self.port = int(uri.port)
        self.trust = trust
        self.forced_rev = rev
        self.max_api_version = max_api_version
        self.keepalive_interval = float(keepalive_interval)
        self.login_attempts = max(1, int(login_attempts))
        self.timeout = timeout
        self.console = console if console is not None else create_console()
        self._prompt_password = prompt_password or self._rich_prompt_password

        self.si: Any = None
        self.stub: Any = None
        self.rev: Optional[str] = None
        self.username: Optional[str] = uri.user
        self.thumbprint: Optional[str] = None
        self._content: Any = None
        self._ssl_context: Optional[ssl.SSLContext] = None
        self._keepalive: Optional[_KeepAlive] = None

    def __repr__(self) -> str:
        return f"VimSession(host={self.host!r}, port={self.port}, user={self.username!r}, rev={self.rev!r})"

    def __enter__(self) -> "VimSession":
        return self.connect()

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    # ---- properties ----

    @property
    def connected(self) -> bool:
        return self.si is not None

    @property
    def content(self) -> Any:
        if self.si is None or self._content is None:
            raise VMwareError(msg="Not connected")
        return self._content

    @property
    def about(self) -> Any:
        return self.content.about

    @property
    def is_vc(self) -> bool:
        return str(getattr(self.about, "apiType", "")) == "VirtualCenter"

    @property
    def property_collector(self) -> Any:
        return self.content.propertyCollector

    def current_time(self) -> Any:
        if not self.connected:
            raise VMwareError(msg="Not connected")
        return self.si.CurrentTime()

    def display_info(self) -> None:
        self.console.print(str(self.about.fullName), markup=False)

    # ---- connect sequence ----

    def connect(self) -> "VimSession":
        if not PYVMOMI_AVAILABLE:
            raise VMwareError(code=13, msg="pyvmomi not installed. Install: pip install pyvmomi")

        log = Log.bind(self.logger, host=self.host, port=self.port)
        log.debug("Opening vSphere connection")

        self._open_trusted()
        try:
            self.rev = self._negotiate_revision()
            self._authenticate()
            self.start_keepalive()
        except BaseException:
            log.debug("Connect sequence failed, closing half-open session")
            self.close()
            raise

        Log.ok(self.logger, f"Connected to {self.about.fullName}", host=self.host, user=self.username, rev=self.rev)
        return self

    def _make_stub(self, ctx: ssl.SSLContext, *, thumbprint: Optional[str], preferred: Optional[List[str]]) -> Any:
        kwargs: dict = {
            "host": self.host,
            "port": self.port,
            "path": SDK_PATH,
            "sslContext": ctx,
        }
        if thumbprint:
            kwargs["thumbprint"] = thumbprint
        if preferred:
            kwargs["preferredApiVersions"] = preferred

        old_timeout = socket.getdefaulttimeout()
        if self.timeout is not None:
            socket.setdefaulttimeout(self.timeout)
        try:
            return SmartStubAdapter(**kwargs)  # type: ignore[misc]
        finally:
            socket.setdefaulttimeout(old_timeout)

    def _open(self, ctx: ssl.SSLContext, *, thumbprint: Optional[str] = None, preferred: Optional[List[str]] = None) -> None:
        stub = self._make_stub(ctx, thumbprint=thumbprint, preferred=preferred)
        si = vim.ServiceInstance("ServiceInstance", stub)
        # First real round trip; TLS problems surface here at the latest.
        content = si.RetrieveContent()
        self.stub = stub
        self.si = si
        self._content = content
        self._ssl_context = ctx
        self.thumbprint = thumbprint

    def _preferred(self, rev: Optional[str]) -> Optional[List[str]]:
        return [version_for_rev(rev)] if rev else None

    def _open_trusted(self) -> None:
        """
        Try a verifying TLS context first. If the certificate does not verify,
        decide trust from the certificate itself and reconnect pinned to it.
        """
        preferred = self._preferred(self.forced_rev)
        try:
            self._open(ssl.create_default_context(), preferred=preferred)
            self.logger.debug("TLS certificate of %s verified against system CA store", self.host)
            return
        except ssl.SSLError as e:
            self.logger.debug("TLS verification failed for %s: %s", self.host, e)
        except Exception as e:
            self._raise_connect_error(e)

        der = probe_peer_certificate(self.host, self.port, timeout=self.timeout or 10.0)
        fp = self.trust.check(self.host, der, self.uri.certdigest)

        try:
            self._open(unverified_ssl_context(), thumbprint=fp, preferred=preferred)
        except ssl.SSLError as e:
            raise TrustError(code=11, msg=f"TLS handshake with {self.host} failed: {e}", cause=e)
        except Exception as e:
            self._raise_connect_error(e)

    def _raise_connect_error(self, e: BaseException) -> None:
        if _is_network_error(e):
            raise VMwareError(code=12, msg=f"{self.host}: {e}", cause=e)
        if isinstance(e, VMwareError):
            raise e
        raise VMwareError(msg=f"Failed to connect to {self.host}:{self.port}: {e}", cause=e)

    def _negotiate_revision(self) -> str:
        """
        --rev wins. Otherwise use min(server apiVersion, cap) and drop the
        stub down to the cap when pyVmomi negotiated something newer.
        """
        if self.forced_rev:
            return self.forced_rev

        server_rev = str(self.about.apiVersion)
        if not self.max_api_version:
            return server_rev

        rev = min_rev(server_rev, self.max_api_version)
        negotiated = _stub_revision(self.stub)
        if negotiated and rev_tuple(negotiated) > rev_tuple(rev):
            self.logger.debug("Reconnecting %s at API revision %s (negotiated %s)", self.host, rev, negotiated)
            self._open(self._ssl_context or ssl.create_default_context(), thumbprint=self.thumbprint, preferred=self._preferred(rev))
        return rev

    def default_username(self) -> str:
        if self.is_vc:
            return "root" if str(getattr(self.about, "osType", "")) == "linux-x64" else "Administrator"
        return "root"

    def _rich_prompt_password(self) -> str:
        return str(Prompt.ask("password", password=True, console=self.console))

    def _authenticate(self) -> None:
        if self.username is None:
            self.username = self.default_username()
            self.console.print(f'Using default username "{self.username}".', markup=False)

        password = self.uri.password
        password_given = password is not None

        session_manager = self.content.sessionManager
        attempts = 0
        while True:
            attempts += 1
            if not password_given:
                password = self._prompt_password()
            try:
                session_manager.Login(userName=self.username, password=password)
                return
            except vim.fault.InvalidLogin as e:
                msg = str(getattr(e, "msg", "") or "Cannot complete login due to an incorrect user name or password.")
                if password_given or attempts >= self.login_attempts:
                    raise LoginError(code=10, msg=msg, cause=e, context={"host": self.host, "user": self.username})
                Log.warn(self.logger, msg, host=self.host)

    # ---- keep-alive / teardown ----

    def start_keepalive(self) -> None:
        if self._keepalive is not None or self.keepalive_interval <= 0:
            return
        self._keepalive = _KeepAlive(self, self.keepalive_interval)
        self._keepalive.start()

    def close(self) -> None:
        if self._keepalive is not None:
            self._keepalive.stop()
            self._keepalive = None
        try:
            if self.si is not None:
                Disconnect(self.si)  # type: ignore[misc]
        except Exception as e:
            self.logger.debug("Error during disconnect from %s: %s", self.host, e)
        finally:
            self.si = None
            self.stub = None
            self._content = None
