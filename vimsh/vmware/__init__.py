# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vimsh/vmware/__init__.py
"""vSphere integration: URI parsing, TLS trust, sessions, task stream."""

from .clients.session import VimSession
from .known_hosts import KnownHosts
from .trust import TrustVerifier
from .uri import ConnectionURI, parse_uri
from .vsphere.tasks import TaskWatcher

__all__ = ["ConnectionURI", "KnownHosts", "TaskWatcher", "TrustVerifier", "VimSession", "parse_uri"]
