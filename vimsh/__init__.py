# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vimsh/__init__.py
"""
vimsh - interactive vSphere shell

Connect to an ESX host or vCenter and watch tasks as they run:

    $ vimsh
    (vimsh) connect administrator@vc01.lab
    (vimsh vc01.lab) tasks

Usage as a library:

    from vimsh import VimSession, TaskWatcher, parse_uri

    session = VimSession(logger, parse_uri("root@esx01"), trust=verifier).connect()
    TaskWatcher(session).watch()
"""

__version__ = "0.1.0"

from .vmware import ConnectionURI, KnownHosts, TaskWatcher, TrustVerifier, VimSession, parse_uri

__all__ = [
    "__version__",
    "ConnectionURI",
    "KnownHosts",
    "TaskWatcher",
    "TrustVerifier",
    "VimSession",
    "parse_uri",
]
