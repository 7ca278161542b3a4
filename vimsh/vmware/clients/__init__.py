# SPDX-License-Identifier: LGPL-3.0-or-later
# vimsh/vmware/clients/__init__.py
"""
vSphere API client modules:
- session: VimSession (TLS trust, revision negotiation, login, keep-alive)
"""

__all__ = []
