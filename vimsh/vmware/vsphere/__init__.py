# SPDX-License-Identifier: LGPL-3.0-or-later
# vimsh/vmware/vsphere/__init__.py
"""
vSphere operations used by shell commands:
- tasks: live task stream over the PropertyCollector
- errors: exit code classification
"""

__all__ = []
