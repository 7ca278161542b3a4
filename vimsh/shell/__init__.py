# SPDX-License-Identifier: LGPL-3.0-or-later
# vimsh/shell/__init__.py
"""
Shell host:
- commands: command registry used by plugins
- state: open connections and saved session records
- shell: cmd.Cmd front end
"""

__all__ = []
