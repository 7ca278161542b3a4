# SPDX-License-Identifier: LGPL-3.0-or-later
# vimsh/cli/__init__.py
"""Command-line entry: argument parsing and config loading."""

__all__ = []
