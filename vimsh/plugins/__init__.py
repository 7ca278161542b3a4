# SPDX-License-Identifier: LGPL-3.0-or-later
# vimsh/plugins/__init__.py
"""Command plugins. Importing a plugin module registers its commands."""
from __future__ import annotations

import importlib

BUILTIN_PLUGINS = ("vim",)


def load_plugins() -> None:
    for name in BUILTIN_PLUGINS:
        importlib.import_module(f"{__name__}.{name}")
