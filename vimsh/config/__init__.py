# SPDX-License-Identifier: LGPL-3.0-or-later
# vimsh/config/__init__.py
from .config_loader import DEFAULTS, Config

__all__ = ["Config", "DEFAULTS"]
