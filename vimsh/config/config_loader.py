# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vimsh/config/config_loader.py
"""
YAML/JSON configuration for vimsh.

Files are merged in order (later overrides earlier). When no file is given
on the command line, ~/.vimsh/config.yaml is used if it exists.
"""
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from ..core.exceptions import Fatal

DEFAULT_HOME = Path("~/.vimsh")
DEFAULT_CONFIG_FILE = DEFAULT_HOME / "config.yaml"

DEFAULTS: Dict[str, Any] = {
    "known_hosts_file": str(DEFAULT_HOME / "known_hosts"),
    "session_dir": str(DEFAULT_HOME / "sessions"),
    "session_name": "default",
    "max_api_version": "8.0",
    "keepalive_interval": 600,
    "login_attempts": 3,
    "tasks_max_wait": 30,
    "connect_timeout": 10.0,
    "user_env": "VIMSH_USER",
    "password_env": "VIMSH_PASSWORD",
    "vimrev_env": "VIMSH_VIMREV",
}

_INT_KEYS = ("keepalive_interval", "login_attempts", "tasks_max_wait")
_FLOAT_KEYS = ("connect_timeout",)


_NO_CAP = ("", "none", "off")


def api_cap(value: Any) -> Optional[str]:
    """
    "8.0" / 8.0 -> "8.0"; None, "", "none", "off" -> None (no cap).
    """
    if value is None:
        return None
    s = str(value).strip()
    return None if s.lower() in _NO_CAP else s


class Config:
    @staticmethod
    def expand_configs(logger: logging.Logger, cfgs: Sequence[str]) -> List[Path]:
        """
        Resolve config arguments to existing files. An explicitly named file
        that does not exist is an error; the implicit default is optional.
        """
        out: List[Path] = []
        for c in cfgs:
            p = Path(c).expanduser()
            if not p.is_file():
                raise Fatal(code=2, msg=f"Config file not found: {p}")
            out.append(p)
        if not cfgs:
            default = DEFAULT_CONFIG_FILE.expanduser()
            if default.is_file():
                logger.debug("Using default config %s", default)
                out.append(default)
        return out

    @staticmethod
    def load_one(path: Path) -> Dict[str, Any]:
        raw = path.read_text(encoding="utf-8")
        try:
            if path.suffix.lower() == ".json":
                data = json.loads(raw or "{}")
            else:
                data = yaml.safe_load(raw)
        except (ValueError, yaml.YAMLError) as e:
            raise Fatal(code=2, msg=f"Invalid config file {path}: {e}", cause=e)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise Fatal(code=2, msg=f"Config file {path} must contain a mapping at top level")
        return data

    @staticmethod
    def load_many(logger: logging.Logger, paths: Sequence[Path]) -> Dict[str, Any]:
        merged: Dict[str, Any] = {}
        for p in paths:
            data = Config.load_one(p)
            logger.debug("Loaded config %s (%d keys)", p, len(data))
            merged.update(data)
        return merged

    @staticmethod
    def normalize(conf: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Overlay user config on DEFAULTS and coerce numeric knobs.
        """
        out = dict(DEFAULTS)
        out.update({k: v for k, v in (conf or {}).items() if v is not None})
        try:
            for k in _INT_KEYS:
                out[k] = int(out[k])
            for k in _FLOAT_KEYS:
                out[k] = float(out[k])
        except (TypeError, ValueError) as e:
            raise Fatal(code=2, msg=f"Invalid numeric config value: {e}", cause=e)
        explicit_null = conf is not None and "max_api_version" in conf and conf["max_api_version"] is None
        out["max_api_version"] = None if explicit_null else api_cap(out["max_api_version"])
        return out

    @staticmethod
    def apply_as_defaults(logger: logging.Logger, parser: argparse.ArgumentParser, conf: Dict[str, Any]) -> None:
        """
        Push config values into parser defaults so CLI flags still override.
        Only keys that match a parser destination are applied.
        """
        dests = {a.dest for a in parser._actions}
        applied = {k: v for k, v in conf.items() if k in dests}
        if applied:
            logger.debug("Config defaults applied to CLI: %s", ", ".join(sorted(applied)))
            parser.set_defaults(**applied)
