# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vimsh/core/utils.py
from __future__ import annotations

import datetime as _dt
import json
import sys
from pathlib import Path
from typing import Any, Optional

try:
    from rich.console import Console
except Exception:  # pragma: no cover
    Console = None  # type: ignore


def is_tty(stream=None) -> bool:
    """
    Check if the specified stream (or stdout by default) is a TTY.
    """
    try:
        if stream is None:
            stream = sys.stdout
        return stream.isatty()
    except Exception:
        return False


def create_console(*, stderr: bool = False) -> Any:
    """
    Rich console for user-facing messages and prompts.

    Markup, emoji codes and highlighting are off: host names, task names and
    fingerprints come from servers and must print verbatim.
    """
    if Console is None:  # pragma: no cover
        return None
    return Console(stderr=stderr, highlight=False, markup=False, emoji=False)


class U:
    @staticmethod
    def ensure_dir(p: Path, mode: int = 0o700) -> None:
        p.mkdir(parents=True, exist_ok=True, mode=mode)

    @staticmethod
    def json_dump(obj: Any, *, indent: Optional[int] = 2) -> str:
        try:
            return json.dumps(obj, indent=indent, sort_keys=True, default=str)
        except Exception:
            return repr(obj)

    @staticmethod
    def now_local() -> _dt.datetime:
        return _dt.datetime.now().astimezone()
