# SPDX-License-Identifier: LGPL-3.0-or-later
import os
import sys
from pathlib import Path

import pytest

_THIS_DIR = Path(__file__).resolve().parent
_REPO_ROOT = _THIS_DIR.parent

for _p in (_REPO_ROOT, _THIS_DIR):
    if str(_p) not in sys.path:
        sys.path.insert(0, str(_p))

os.environ.setdefault("PYTHONPATH", str(_REPO_ROOT))


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Keep tests away from the real ~/.vimsh and the caller's credentials."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    for var in ("VIMSH_USER", "VIMSH_PASSWORD", "VIMSH_VIMREV"):
        monkeypatch.delenv(var, raising=False)
