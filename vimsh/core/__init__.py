# vimsh/core/__init__.py
from .exceptions import Fatal, VimshError, VMwareError
from .logger import Log

__all__ = ["Fatal", "VimshError", "VMwareError", "Log"]
