# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vimsh/shell/shell.py
"""
Interactive host for registered commands.

The shell itself only dispatches lines to the command registry; all
behaviour lives in plugins.
"""
from __future__ import annotations

import cmd
import logging
from typing import Any, List, Optional

from .commands import REGISTRY, CommandRegistry
from .state import ShellState


class VimShell(cmd.Cmd):
    intro = "vimsh: type 'help' for commands, 'quit' to leave.\n"
    prompt = "(vimsh) "

    def __init__(
        self,
        state: ShellState,
        logger: logging.Logger,
        *,
        registry: Optional[CommandRegistry] = None,
        verbose: int = 0,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.state = state
        self.logger = logger
        self.registry = registry or REGISTRY
        self.verbose = verbose
        self.last_rc = 0

    def _update_prompt(self) -> None:
        self.prompt = f"(vimsh {self.state.current}) " if self.state.current else "(vimsh) "

    def emptyline(self) -> bool:
        return False

    def default(self, line: str) -> bool:
        self.last_rc = self.registry.dispatch(self.state, line, self.logger, verbose=self.verbose)
        return False

    def postcmd(self, stop: bool, line: str) -> bool:
        self._update_prompt()
        return stop

    def completenames(self, text: str, *ignored: Any) -> List[str]:
        names = super().completenames(text, *ignored)
        return sorted(set(names) | {n for n in self.registry.names() if n.startswith(text)})

    def do_help(self, arg: str) -> Optional[bool]:
        name = arg.strip()
        if name:
            spec = self.registry.get(name)
            if spec is not None:
                spec.parser.print_help(self.stdout)
                return None
            return super().do_help(arg)
        for spec in self.registry.specs():
            self.stdout.write(f"{spec.name:<14} {spec.summary}\n")
        self.stdout.write(f"{'quit':<14} Leave the shell\n")
        return None

    def do_quit(self, arg: str) -> bool:
        """Leave the shell"""
        return True

    do_exit = do_quit

    def do_EOF(self, arg: str) -> bool:
        self.stdout.write("\n")
        return True

    def run_commands(self, lines: List[str]) -> int:
        """
        Run lines non-interactively; stop at the first failure.
        """
        for line in lines:
            self.onecmd(line)
            self.postcmd(False, line)
            if self.last_rc != 0:
                return self.last_rc
        return 0
