# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vimsh/shell/commands.py
"""
Command registry for shell plugins.

A plugin declares a command with the @command decorator; options are plain
argparse arguments. Parsing errors never exit the process, they surface as
usage errors inside the shell.
"""
from __future__ import annotations

import argparse
import logging
import shlex
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..core.exceptions import VimshError, format_exception_for_cli
from ..core.logger import Log
from ..vmware.vsphere.errors import VsphereExitCode, classify_exit_code

Handler = Callable[[Any, argparse.Namespace, logging.Logger], Any]
ArgDecl = Tuple[Tuple[str, ...], Dict[str, Any]]


class UsageError(VimshError):
    pass


class _HelpShown(Exception):
    pass


class ShellArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        raise UsageError(code=2, msg=f"{self.prog}: {message}")

    def exit(self, status: int = 0, message: Optional[str] = None) -> None:  # type: ignore[override]
        if message:
            self._print_message(message)
        raise _HelpShown()


def arg(*flags: str, **kwargs: Any) -> ArgDecl:
    """Declare one argparse argument for @command(args=[...])."""
    return flags, kwargs


@dataclass
class CommandSpec:
    name: str
    summary: str
    handler: Handler
    parser: ShellArgumentParser
    aliases: Tuple[str, ...] = field(default_factory=tuple)

    def parse(self, argv: Sequence[str]) -> argparse.Namespace:
        return self.parser.parse_args(list(argv))


class CommandRegistry:
    def __init__(self) -> None:
        self._commands: Dict[str, CommandSpec] = {}
        self._aliases: Dict[str, str] = {}

    def command(
        self,
        name: str,
        *,
        summary: str,
        args: Sequence[ArgDecl] = (),
        aliases: Sequence[str] = (),
    ) -> Callable[[Handler], Handler]:
        def decorator(fn: Handler) -> Handler:
            parser = ShellArgumentParser(prog=name, description=summary, add_help=True)
            for flags, kwargs in args:
                parser.add_argument(*flags, **kwargs)
            self.register(CommandSpec(name=name, summary=summary, handler=fn, parser=parser, aliases=tuple(aliases)))
            return fn

        return decorator

    def register(self, spec: CommandSpec) -> None:
        if spec.name in self._commands:
            raise VimshError(msg=f"command already registered: {spec.name}")
        self._commands[spec.name] = spec
        for a in spec.aliases:
            self._aliases[a] = spec.name

    def get(self, name: str) -> Optional[CommandSpec]:
        return self._commands.get(self._aliases.get(name, name))

    def names(self) -> List[str]:
        return sorted(self._commands)

    def specs(self) -> List[CommandSpec]:
        return [self._commands[n] for n in self.names()]

    def dispatch(self, state: Any, line: str, logger: logging.Logger, *, verbose: int = 0) -> int:
        """
        Run one command line. Returns an exit code; errors are logged, not
        raised, so the shell keeps running.
        """
        try:
            argv = shlex.split(line)
        except ValueError as e:
            logger.error("%s", e)
            return int(VsphereExitCode.USAGE)
        if not argv:
            return int(VsphereExitCode.OK)

        spec = self.get(argv[0])
        if spec is None:
            logger.error("Unknown command: %s", argv[0])
            return int(VsphereExitCode.USAGE)

        try:
            ns = spec.parse(argv[1:])
            spec.handler(state, ns, logger)
            return int(VsphereExitCode.OK)
        except _HelpShown:
            return int(VsphereExitCode.OK)
        except KeyboardInterrupt:
            logger.warning("Interrupted by user (Ctrl+C).")
            return int(VsphereExitCode.INTERRUPTED)
        except VimshError as e:
            code = classify_exit_code(e)
            Log.fail(logger, f"{spec.name}: {format_exception_for_cli(e, verbose=verbose)}")
            return int(code)
        except Exception as e:
            code = classify_exit_code(e)
            logger.exception("%s crashed (%s): %s", spec.name, code.name, e)
            return int(code)


REGISTRY = CommandRegistry()
command = REGISTRY.command
