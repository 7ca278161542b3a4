# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vimsh/__main__.py
from __future__ import annotations

import sys
from typing import Optional, Sequence

from .cli.args import parse_args_with_config
from .core.exceptions import Fatal
from .plugins import load_plugins
from .shell.shell import VimShell
from .shell.state import SessionStore, ShellState


def main(argv: Optional[Sequence[str]] = None) -> None:
    logger = None
    try:
        args, conf, logger = parse_args_with_config(argv)
    except Fatal as e:
        print(f"💥 ERROR    {e}", file=sys.stderr)
        raise SystemExit(e.code)

    load_plugins()

    state = ShellState(
        session=SessionStore(conf["session_dir"], conf["session_name"], logger=logger),
        config=conf,
    )
    shell = VimShell(state, logger, verbose=args.verbose)

    rc = 0
    try:
        if args.commands:
            rc = shell.run_commands(args.commands)
        else:
            shell.cmdloop()
    except KeyboardInterrupt:
        logger.warning("Interrupted by user (Ctrl+C).")
        rc = 130
    finally:
        state.close_all()

    raise SystemExit(rc)


if __name__ == "__main__":
    main()
