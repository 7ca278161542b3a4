# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vimsh/cli/args.py
from __future__ import annotations

import argparse
import logging
from typing import Any, Dict, Optional, Sequence, Tuple

from ..config.config_loader import Config
from ..core.logger import Log, c
from ..core.utils import U


def build_parser() -> argparse.ArgumentParser:
    from .. import __version__

    p = argparse.ArgumentParser(
        prog="vimsh",
        description=c("vimsh: interactive vSphere shell", "green", ["bold"]),
        epilog="Example: vimsh -c 'connect root@esx01.lab' -c tasks",
    )
    p.add_argument(
        "--config",
        action="append",
        default=[],
        help="YAML/JSON config file (repeatable; later overrides earlier). Default: ~/.vimsh/config.yaml",
    )
    p.add_argument("--dump-config", action="store_true", help="Print merged normalized config and exit.")
    p.add_argument("--version", action="version", version=__version__)
    p.add_argument("-v", "--verbose", action="count", default=0, help="Verbosity: -vv debug, -vvv trace")
    p.add_argument("-q", "--quiet", action="count", default=0, help="Less output: -q warnings, -qq errors")
    p.add_argument("--log-file", dest="log_file", default=None, help="Write logs to file.")
    p.add_argument("--json-logs", dest="json_logs", action="store_true", help="Emit logs as NDJSON.")
    p.add_argument(
        "-c",
        "--cmd",
        dest="commands",
        action="append",
        default=[],
        help="Run a shell command and exit (repeatable, runs in order).",
    )
    p.add_argument("--session", dest="session_name", default=None, help="Session name for saved connection records.")
    p.add_argument("--known-hosts", dest="known_hosts_file", default=None, help="known_hosts file to use.")
    return p


def _build_preparser() -> argparse.ArgumentParser:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", action="append", default=[])
    pre.add_argument("-v", "--verbose", action="count", default=0)
    pre.add_argument("-q", "--quiet", action="count", default=0)
    pre.add_argument("--log-file", dest="log_file", default=None)
    pre.add_argument("--json-logs", dest="json_logs", action="store_true")
    return pre


def parse_args_with_config(
    argv: Optional[Sequence[str]] = None,
    logger: Optional[logging.Logger] = None,
) -> Tuple[argparse.Namespace, Dict[str, Any], logging.Logger]:
    """
    Phase 0: parse only the flags needed to locate config and set up logging
    Phase 1: load + merge config files
    Phase 2: apply config as parser defaults, then full parse (CLI wins)
    Phase 3: fold CLI overrides back into the normalized config
    """
    import sys

    if argv is None:
        argv = sys.argv[1:]
    argv = list(argv)

    pre = _build_preparser()
    args0, _rest = pre.parse_known_args(argv)

    if logger is None:
        logger = Log.setup(
            args0.verbose,
            args0.log_file,
            quiet=args0.quiet,
            json_logs=args0.json_logs,
        )

    paths = Config.expand_configs(logger, list(args0.config or []))
    conf = Config.load_many(logger, paths)

    parser = build_parser()
    Config.apply_as_defaults(logger, parser, conf)
    args = parser.parse_args(argv)

    for key in ("session_name", "known_hosts_file"):
        v = getattr(args, key, None)
        if v is not None:
            conf[key] = v
    conf = Config.normalize(conf)

    if args.dump_config:
        print(U.json_dump(conf))
        raise SystemExit(0)

    return args, conf, logger
