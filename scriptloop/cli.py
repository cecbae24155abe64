from __future__ import annotations

import argparse
import json
import sys
import traceback
from typing import Sequence

from scriptloop import __version__
from scriptloop.core.config import get_loop_config
from scriptloop.core.errors import LoopError
from scriptloop.runtime.loop import LoopContext, ScriptLoop


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scriptloop",
        description="Out-of-process script execution loop driven over line-delimited JSON.",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
        help="Print version and exit.",
    )

    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser(
        "run",
        help="Serve entries from stdin until a native entry arrives (default).",
    )
    run_parser.set_defaults(handler=handle_run)

    config_parser = subparsers.add_parser(
        "print-config",
        help="Print the resolved loop configuration to stdout.",
    )
    config_parser.set_defaults(handler=handle_print_config)

    return parser


def handle_run(_args: argparse.Namespace) -> int:
    config = get_loop_config()

    for stream in (sys.stdin, sys.stdout):
        reconfigure = getattr(stream, "reconfigure", None)
        if reconfigure is not None:
            reconfigure(encoding="utf-8")

    context = LoopContext.bootstrap(config)
    failure: str | None = None
    code = 0
    try:
        ScriptLoop(context).run()

    except LoopError as exc:
        # Includes the parent closing stdin; nothing can be reported over it.
        failure = f"[SCRIPTLOOP ERROR] {exc}"
        code = 2

    except Exception:
        failure = traceback.format_exc()
        code = 3

    finally:
        context.close()

    # Descriptors are restored by now, so this reaches the real stderr.
    if failure:
        print(failure, file=sys.stderr)
    return code


def handle_print_config(_args: argparse.Namespace) -> int:
    payload = get_loop_config().model_dump(mode="json")
    print(json.dumps(payload, indent=2, sort_keys=True))
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    handler = getattr(args, "handler", handle_run)
    return handler(args)
