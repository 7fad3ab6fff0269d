"""Command line tool for rendering the install manifests of an application."""

import argparse
import asyncio
import logging
import sys
import traceback

from hub_render.exceptions import HubRenderException
from . import render, values

_LOGGER = logging.getLogger(__name__)


def _make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Command line utility for rendering application install manifests.",
    )
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    )

    subparsers = parser.add_subparsers(dest="command", help="Command", required=True)

    render.RenderAction.register(subparsers)
    values.ValuesAction.register(subparsers)
    return parser


def main(argv: list[str] | None = None) -> None:
    """hub-render command line tool main entry point."""
    parser = _make_parser()
    args = parser.parse_args(argv)

    if args.log_level:
        logging.basicConfig(level=args.log_level)

    action = args.cls()
    try:
        asyncio.run(action.run(**vars(args)))
    except HubRenderException as err:
        if args.log_level == "DEBUG":
            traceback.print_exc(file=sys.stderr)
        print("hub-render error: ", err, file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
