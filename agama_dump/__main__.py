"""Command line interface.

Example::

    $ python -m agama_dump --api /usr/share/agama/openapi --url https://agama.local -o dump.json
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import sys

from . import __version__
from .config import DEFAULT_URL, RunConfig, load_config
from .dumper import dump
from .exceptions import AgamaDumpError, DumpFailedError
from .logging_config import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agama-dump",
        description="Dump the current Agama REST API data",
    )
    parser.add_argument("-a", "--api", metavar="DIR", help="Agama OpenAPI specification directory")
    parser.add_argument(
        "-d", "--debug", action="store_true", default=None, help="Enable debugging"
    )
    parser.add_argument(
        "-u", "--url", metavar="URL", help=f"Agama server URL (default: {DEFAULT_URL})"
    )
    parser.add_argument("-p", "--password", help="Agama login password")
    parser.add_argument(
        "-o", "--output", metavar="FILE", help="Save output to file (default: stdout)"
    )
    parser.add_argument("--env-file", metavar="FILE", help="Read settings from a .env file")
    parser.add_argument(
        "--skip-parameterized",
        action="store_true",
        default=None,
        help="Skip endpoints declaring a required parameter",
    )
    parser.add_argument(
        "--strict-locale-switch",
        action="store_true",
        default=None,
        help="Abort when switching the UI language fails",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def prompt_password(config: RunConfig) -> RunConfig:
    """Read the password from the terminal if it is not configured."""
    if config.agama.password is not None:
        return config
    # do not print the entered password in the terminal
    password = getpass.getpass(f"Enter login password for Agama at {config.agama.url}: ")
    agama = config.agama.model_copy(update={"password": password})
    return config.model_copy(update={"agama": agama})


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(
            env_file=args.env_file,
            url=args.url,
            password=args.password,
            api_dir=args.api,
            output=args.output,
            debug=args.debug,
            skip_parameterized=args.skip_parameterized,
            strict_locale_switch=args.strict_locale_switch,
        )
    except AgamaDumpError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    setup_logging(
        log_level=config.dump.log_level,
        json_format=config.dump.log_json,
        log_file=config.dump.log_file,
    )
    config = prompt_password(config)

    try:
        asyncio.run(dump(config))
    except DumpFailedError as e:
        print(f"{e}: {e.__cause__}", file=sys.stderr)
        if config.dump.debug:
            # print the full backtrace including the cause
            raise
        return 1
    except OSError as e:
        print(f"Agama dump failed: {e}", file=sys.stderr)
        if config.dump.debug:
            raise
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
