# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Command-line interface for dapp.

This module provides the `dapp` entry point, a small tool for checking the
inputs an application built on dapp will see.

Commands:

    validate: Check that a config file decodes in its format
    paths: Report what the current process may do with some paths

Example:
    Validate a config file (format inferred from the suffix):
        ```bash
        $ dapp validate ~/.config/myapp/config.toml
        ```

    Force a format:
        ```bash
        $ dapp validate myapp.conf --format yaml
        ```

    Show permissions for several paths:
        ```bash
        $ dapp paths /etc/myapp /var/log/myapp
        ```

    Print the first path that could be created:
        ```bash
        $ dapp paths --first creatable /var/log/myapp ~/.local/state/myapp
        ```

Exit Codes:

- 0: Success
- 1: Error (missing or invalid file, no matching path)

"""

from __future__ import annotations

import argparse
from collections.abc import Mapping
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
import sys
from typing import Any

from dapp.config.formats import available_formats, format_for_path, get_format
from dapp.config.settings import Settings
from dapp.exceptions import ConfigError, DappError, DecodeError
from dapp.logging import get_logger, set_global_logger
from dapp.path import PREDICATES, all_valid_paths, first_valid_path


@dataclass
class _Document(Settings):
    """Settings type recording only the top-level keys of a document."""

    top_level_keys: list[str] | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> _Document:
        if not isinstance(data, Mapping):
            raise DecodeError(
                f"expected a mapping at the top level, got {type(data).__name__}"
            )
        document = cls.new()
        document.top_level_keys = [str(key) for key in data]
        return document


def _package_version() -> str:
    try:
        return version("dapp")
    except PackageNotFoundError:
        from dapp import __version__

        return __version__


def cmd_validate(args: argparse.Namespace) -> int:
    """Handler for 'dapp validate' command.

    Decodes a config file without merging it into anything, so format
    errors show up before an application silently falls back to defaults.

    Args:
        args: Parsed command-line arguments containing the file path,
            optional format name, and verbosity flags.

    Returns:
        Exit code (0 for a valid file, 1 otherwise).

    """
    logger = get_logger(verbose=args.verbose, debug=args.debug)
    set_global_logger(logger)

    config_path = Path(args.file).resolve()

    print(f"Validating config file: {config_path}")
    print()

    document = _Document.new()
    try:
        logger.step(1, 2, "Resolving format...")
        config_format = (
            format_for_path(config_path) if args.format is None else get_format(args.format)
        )
        logger.step(2, 2, f"Decoding {config_format.name} document...")
        document.try_filepath(config_path, config_format)
    except ConfigError as err:
        print(f"Error: {err}")
        if args.verbose or args.debug:
            import traceback

            traceback.print_exc()
        return 1

    keys = document.top_level_keys or []

    print("=" * 70)
    print("VALIDATION RESULTS")
    print("=" * 70)
    print(f"File:        {config_path}")
    print(f"Format:      {config_format.name}")
    print(f"Keys ({len(keys)}):  {', '.join(keys) if keys else '(empty)'}")
    print("=" * 70)
    print()
    print("[SUCCESS] Config file is valid!")
    return 0


def cmd_paths(args: argparse.Namespace) -> int:
    """Handler for 'dapp paths' command.

    Without a selector, prints a table of every predicate for every path.
    With --first or --all, prints only the matching paths, one per line,
    so the output can be used in scripts.

    Args:
        args: Parsed command-line arguments containing the paths and an
            optional selector.

    Returns:
        Exit code (0 on success, 1 when --first finds no match).

    Note:
        Verbose messages go to stderr.

    """
    # stdout carries only results so the output can be piped
    logger = get_logger(verbose=args.verbose, debug=False, stream=sys.stderr)
    set_global_logger(logger)

    if args.first:
        match = first_valid_path(iter(args.paths), PREDICATES[args.first])
        if match is None:
            logger.verbose("PATH", f"No path satisfies {args.first!r}")
            return 1
        print(match)
        return 0

    if args.all:
        for match in all_valid_paths(iter(args.paths), PREDICATES[args.all]):
            print(match)
        return 0

    width = max(len(p) for p in args.paths)
    header = "  ".join(name.ljust(10) for name in PREDICATES)
    print(f"{'PATH'.ljust(width)}  {header}")
    for p in args.paths:
        cells = "  ".join(
            ("yes" if predicate(p) else "no").ljust(10)
            for predicate in PREDICATES.values()
        )
        print(f"{p.ljust(width)}  {cells}")
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the dapp CLI.

    This function is registered as the 'dapp' console script in pyproject.toml.
    """
    parser = argparse.ArgumentParser(
        prog="dapp",
        description="dapp - check config files and paths for considerate applications",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"dapp {_package_version()}",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
        required=True,
    )

    # 'validate' command
    parser_validate = subparsers.add_parser(
        "validate",
        help="Check that a config file decodes",
        description="Decode a config file in its format and list its top-level keys.",
    )
    parser_validate.add_argument(
        "file",
        help="Path to the config file",
    )
    parser_validate.add_argument(
        "--format",
        default=None,
        help=f"Format of the file ({', '.join(available_formats())}; default: from suffix)",
    )
    parser_validate.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show loading progress and tracebacks on errors",
    )
    parser_validate.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Show detailed debugging output (implies --verbose)",
    )
    parser_validate.set_defaults(func=cmd_validate)

    # 'paths' command
    parser_paths = subparsers.add_parser(
        "paths",
        help="Report existence and permissions of paths",
        description="Check what the current process may do with each path.",
    )
    parser_paths.add_argument(
        "paths",
        nargs="+",
        help="Paths to check, in priority order",
    )
    selector = parser_paths.add_mutually_exclusive_group()
    selector.add_argument(
        "--first",
        choices=sorted(PREDICATES),
        default=None,
        help="Print the first path satisfying the predicate",
    )
    selector.add_argument(
        "--all",
        choices=sorted(PREDICATES),
        default=None,
        help="Print every path satisfying the predicate",
    )
    parser_paths.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Explain why nothing was printed",
    )
    parser_paths.set_defaults(func=cmd_paths)

    # Parse and dispatch
    args = parser.parse_args(argv)

    try:
        exit_code = args.func(args)
    except DappError as err:
        # Catch any dapp errors the handlers did not expect
        print(f"Error: {err}")
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
