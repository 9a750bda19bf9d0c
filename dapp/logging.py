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

"""Logging interface for dapp.

Library modules report what they load through this interface instead of
printing directly. The logger can be configured globally or passed as a
parameter for better isolation.

The logger supports three output levels:
- Step: Always printed (progress of a multi-stage CLI command)
- Verbose: Only printed when verbose mode is enabled
- Debug: Only printed when debug mode is enabled (implies verbose)

Example:
    Configure global logger:
        ```python
        from dapp.logging import get_logger, set_global_logger

        set_global_logger(get_logger(verbose=True))
        ```

    Keep stdout for results and send diagnostics to stderr:
        ```python
        import sys

        set_global_logger(get_logger(verbose=True, stream=sys.stderr))
        ```

    Use in library code:
        ```python
        from dapp.logging import get_global_logger

        logger = get_global_logger()
        logger.verbose("CONFIG", "Loaded config file: app.yaml")
        logger.debug("CONFIG", "Decoded keys: flag, name")
        ```

Note:
    The default logger is silent, so applications using dapp as a library
    see no output unless they configure one. The CLI configures the global
    logger when commands are executed.
"""

from __future__ import annotations

from typing import Protocol, TextIO


class Logger(Protocol):
    """Protocol for logger implementations."""

    def step(self, step: int, total: int, message: str) -> None:
        """Print a step indicator.

        Args:
            step: Current step number (1-based).
            total: Total number of steps.
            message: Step description.
        """
        ...

    def verbose(self, prefix: str, message: str) -> None:
        """Print a verbose log message.

        Args:
            prefix: Message prefix (e.g., "CONFIG", "PATH").
            message: Log message.
        """
        ...

    def debug(self, prefix: str, message: str) -> None:
        """Print a debug log message.

        Args:
            prefix: Message prefix (e.g., "CONFIG", "FORMAT").
            message: Log message.
        """
        ...


class DefaultLogger:
    """Default logger implementation that prints to stdout.

    This logger respects verbose and debug flags and formats output
    consistently with the CLI output format. Output goes to stdout unless
    another text stream is given.
    """

    def __init__(
        self,
        verbose: bool = False,
        debug: bool = False,
        stream: TextIO | None = None,
    ) -> None:
        """Initialize logger with verbosity settings.

        Args:
            verbose: If True, print verbose messages.
            debug: If True, print debug messages (implies verbose).
            stream: Where to write. None means the current sys.stdout.
        """
        self._verbose = verbose or debug
        self._debug = debug
        self._stream = stream

    def _emit(self, line: str) -> None:
        print(line, file=self._stream)

    def step(self, step: int, total: int, message: str) -> None:
        """Print a step indicator."""
        self._emit(f"[{step}/{total}] {message}")

    def verbose(self, prefix: str, message: str) -> None:
        """Print a verbose log message (only when verbose mode is active)."""
        if self._verbose:
            self._emit(f"[{prefix}] {message}")

    def debug(self, prefix: str, message: str) -> None:
        """Print a debug log message (only when debug mode is active)."""
        if self._debug:
            self._emit(f"[{prefix}] {message}")


class SilentLogger:
    """Logger that suppresses all output."""

    def step(self, step: int, total: int, message: str) -> None:
        pass

    def verbose(self, prefix: str, message: str) -> None:
        pass

    def debug(self, prefix: str, message: str) -> None:
        pass


# Global logger instance (defaults to silent)
_global_logger: Logger = SilentLogger()


def get_logger(
    verbose: bool = False,
    debug: bool = False,
    stream: TextIO | None = None,
) -> Logger:
    """Get a logger instance with specified verbosity.

    Args:
        verbose: If True, logger will print verbose messages.
        debug: If True, logger will print debug messages (implies verbose).
        stream: Text stream for output (default: sys.stdout).

    Returns:
        A logger instance configured with the specified verbosity.
    """
    return DefaultLogger(verbose=verbose, debug=debug, stream=stream)


def get_global_logger() -> Logger:
    """Get the global logger instance.

    Returns:
        The current global logger instance.
    """
    return _global_logger


def set_global_logger(logger: Logger) -> None:
    """Set the global logger instance.

    Args:
        logger: Logger instance to use as the global logger.

    Note:
        This affects every configuration loaded afterwards in the process.
    """
    global _global_logger
    _global_logger = logger
