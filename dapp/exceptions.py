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

"""Exception hierarchy for dapp.

This module defines a custom exception hierarchy that allows library users
to distinguish between the ways loading a configuration can fail:

- ConfigFileNotFoundError: A required config file does not exist
- OptionalConfigFileNotFoundError: A required config file was never given
- ConfigReadError: A config file exists but could not be opened or read
- ConfigParseError: A config string or file has an incorrect format

All configuration errors inherit from ConfigError, and every dapp error
inherits from DappError, allowing users to catch all of them with a single
except clause if needed.

Example:
    Tolerating a broken optional source:
        ```python
        from dapp.exceptions import ConfigParseError

        try:
            settings.filepath("~/.config/app/config.yaml")
        except ConfigParseError as e:
            print(f"Ignoring user config: {e}")
        settings.ensure_loaded()
        ```

    Catching all dapp errors:
        ```python
        from dapp.exceptions import DappError

        try:
            settings.try_filepath(path)
        except DappError as e:
            print(f"dapp error: {e}")
        ```
"""

from __future__ import annotations

from pathlib import Path

__all__ = [
    "DappError",
    "ConfigError",
    "ConfigFileNotFoundError",
    "OptionalConfigFileNotFoundError",
    "ConfigReadError",
    "ConfigParseError",
    "DecodeError",
]


class DappError(Exception):
    """Base exception for all dapp errors.

    All dapp-specific exceptions inherit from this class, allowing users
    to catch all dapp errors with a single except clause if needed.
    """

    pass


class ConfigError(DappError):
    """Raised for configuration-related errors.

    This exception is raised directly for problems such as an unknown
    format name, and is the parent of the more specific loading errors
    below.
    """

    pass


class ConfigFileNotFoundError(ConfigError):
    """Raised when a required config file does not exist.

    Only the "try" loaders raise this; the plain loaders skip absent files.

    Attributes:
        path: The path that was looked up.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"could not find a config file at {str(path)!r}")


class OptionalConfigFileNotFoundError(ConfigError):
    """Raised when a "try" loader is handed no path at all.

    Attributes:
        optional_path: Always None; kept so handlers can treat this error
            like ConfigFileNotFoundError.
    """

    def __init__(self, optional_path: Path | None = None) -> None:
        self.optional_path = optional_path
        super().__init__(
            f"could not find an optional config file at {optional_path!r}"
        )


class ConfigReadError(ConfigError):
    """Raised when a config file exists but cannot be opened or read.

    Attributes:
        path: The path of the file.
        source: The underlying OSError.
    """

    def __init__(self, path: Path, source: OSError) -> None:
        self.path = path
        self.source = source
        super().__init__(f"could not read the config file at {str(path)!r}: {source}")


class ConfigParseError(ConfigError):
    """Raised when a config string or file has an incorrect format.

    Exactly one of ``path`` or ``string`` is set, depending on where the
    configuration came from. The decoder's own error is kept on ``source``
    and as ``__cause__``.

    Example:
        Inspecting the decoder error:
            ```python
            try:
                settings.string("flag: [unclosed")
            except ConfigParseError as e:
                print(type(e.source).__name__)  # DecodeError
                print(e.source.__cause__)        # the yaml.YAMLError
            ```
    """

    def __init__(
        self,
        source: Exception,
        *,
        path: Path | None = None,
        string: str | None = None,
    ) -> None:
        self.path = path
        self.string = string
        self.source = source
        if path is not None:
            message = f"The config file at {str(path)!r} has incorrect format: {source}"
        else:
            message = f"The config string {string} has incorrect format: {source}"
        super().__init__(message)


class DecodeError(ConfigError):
    """Raised by a config format when a document cannot become a fragment.

    Covers both syntax errors reported by the parser and values whose type
    does not match the configuration field. The merge methods wrap it into
    ConfigParseError.
    """

    pass
