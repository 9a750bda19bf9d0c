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

"""
Layered configuration merging for dapp.

A configuration value starts with every field unset and is filled in by a
sequence of sources, called in descending priority order:

    settings = AppSettings.new()
    settings.optional_config(cli_overrides)     # highest priority
    settings.env()
    settings.filepath("./app.yaml")
    settings.filepath(Path.home() / ".config/app/config.toml")
    settings.ensure_loaded()                    # lowest: the defaults

Merge Behavior
--------------
"First writer wins" per field, for the whole lifetime of the value:
  - A field that is already set is never overwritten by a later source
  - A field that is unset in the source leaves the receiver unchanged
  - Merge order is therefore priority order, highest priority first

Loaded Flag
-----------
Besides its fields, every configuration carries a hidden "loaded" flag
recording that some source has contributed. It is what ensure_loaded()
looks at: a value no source ever loaded is replaced wholesale by the type's
default, while a value that loaded something (even if some fields are
still unset) is left alone. Successfully decoding a string or file always
sets the flag, even when the document contributed no new field.

Sources
-------
config / optional_config : another configuration of the same type
env : environment variables (naming and parsing are up to the type)
string : a document held in a string
filepath / optional_filepath : a document on disk, skipped when absent
try_filepath / try_optional_filepath : a document on disk that must exist

Document sources take a format per call (see dapp.config.formats): a
registered name, a ConfigFormat class, or an instance. File sources infer
the format from the file suffix when none is given.

Error Handling
--------------
- ConfigFileNotFoundError: try_filepath with a path that does not exist
- OptionalConfigFileNotFoundError: try_optional_filepath with no path
- ConfigReadError: the file exists but cannot be opened or read
- ConfigParseError: the document does not decode; no field is applied
- All errors are chained with "from err"; the value stays usable, so a
  caller can ignore a failing optional source and carry on
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from pathlib import Path
from typing import Any, TypeVar

from dapp.config.formats import DEFAULT_FORMAT, FormatSpec, format_for_path, get_format
from dapp.exceptions import (
    ConfigFileNotFoundError,
    ConfigParseError,
    ConfigReadError,
    DecodeError,
    OptionalConfigFileNotFoundError,
)
from dapp.logging import get_global_logger
from dapp.path import PathLike
from dapp.path import exists as path_exists

Self = TypeVar("Self", bound="Configuration")


class Configuration(ABC):
    """Base class for configuration types loaded from layered sources.

    Subclasses supply the primitives: new(), default(), from_mapping(),
    config(), env(), set_loaded() and is_loaded(). Every other method is
    built on those. Most applications subclass Settings instead, which
    implements the primitives for dataclasses.

    Implementation rules for the primitives:

    - Every assignable field uses None for "unset".
    - config() and env() only fill fields that are None, and must call
      set_loaded() when they change a field.
    - new() returns a value with every field None and loaded False.
    - default() returns the semantic defaults, with loaded False.
    """

    # -------------------------------
    # Primitives
    # -------------------------------

    @classmethod
    @abstractmethod
    def new(cls: type[Self]) -> Self:
        """Return a value with every field unset."""

    @classmethod
    @abstractmethod
    def default(cls: type[Self]) -> Self:
        """Return the value used when no source loads anything."""

    @classmethod
    @abstractmethod
    def from_mapping(cls: type[Self], data: Mapping[str, Any]) -> Self:
        """Build a fragment from decoded document data.

        Raises:
            DecodeError: If data is not a mapping or a value has the wrong
                type for its field.
        """

    @abstractmethod
    def config(self: Self, other: Self) -> Self:
        """Fill unset fields from another configuration of the same type."""

    @abstractmethod
    def env(self: Self) -> Self:
        """Fill unset fields from environment variables."""

    @abstractmethod
    def set_loaded(self) -> None:
        """Record that some source has loaded this configuration."""

    @abstractmethod
    def is_loaded(self) -> bool:
        """Return True if any source has loaded this configuration."""

    # -------------------------------
    # Derived operations
    # -------------------------------

    def optional_config(self: Self, other: Self | None) -> Self:
        """Like config(), but does nothing when other is None."""
        if other is not None:
            self.config(other)
        return self

    def string(self: Self, text: str, fmt: FormatSpec = DEFAULT_FORMAT) -> Self:
        """Fill unset fields from a document held in a string.

        Args:
            text: The document.
            fmt: Format of the document (default: YAML).

        Returns:
            self, for chaining.

        Raises:
            ConfigParseError: If the document does not decode. No field is
                changed in that case.
            ConfigError: If fmt names an unknown format.
        """
        logger = get_global_logger()
        config_format = get_format(fmt)
        try:
            other = config_format.from_string(text, type(self))
        except DecodeError as err:
            logger.verbose("CONFIG", f"Failed to parse config string: {err}")
            raise ConfigParseError(err, string=text) from err

        logger.debug("CONFIG", f"Merging {config_format.name} config string")
        self.config(other)
        self.set_loaded()
        return self

    def filepath(self: Self, path: PathLike, fmt: FormatSpec | None = None) -> Self:
        """Fill unset fields from a document on disk.

        A path with nothing at it is skipped silently: optional config files
        are common and their absence is not an error. Use try_filepath()
        when the file is required.

        Args:
            path: Location of the document.
            fmt: Format of the document (default: inferred from the suffix,
                falling back to YAML).

        Returns:
            self, for chaining.

        Raises:
            ConfigReadError: If the file exists but cannot be opened or read.
            ConfigParseError: If the document does not decode. No field is
                changed in that case.
        """
        logger = get_global_logger()
        path = Path(path)
        if not path_exists(path):
            logger.verbose("CONFIG", f"Config file not found, skipping: {path}")
            return self

        config_format = format_for_path(path) if fmt is None else get_format(fmt)
        logger.verbose("CONFIG", f"Loading {config_format.name} config file: {path}")
        try:
            with path.open("rb") as f:
                other = config_format.from_reader(f, type(self))
        except OSError as err:
            raise ConfigReadError(path, err) from err
        except DecodeError as err:
            raise ConfigParseError(err, path=path) from err

        self.config(other)
        self.set_loaded()
        return self

    def optional_filepath(
        self: Self, path: PathLike | None, fmt: FormatSpec | None = None
    ) -> Self:
        """Like filepath(), but does nothing when path is None."""
        if path is None:
            return self
        return self.filepath(path, fmt)

    def try_filepath(self: Self, path: PathLike, fmt: FormatSpec | None = None) -> Self:
        """Like filepath(), but a missing file is an error.

        Raises:
            ConfigFileNotFoundError: If nothing exists at path.
            ConfigReadError: See filepath().
            ConfigParseError: See filepath().
        """
        path = Path(path)
        if not path_exists(path):
            raise ConfigFileNotFoundError(path)
        return self.filepath(path, fmt)

    def try_optional_filepath(
        self: Self, path: PathLike | None, fmt: FormatSpec | None = None
    ) -> Self:
        """Like try_filepath(), but takes an optional path.

        Unlike optional_filepath(), a None path is an error: the "try"
        loaders always require a real file.

        Raises:
            OptionalConfigFileNotFoundError: If path is None.
            ConfigFileNotFoundError: If nothing exists at path.
        """
        if path is None:
            raise OptionalConfigFileNotFoundError(None)
        return self.try_filepath(path, fmt)

    def ensure_loaded(self: Self) -> Self:
        """Reset to the type's default if no source ever loaded anything.

        Call after every source has been tried, so an unconfigured value
        never stays all-unset.
        """
        if not self.is_loaded():
            get_global_logger().verbose(
                "CONFIG", f"No source loaded {type(self).__name__}, using defaults"
            )
            self._assign(type(self).default())
        return self

    def _assign(self: Self, other: Self) -> None:
        """Replace this value's state with other's, in place.

        Types that do not keep their state in ``__dict__`` (for example
        slotted classes) must override this.
        """
        state = vars(self)
        state.clear()
        state.update(vars(other))
