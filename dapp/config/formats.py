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

"""Config formats and format registry for dapp.

A config format turns a document (a string, or a binary file object) into a
configuration fragment of a given type. The merge methods on Configuration
never parse anything themselves; they look up a format and hand it the
source, so the same configuration type can be read from YAML in one call and
from JSON in the next.

Built-in formats:

- yaml / yml: YamlFormat (PyYAML safe_load)
- json: JsonFormat (standard library json)
- toml: TomlFormat (standard library tomllib)

Design Philosophy:
    - Formats are stateless; a new instance is created for each lookup
    - Registration happens at module import time
    - Registry is a simple dict keyed by lowercase name
    - A format only parses; type checking of field values belongs to the
      configuration type's from_mapping()

Example:
    Adding a format:
        ```python
        import json5

        from dapp.config.formats import ConfigFormat, register_format

        class Json5Format(ConfigFormat):
            name = "json5"
            suffixes = (".json5",)
            errors = (ValueError,)

            def loads(self, text):
                return json5.loads(text)

            def load(self, stream):
                return json5.loads(stream.read().decode("utf-8"))

        register_format("json5", Json5Format)

        settings.filepath("app.json5")  # picked by suffix
        settings.string("{flag: true}", "json5")
        ```
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import json
import os
from pathlib import Path
import tomllib
from typing import IO, TYPE_CHECKING, Any, ClassVar, TypeVar, Union

import yaml

from dapp.exceptions import ConfigError, DecodeError

if TYPE_CHECKING:
    from dapp.config.base import Configuration

C = TypeVar("C", bound="Configuration")

# -------------------------------
# Format base class
# -------------------------------


class ConfigFormat(ABC):
    """Base class for config formats.

    Subclasses implement loads() and load() with their parser and list the
    exceptions that parser raises for bad input in ``errors``. Those are
    converted to DecodeError by from_string() and from_reader(); anything
    else propagates unchanged.
    """

    name: ClassVar[str] = ""
    suffixes: ClassVar[tuple[str, ...]] = ()
    errors: ClassVar[tuple[type[Exception], ...]] = ()

    @abstractmethod
    def loads(self, text: str) -> Any:
        """Parse a document held in a string."""

    @abstractmethod
    def load(self, stream: IO[bytes]) -> Any:
        """Parse a document read from a binary file object."""

    def from_string(self, text: str, target: type[C]) -> C:
        """Decode a string into a fragment of the target configuration type.

        Raises:
            DecodeError: If the text does not parse, or parses into values
                the target type rejects.
        """
        try:
            data = self.loads(text)
        except self.errors as err:
            raise DecodeError(f"invalid {self.name}: {err}") from err
        return target.from_mapping(_empty_as_mapping(data))

    def from_reader(self, stream: IO[bytes], target: type[C]) -> C:
        """Decode a binary file object into a fragment of the target type.

        Raises:
            DecodeError: If the content does not parse, or parses into
                values the target type rejects.
            OSError: If reading the stream fails.
        """
        try:
            data = self.load(stream)
        except self.errors as err:
            raise DecodeError(f"invalid {self.name}: {err}") from err
        return target.from_mapping(_empty_as_mapping(data))


def _empty_as_mapping(data: Any) -> Any:
    # An empty YAML document parses to None
    return {} if data is None else data


# -------------------------------
# Built-in formats
# -------------------------------


class YamlFormat(ConfigFormat):
    name = "yaml"
    suffixes = (".yaml", ".yml")
    errors = (yaml.YAMLError, RecursionError)

    def loads(self, text: str) -> Any:
        return yaml.safe_load(text)

    def load(self, stream: IO[bytes]) -> Any:
        return yaml.safe_load(stream)


class JsonFormat(ConfigFormat):
    name = "json"
    suffixes = (".json",)
    # JSONDecodeError, plus UnicodeDecodeError for undecodable bytes
    errors = (ValueError, RecursionError)

    def loads(self, text: str) -> Any:
        if not text.strip():
            return None
        return json.loads(text)

    def load(self, stream: IO[bytes]) -> Any:
        return self.loads(stream.read().decode("utf-8"))


class TomlFormat(ConfigFormat):
    name = "toml"
    suffixes = (".toml",)
    # TOMLDecodeError is a ValueError subclass; UnicodeDecodeError too
    errors = (ValueError, RecursionError)

    def loads(self, text: str) -> Any:
        return tomllib.loads(text)

    def load(self, stream: IO[bytes]) -> Any:
        return tomllib.load(stream)


# -------------------------------
# Format registry
# -------------------------------

FormatSpec = Union[str, ConfigFormat, type[ConfigFormat]]

DEFAULT_FORMAT = "yaml"

_FORMAT_REGISTRY: dict[str, type[ConfigFormat]] = {}


def register_format(name: str, format_class: type[ConfigFormat]) -> None:
    """Register a config format by name in the global registry.

    Registering the same name twice overwrites the previous registration.
    The format's suffixes are used by format_for_path().

    Args:
        name: Format name, matched case-insensitively by get_format().
        format_class: The ConfigFormat subclass to register.
    """
    _FORMAT_REGISTRY[name.lower()] = format_class


def available_formats() -> list[str]:
    """Return the registered format names, sorted."""
    return sorted(_FORMAT_REGISTRY)


def get_format(fmt: FormatSpec) -> ConfigFormat:
    """Resolve a format name, class or instance to a format instance.

    Args:
        fmt: A registered name such as "yaml", a ConfigFormat subclass, or
            a ConfigFormat instance (returned as is).

    Returns:
        A ConfigFormat instance.

    Raises:
        ConfigError: If the name is not registered. The message lists the
            available formats.
    """
    if isinstance(fmt, ConfigFormat):
        return fmt
    if isinstance(fmt, type) and issubclass(fmt, ConfigFormat):
        return fmt()
    key = str(fmt).lower()
    if key not in _FORMAT_REGISTRY:
        available = ", ".join(available_formats())
        raise ConfigError(
            f"Unknown config format: {fmt!r}. Available: {available or '(none)'}"
        )
    return _FORMAT_REGISTRY[key]()


def format_for_path(path: str | os.PathLike) -> ConfigFormat:
    """Pick a format from a file suffix, falling back to YAML.

    Example:
        ```python
        format_for_path("settings.toml").name  # "toml"
        format_for_path("settings.conf").name  # "yaml"
        ```
    """
    suffix = Path(path).suffix.lower()
    for format_class in _FORMAT_REGISTRY.values():
        if suffix in format_class.suffixes:
            return format_class()
    return get_format(DEFAULT_FORMAT)


register_format("yaml", YamlFormat)
register_format("yml", YamlFormat)
register_format("json", JsonFormat)
register_format("toml", TomlFormat)
