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

"""Layered configuration loading for dapp.

A configuration value is filled in from several sources, highest priority
first, with "first writer wins" per field:

  - Other configuration values (e.g. built from CLI arguments)
  - Environment variables
  - Config strings and files in YAML, JSON or TOML
  - The type's defaults, as a last resort (ensure_loaded)

Public API:

- Configuration: Abstract base class defining the merge contract
- Settings, setting: Dataclass implementation of the contract
- ConfigFormat, YamlFormat, JsonFormat, TomlFormat: Document formats
- register_format, get_format, format_for_path: Format registry

Example:
    Basic usage:

        from dataclasses import dataclass
        from dapp.config import Settings, setting

        @dataclass
        class AppSettings(Settings):
            flag: bool | None = setting(default=False)
            name: str | None = setting(default="app")

        settings = AppSettings.new()
        settings.env().filepath("app.yaml").ensure_loaded()
        print(settings.flag, settings.name)

"""

from .base import Configuration
from .formats import (
    ConfigFormat,
    JsonFormat,
    TomlFormat,
    YamlFormat,
    available_formats,
    format_for_path,
    get_format,
    register_format,
)
from .settings import Settings, setting

__all__ = [
    "Configuration",
    "Settings",
    "setting",
    "ConfigFormat",
    "YamlFormat",
    "JsonFormat",
    "TomlFormat",
    "available_formats",
    "get_format",
    "format_for_path",
    "register_format",
]
