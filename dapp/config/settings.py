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

"""Dataclass-backed configuration types for dapp.

Settings implements every Configuration primitive generically over the
fields of a dataclass, so an application only declares its fields:

    from dataclasses import dataclass
    from pathlib import Path

    from dapp.config import Settings, setting

    @dataclass
    class AppSettings(Settings):
        env_prefix = "MYAPP_"

        verbose: bool | None = setting(default=False)
        log_dir: Path | None = setting(default=Path("/var/log/myapp"))
        workers: int | None = setting(default=4, env="MYAPP_JOBS")
        tags: list[str] | None = setting(default_factory=list)

    settings = AppSettings.new().env().filepath("myapp.toml").ensure_loaded()

Field Rules
-----------
- None means "unset"; every field's instance default is None
- The semantic default given to setting() is only used by default(), i.e.
  when ensure_loaded() finds that no source loaded anything
- The field annotation (with None stripped from it) is the expected type
  for values coming from documents and environment variables
- list[X] and dict[K, V] values are checked element by element; Literal
  values must be one of the listed choices

Environment Variables
---------------------
Each field reads ``env_prefix + FIELD_NAME`` (upper case) unless setting()
names a variable explicitly. Raw strings are parsed by type:
  - bool: 1/true/yes/on or 0/false/no/off (case-insensitive)
  - int, float, str, Path: the type's constructor
  - list, dict: JSON, with elements checked like document values
  - Literal: the choice whose str() equals the raw string
  - anything else: setting(parse=...) or the type's constructor
Values that do not parse leave the field unset.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import Field, dataclass, field, fields, is_dataclass
import json
import os
from pathlib import PurePath
import types
from typing import (
    Any,
    ClassVar,
    Literal,
    TypeVar,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

from dapp.config.base import Configuration
from dapp.exceptions import DecodeError
from dapp.logging import get_global_logger

S = TypeVar("S", bound="Settings")

_METADATA_KEY = "dapp.setting"

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS = frozenset({"0", "false", "no", "off"})


@dataclass(frozen=True)
class SettingInfo:
    """Metadata attached to a dataclass field by setting()."""

    default: Any = None
    default_factory: Callable[[], Any] | None = None
    env: str | None = None
    parse: Callable[[str], Any] | None = None

    def make_default(self) -> Any:
        if self.default_factory is not None:
            return self.default_factory()
        return self.default


def setting(
    default: Any = None,
    *,
    default_factory: Callable[[], Any] | None = None,
    env: str | None = None,
    parse: Callable[[str], Any] | None = None,
) -> Any:
    """Declare a Settings field.

    Args:
        default: Value used by default(). Must be immutable; use
            default_factory for lists and dicts.
        default_factory: Zero-argument callable producing the default.
        env: Environment variable name, replacing the
            ``env_prefix + FIELD_NAME`` convention.
        parse: Callable turning the raw environment string into a value.
            ValueError or TypeError from it means "not parseable".

    Returns:
        A dataclass field whose instance default is None.
    """
    if default is not None and default_factory is not None:
        raise ValueError("cannot specify both default and default_factory")
    info = SettingInfo(
        default=default, default_factory=default_factory, env=env, parse=parse
    )
    return field(default=None, metadata={_METADATA_KEY: info})


def _setting_info(f: Field) -> SettingInfo:
    return f.metadata.get(_METADATA_KEY, SettingInfo())


# -------------------------------
# Type helpers
# -------------------------------


def _unwrap_optional(tp: Any) -> tuple[Any, ...]:
    """Return the member types of an annotation, without NoneType."""
    if get_origin(tp) in (Union, types.UnionType):
        return tuple(arg for arg in get_args(tp) if arg is not type(None))
    return (tp,)


def _type_name(candidates: tuple[Any, ...]) -> str:
    return " | ".join(
        str(c) if get_origin(c) is not None else getattr(c, "__name__", str(c))
        for c in candidates
    )


def _coerce(value: Any, tp: Any) -> tuple[bool, Any]:
    """Check a decoded value against one type, converting where lossless.

    Returns (matched, value).
    """
    if tp is Any:
        return True, value
    origin = get_origin(tp) or tp
    if origin is bool:
        return isinstance(value, bool), value
    if origin is int:
        return isinstance(value, int) and not isinstance(value, bool), value
    if origin is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return True, float(value)
        return False, value
    if isinstance(origin, type) and issubclass(origin, PurePath):
        if isinstance(value, (str, PurePath)):
            return True, origin(value)
        return False, value
    if origin is Literal:
        # type() comparison keeps True from matching Literal[1]
        return any(
            value == choice and type(value) is type(choice) for choice in get_args(tp)
        ), value
    if origin is list:
        return _coerce_list(value, get_args(tp))
    if origin is dict:
        return _coerce_dict(value, get_args(tp))
    if isinstance(origin, type):
        return isinstance(value, origin), value
    # TypeVar and other special forms are not checked
    return True, value


def _coerce_member(value: Any, tp: Any) -> tuple[bool, Any]:
    """Check a container element, whose annotation may be a union."""
    if value is None:
        return tp is Any or tp is type(None) or type(None) in get_args(tp), None
    for candidate in _unwrap_optional(tp):
        matched, converted = _coerce(value, candidate)
        if matched:
            return True, converted
    return False, value


def _coerce_list(value: Any, args: tuple[Any, ...]) -> tuple[bool, Any]:
    if not isinstance(value, list):
        return False, value
    if not args:
        return True, value
    items = []
    for item in value:
        matched, converted = _coerce_member(item, args[0])
        if not matched:
            return False, value
        items.append(converted)
    return True, items


def _coerce_dict(value: Any, args: tuple[Any, ...]) -> tuple[bool, Any]:
    if not isinstance(value, dict):
        return False, value
    if len(args) != 2:
        return True, value
    key_type, value_type = args
    result = {}
    for key, item in value.items():
        key_ok, key = _coerce_member(key, key_type)
        item_ok, item = _coerce_member(item, value_type)
        if not (key_ok and item_ok):
            return False, value
        result[key] = item
    return True, result


def _parse_env(raw: str, candidates: tuple[Any, ...]) -> Any:
    """Parse an environment string into the first type that accepts it."""
    last_error: Exception | None = None
    for tp in candidates:
        origin = get_origin(tp) or tp
        try:
            if origin is bool:
                lowered = raw.strip().lower()
                if lowered in _TRUE_STRINGS:
                    return True
                if lowered in _FALSE_STRINGS:
                    return False
                raise ValueError(f"not a boolean: {raw!r}")
            if origin is Literal:
                for choice in get_args(tp):
                    if str(choice) == raw:
                        return choice
                raise ValueError(f"not one of {_type_name((tp,))}: {raw!r}")
            if origin in (list, dict):
                matched, value = _coerce(json.loads(raw), tp)
                if not matched:
                    raise ValueError(f"not a JSON {_type_name((tp,))}: {raw!r}")
                return value
            if tp is Any:
                return raw
            if isinstance(origin, type):
                return origin(raw)
        except (ValueError, TypeError) as err:
            last_error = err
    if last_error is not None:
        raise ValueError(str(last_error))
    raise ValueError(
        f"no parser for {_type_name(candidates)}, pass setting(parse=...)"
    )


# -------------------------------
# Settings base class
# -------------------------------


class Settings(Configuration):
    """Configuration primitives for dataclasses.

    Subclasses must be decorated with ``@dataclass`` (not frozen). The loaded
    flag is kept outside the dataclass fields, so it takes no part in
    equality or repr.
    """

    env_prefix: ClassVar[str] = ""

    @classmethod
    def _fields(cls) -> tuple[Field, ...]:
        if not is_dataclass(cls):
            raise TypeError(f"{cls.__name__} must be decorated with @dataclass")
        return fields(cls)

    @classmethod
    def _field_types(cls) -> dict[str, tuple[Any, ...]]:
        hints = get_type_hints(cls)
        return {f.name: _unwrap_optional(hints.get(f.name, Any)) for f in cls._fields()}

    @classmethod
    def new(cls: type[S]) -> S:
        all_fields = cls._fields()
        instance = cls(**{f.name: None for f in all_fields if f.init})
        for f in all_fields:
            if not f.init:
                setattr(instance, f.name, None)
        return instance

    @classmethod
    def default(cls: type[S]) -> S:
        instance = cls.new()
        for f in cls._fields():
            setattr(instance, f.name, _setting_info(f).make_default())
        return instance

    @classmethod
    def from_mapping(cls: type[S], data: Mapping[str, Any]) -> S:
        if not isinstance(data, Mapping):
            raise DecodeError(
                f"expected a mapping at the top level, got {type(data).__name__}"
            )

        field_types = cls._field_types()
        unknown = [str(key) for key in data if key not in field_types]
        if unknown:
            get_global_logger().debug(
                "CONFIG", f"Ignoring unknown keys for {cls.__name__}: {', '.join(unknown)}"
            )

        fragment = cls.new()
        for name, candidates in field_types.items():
            value = data.get(name)
            if value is None:
                continue
            for tp in candidates:
                matched, converted = _coerce(value, tp)
                if matched:
                    setattr(fragment, name, converted)
                    break
            else:
                raise DecodeError(
                    f"{name}: expected {_type_name(candidates)}, "
                    f"got {type(value).__name__} ({value!r})"
                )
        return fragment

    def config(self: S, other: S) -> S:
        """Fill unset fields from other.

        Marks this value loaded when other has at least one set field, even
        if all of them were already set here.
        """
        contributed = False
        for f in self._fields():
            theirs = getattr(other, f.name)
            if theirs is None:
                continue
            contributed = True
            if getattr(self, f.name) is None:
                setattr(self, f.name, theirs)
        if contributed:
            self.set_loaded()
        return self

    def env(self: S) -> S:
        logger = get_global_logger()
        field_types = self._field_types()
        changed = False
        for f in self._fields():
            if getattr(self, f.name) is not None:
                continue
            info = _setting_info(f)
            name = info.env or f"{self.env_prefix}{f.name.upper()}"
            raw = os.environ.get(name)
            if raw is None:
                continue
            try:
                if info.parse is not None:
                    value = info.parse(raw)
                else:
                    value = _parse_env(raw, field_types[f.name])
            except (ValueError, TypeError) as err:
                logger.verbose("CONFIG", f"Ignoring environment variable {name}: {err}")
                continue
            logger.debug("CONFIG", f"Loaded {f.name} from environment variable {name}")
            setattr(self, f.name, value)
            changed = True
        if changed:
            self.set_loaded()
        return self

    def set_loaded(self) -> None:
        self._loaded = True

    def is_loaded(self) -> bool:
        return vars(self).get("_loaded", False)

    def as_dict(self) -> dict[str, Any]:
        """Return the field values as a plain dict (unset fields are None)."""
        return {f.name: getattr(self, f.name) for f in self._fields()}
