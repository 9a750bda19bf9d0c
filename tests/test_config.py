"""
Tests for dapp.config.base module.

Tests the layered merge contract including:
- Field-level "first writer wins" precedence
- Loaded flag tracking and ensure_loaded()
- String and file sources in every built-in format
- Silent skip versus hard failure on missing files
- Error handling (parse and read failures leave the value untouched)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import os
from pathlib import Path

import pytest
import yaml

from dapp.config import Configuration, Settings, setting
from dapp.exceptions import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigParseError,
    ConfigReadError,
    DecodeError,
    OptionalConfigFileNotFoundError,
)


running_as_root = hasattr(os, "geteuid") and os.geteuid() == 0


@dataclass
class FlagSettings(Settings):
    flag: bool | None = setting(default=False)
    name: str | None = setting(default="default-name")


class ManualConfig(Configuration):
    """Configuration written against the primitives by hand."""

    def __init__(self, my_bool: bool | None = None, my_string: str | None = None):
        self.my_bool = my_bool
        self.my_string = my_string
        self._loaded = False

    @classmethod
    def new(cls) -> ManualConfig:
        return cls()

    @classmethod
    def default(cls) -> ManualConfig:
        return cls(my_bool=True, my_string="Hello")

    @classmethod
    def from_mapping(cls, data) -> ManualConfig:
        if not isinstance(data, Mapping):
            raise DecodeError("not a mapping")
        return cls(data.get("my_bool"), data.get("my_string"))

    def config(self, other: ManualConfig) -> ManualConfig:
        changed = False
        if self.my_bool is None and other.my_bool is not None:
            self.my_bool = other.my_bool
            changed = True
        if self.my_string is None and other.my_string is not None:
            self.my_string = other.my_string
            changed = True
        if changed:
            self.set_loaded()
        return self

    def env(self) -> ManualConfig:
        raw = os.environ.get("MY_BOOL")
        if self.my_bool is None and raw is not None:
            self.my_bool = raw == "true"
            self.set_loaded()
        return self

    def set_loaded(self) -> None:
        self._loaded = True

    def is_loaded(self) -> bool:
        return self._loaded


class TestNew:
    """Tests for the all-unset starting value."""

    def test_new_has_every_field_unset(self):
        """Test that new() leaves every field None and not loaded."""
        settings = FlagSettings.new()

        assert settings.flag is None
        assert settings.name is None
        assert not settings.is_loaded()

    def test_new_differs_from_default(self):
        """Test that new() is not the semantic default."""
        assert FlagSettings.new() != FlagSettings.default()


class TestConfigMerge:
    """Tests for merging one configuration into another."""

    def test_receiver_wins_on_conflict(self):
        """Test that the earlier source wins for a field both define."""
        a = FlagSettings(flag=True)
        b = FlagSettings(flag=False)

        assert FlagSettings.new().config(a).config(b).flag is True
        assert FlagSettings.new().config(b).config(a).flag is False

    def test_merge_order_is_priority_order(self):
        """Test that A beats B beats C for fields all three define."""
        a = FlagSettings(name="a")
        b = FlagSettings(flag=False, name="b")
        c = FlagSettings(flag=True, name="c")

        settings = FlagSettings.new().config(a).config(b).config(c)

        assert settings.name == "a"
        assert settings.flag is False

    def test_unset_fields_pass_through(self):
        """Test that unset fields in the source never change the receiver."""
        settings = FlagSettings(flag=True)

        settings.config(FlagSettings.new())
        settings.config(FlagSettings(name="x"))

        assert settings.flag is True
        assert settings.name == "x"

    def test_both_unset_stays_unset(self):
        """Test that a field unset on both sides remains unset."""
        settings = FlagSettings.new().config(FlagSettings(flag=True))

        assert settings.name is None

    def test_empty_fragment_is_a_no_op(self):
        """Test that merging an empty fragment changes nothing, loaded included."""
        settings = FlagSettings.new()

        settings.config(FlagSettings.new())

        assert settings == FlagSettings.new()
        assert not settings.is_loaded()

    def test_redundant_merge_only_marks_loaded(self):
        """Test that a subsumed fragment leaves fields alone but sets loaded."""
        settings = FlagSettings(flag=True, name="x")
        before = settings.as_dict()

        settings.config(FlagSettings(flag=True))

        assert settings.as_dict() == before
        assert settings.is_loaded()

    def test_config_returns_self(self):
        """Test that merge methods return the receiver for chaining."""
        settings = FlagSettings.new()

        assert settings.config(FlagSettings(flag=True)) is settings

    def test_optional_config_none_is_no_op(self):
        """Test that optional_config(None) does nothing."""
        settings = FlagSettings.new()

        assert settings.optional_config(None) is settings
        assert not settings.is_loaded()

    def test_optional_config_merges(self):
        """Test that optional_config behaves like config when given a value."""
        settings = FlagSettings.new().optional_config(FlagSettings(name="x"))

        assert settings.name == "x"
        assert settings.is_loaded()


class TestStringSource:
    """Tests for loading configuration from strings."""

    def test_yaml_strings_first_writer_wins(self):
        """Test successive YAML strings only fill fields still unset."""
        settings = FlagSettings.new()

        settings.string("flag: true")
        assert settings.flag is True
        assert settings.name is None

        settings.string('name: "Hello World!"')
        assert settings.flag is True
        assert settings.name == "Hello World!"

        settings.string("flag: false")
        settings.string('flag: false\nname: "Hi World!"')
        assert settings.flag is True
        assert settings.name == "Hello World!"

    def test_json_string(self):
        """Test decoding a JSON string selected by name."""
        settings = FlagSettings.new().string('{"flag": true, "name": "json"}', "json")

        assert settings.flag is True
        assert settings.name == "json"

    def test_toml_string(self):
        """Test decoding a TOML string selected by name."""
        settings = FlagSettings.new().string('flag = false\nname = "toml"', "toml")

        assert settings.flag is False
        assert settings.name == "toml"

    def test_format_can_change_per_call(self):
        """Test that one value can be fed YAML then JSON."""
        settings = FlagSettings.new()

        settings.string("flag: true", "yaml")
        settings.string('{"name": "from json"}', "json")

        assert settings.flag is True
        assert settings.name == "from json"

    def test_empty_document_marks_loaded(self):
        """Test that a successfully decoded empty string still counts as loaded."""
        settings = FlagSettings.new().string("")

        assert settings.flag is None
        assert settings.name is None
        assert settings.is_loaded()

    def test_malformed_yaml_raises_parse_error(self):
        """Test that invalid YAML raises ConfigParseError with the text."""
        text = "flag: [unclosed"
        settings = FlagSettings.new()

        with pytest.raises(ConfigParseError) as exc_info:
            settings.string(text)

        err = exc_info.value
        assert err.string == text
        assert err.path is None
        assert isinstance(err.source, DecodeError)
        assert err.__cause__ is err.source
        assert isinstance(err.source.__cause__, yaml.YAMLError)
        assert not settings.is_loaded()

    def test_parse_failure_leaves_fields_untouched(self):
        """Test that no field of a bad document is applied."""
        settings = FlagSettings.new().string("name: kept")
        before = settings.as_dict()

        # flag alone would be valid, but name has the wrong type
        with pytest.raises(ConfigParseError):
            settings.string("flag: true\nname: [1, 2]")

        assert settings.as_dict() == before

    def test_wrong_type_raises_parse_error(self):
        """Test that a value of the wrong type is a parse failure."""
        with pytest.raises(ConfigParseError, match="flag"):
            FlagSettings.new().string("flag: 'yes'")

    def test_non_mapping_document_raises_parse_error(self):
        """Test that a top-level list is rejected."""
        with pytest.raises(ConfigParseError, match="mapping"):
            FlagSettings.new().string("- item1\n- item2\n")

    @pytest.mark.parametrize(
        "text, fmt",
        [
            ("[" * 100000, "json"),
            ("flag = " + "[" * 100000, "toml"),
        ],
    )
    def test_deeply_nested_input_raises_parse_error(self, text, fmt):
        """Test that input too deep for the decoder is a parse failure."""
        settings = FlagSettings.new()

        with pytest.raises(ConfigParseError) as exc_info:
            settings.string(text, fmt)

        assert isinstance(exc_info.value.source, DecodeError)
        assert not settings.is_loaded()

    def test_unknown_format_raises_config_error(self):
        """Test that an unregistered format name raises ConfigError."""
        with pytest.raises(ConfigError, match="Unknown config format"):
            FlagSettings.new().string("flag: true", "xml")


class TestFileSource:
    """Tests for loading configuration from files."""

    def test_yaml_file(self, create_yaml_file):
        """Test loading a YAML file."""
        path = create_yaml_file("app.yaml", {"flag": True, "name": "file"})

        settings = FlagSettings.new().filepath(path)

        assert settings.flag is True
        assert settings.name == "file"
        assert settings.is_loaded()

    def test_format_inferred_from_suffix(self, tmp_test_dir):
        """Test that .json and .toml files are decoded by their suffix."""
        json_path = tmp_test_dir / "app.json"
        json_path.write_text('{"flag": true}')
        toml_path = tmp_test_dir / "app.toml"
        toml_path.write_text('name = "toml"\nflag = false\n')

        settings = FlagSettings.new().filepath(json_path).filepath(toml_path)

        assert settings.flag is True
        assert settings.name == "toml"

    def test_explicit_format_overrides_suffix(self, tmp_test_dir):
        """Test that fmt wins over the file suffix."""
        path = tmp_test_dir / "app.conf"
        path.write_text('{"name": "json in a .conf"}')

        settings = FlagSettings.new().filepath(path, "json")

        assert settings.name == "json in a .conf"

    def test_accepts_string_paths(self, create_yaml_file):
        """Test that a plain string path works."""
        path = create_yaml_file("app.yaml", {"name": "str path"})

        assert FlagSettings.new().filepath(str(path)).name == "str path"

    def test_missing_file_is_silent(self, tmp_test_dir):
        """Test that a missing file is skipped without setting loaded."""
        settings = FlagSettings.new()

        result = settings.filepath(tmp_test_dir / "missing.yaml")

        assert result is settings
        assert settings == FlagSettings.new()
        assert not settings.is_loaded()

    def test_name_too_long_is_silent(self, tmp_test_dir):
        """Test that a path the OS rejects as too long is skipped like a missing one."""
        settings = FlagSettings.new()

        settings.filepath(tmp_test_dir / ("a" * 300) / "config.yaml")

        assert settings == FlagSettings.new()
        assert not settings.is_loaded()

    @pytest.mark.skipif(running_as_root, reason="root bypasses permission bits")
    def test_file_under_unsearchable_directory_is_silent(self, tmp_test_dir):
        """Test that a file hidden behind a mode 000 directory is skipped."""
        locked = tmp_test_dir / "locked"
        (locked / "inner").mkdir(parents=True)
        path = locked / "inner" / "app.yaml"
        path.write_text("flag: true\n")
        locked.chmod(0)
        try:
            settings = FlagSettings.new().filepath(path)

            assert settings.flag is None
            assert not settings.is_loaded()
        finally:
            locked.chmod(0o700)

    def test_unreadable_file_raises_read_error(self, tmp_test_dir):
        """Test that a path that cannot be opened raises ConfigReadError."""
        directory = tmp_test_dir / "config.yaml"
        directory.mkdir()

        with pytest.raises(ConfigReadError) as exc_info:
            FlagSettings.new().filepath(directory)

        assert exc_info.value.path == directory
        assert isinstance(exc_info.value.source, OSError)

    def test_malformed_file_raises_parse_error(self, tmp_test_dir):
        """Test that an invalid file raises ConfigParseError with the path."""
        path = tmp_test_dir / "bad.json"
        path.write_text('{"flag": tru')
        settings = FlagSettings.new()

        with pytest.raises(ConfigParseError) as exc_info:
            settings.filepath(path)

        assert exc_info.value.path == path
        assert exc_info.value.string is None
        assert not settings.is_loaded()

    def test_empty_file_marks_loaded(self, tmp_test_dir):
        """Test that an empty override file counts as a load."""
        path = tmp_test_dir / "empty.yaml"
        path.write_text("")

        settings = FlagSettings.new().filepath(path).ensure_loaded()

        assert settings.is_loaded()
        assert settings.flag is None

    def test_optional_filepath_none_is_no_op(self):
        """Test that optional_filepath(None) does nothing."""
        settings = FlagSettings.new()

        assert settings.optional_filepath(None) is settings
        assert not settings.is_loaded()

    def test_optional_filepath_loads(self, create_yaml_file):
        """Test that optional_filepath loads a given file."""
        path = create_yaml_file("app.yaml", {"name": "optional"})

        assert FlagSettings.new().optional_filepath(path).name == "optional"


class TestTryFileSource:
    """Tests for the loaders that require a file."""

    def test_try_filepath_missing_raises(self, tmp_test_dir):
        """Test that try_filepath reports the exact missing path."""
        missing = tmp_test_dir / "missing.yaml"

        with pytest.raises(ConfigFileNotFoundError) as exc_info:
            FlagSettings.new().try_filepath(missing)

        assert exc_info.value.path == missing

    def test_try_filepath_name_too_long_raises(self, tmp_test_dir):
        """Test that an over-long path is reported as not found."""
        target = tmp_test_dir / ("a" * 300) / "config.yaml"

        with pytest.raises(ConfigFileNotFoundError):
            FlagSettings.new().try_filepath(target)

    def test_try_filepath_loads(self, create_yaml_file):
        """Test that try_filepath loads an existing file."""
        path = create_yaml_file("app.yaml", {"flag": False})

        assert FlagSettings.new().try_filepath(path).flag is False

    def test_try_optional_filepath_none_raises(self):
        """Test that a None path is an error for the try variant."""
        with pytest.raises(OptionalConfigFileNotFoundError) as exc_info:
            FlagSettings.new().try_optional_filepath(None)

        assert exc_info.value.optional_path is None

    def test_try_optional_filepath_missing_raises(self, tmp_test_dir):
        """Test that a given but missing path raises ConfigFileNotFoundError."""
        with pytest.raises(ConfigFileNotFoundError):
            FlagSettings.new().try_optional_filepath(tmp_test_dir / "missing.toml")

    def test_try_optional_filepath_loads(self, create_yaml_file):
        """Test that try_optional_filepath loads a given file."""
        path = create_yaml_file("app.yaml", {"name": "required"})

        assert FlagSettings.new().try_optional_filepath(path).name == "required"


class TestEnsureLoaded:
    """Tests for falling back to defaults."""

    def test_unloaded_becomes_default(self):
        """Test that a value no source loaded becomes exactly the default."""
        settings = FlagSettings.new()

        result = settings.ensure_loaded()

        assert result is settings
        assert settings == FlagSettings.default()
        assert settings.flag is False
        assert settings.name == "default-name"

    def test_loaded_value_is_untouched(self):
        """Test that a partially loaded value keeps its unset fields."""
        settings = FlagSettings.new().string("flag: true")

        settings.ensure_loaded()

        assert settings.flag is True
        assert settings.name is None

    def test_failed_sources_then_defaults(self, tmp_test_dir):
        """Test tolerating a broken optional source before ensure_loaded."""
        bad = tmp_test_dir / "bad.yaml"
        bad.write_text("flag: [")
        settings = FlagSettings.new()

        with pytest.raises(ConfigParseError):
            settings.filepath(bad)
        settings.filepath(tmp_test_dir / "missing.yaml").ensure_loaded()

        assert settings == FlagSettings.default()


class TestManualConfiguration:
    """Tests for a configuration type implementing the primitives by hand."""

    def test_string_and_ensure_loaded(self):
        """Test derived methods work through hand-written primitives."""
        config = ManualConfig.new()

        config.string("my_bool: false")
        config.string("my_bool: true\nmy_string: Hi")
        config.ensure_loaded()

        assert config.my_bool is False
        assert config.my_string == "Hi"

    def test_ensure_loaded_replaces_state(self):
        """Test that ensure_loaded copies every attribute of the default."""
        config = ManualConfig.new().ensure_loaded()

        assert config.my_bool is True
        assert config.my_string == "Hello"
        assert not config.is_loaded()

    def test_env(self, clean_env):
        """Test the hand-written env() primitive through the contract."""
        clean_env.setenv("MY_BOOL", "true")

        config = ManualConfig.new().env()

        assert config.my_bool is True
        assert config.is_loaded()


class TestEndToEnd:
    """Tests for a complete loading sequence."""

    def test_env_then_strings(self, clean_env):
        """Test env, then two strings, with FLAG and NAME unset."""
        settings = FlagSettings.new()

        settings.env()
        assert not settings.is_loaded()

        settings.string("flag: true")
        settings.string('flag: false\nname: "X"')

        assert settings.flag is True
        assert settings.name == "X"
        assert settings.is_loaded()

    def test_all_sources(self, clean_env, tmp_test_dir):
        """Test overrides, env, files and defaults in priority order."""
        clean_env.setenv("NAME", "from-env")
        user_file = tmp_test_dir / "user.toml"
        user_file.write_text('name = "from-file"\nflag = true\n')

        settings = (
            FlagSettings.new()
            .optional_config(None)
            .env()
            .optional_filepath(tmp_test_dir / "project.yaml")
            .filepath(user_file)
            .ensure_loaded()
        )

        assert settings.name == "from-env"
        assert settings.flag is True

    def test_relative_path(self, tmp_test_dir, monkeypatch):
        """Test that relative paths resolve against the working directory."""
        monkeypatch.chdir(tmp_test_dir)
        Path("local.yaml").write_text("name: local\n")

        assert FlagSettings.new().filepath("local.yaml").name == "local"
