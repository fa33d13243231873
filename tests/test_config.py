"""Tests for plugin configuration."""

import json

import pytest

from hookmake.config import BuildConfig, ConfigError, load_config


class TestBuildConfigDefaults:
    """Tests for default values."""

    def test_defaults(self):
        """Test defaults match the documented configuration surface."""
        config = BuildConfig()

        assert config.target == ""
        assert config.build_file_location == "./Makefile"
        assert config.watch_paths == ()
        assert config.rebuild_on_host_reload is False
        assert dict(config.extra_bindings) == {}
        assert config.build_tool == "make"

    def test_immutable(self):
        """Test config cannot be changed after construction."""
        config = BuildConfig(extra_bindings={"a": "b"})

        with pytest.raises(AttributeError):
            config.target = "x"  # type: ignore[misc]
        with pytest.raises(TypeError):
            config.extra_bindings["c"] = "d"  # type: ignore[index]

    def test_bindings_copied(self):
        """Test later changes to the source mapping are not seen."""
        bindings = {"a": "b"}
        config = BuildConfig(extra_bindings=bindings)
        bindings["c"] = "d"

        assert "c" not in config.extra_bindings


class TestBuildConfigFromDict:
    """Tests for parsing the host configuration block."""

    def test_camel_case_keys(self):
        """Test the documented keys."""
        config = BuildConfig.from_dict(
            {
                "target": "build",
                "buildFileLocation": "./native/Makefile",
                "watchPaths": ["src/", "include/*.h"],
                "rebuildOnHostReload": True,
                "extraBindings": {"after:deploy:deploy": "clean"},
            }
        )

        assert config.target == "build"
        assert config.build_file_location == "./native/Makefile"
        assert config.watch_paths == ("src/", "include/*.h")
        assert config.rebuild_on_host_reload is True
        assert dict(config.extra_bindings) == {"after:deploy:deploy": "clean"}

    def test_original_key_aliases(self):
        """Test the original plugin's key names are accepted."""
        config = BuildConfig.from_dict(
            {
                "makefile": "./build.mk",
                "watch": ["src"],
                "reloadHandler": True,
                "hooks": {"custom": "t"},
            }
        )

        assert config.build_file_location == "./build.mk"
        assert config.watch_paths == ("src",)
        assert config.rebuild_on_host_reload is True
        assert dict(config.extra_bindings) == {"custom": "t"}

    def test_new_key_wins_over_alias(self):
        """Test the documented key is used when both are present."""
        config = BuildConfig.from_dict({"makefile": "old.mk", "buildFileLocation": "new.mk"})
        assert config.build_file_location == "new.mk"

    def test_none_and_empty(self):
        """Test missing block and empty location give defaults."""
        assert BuildConfig.from_dict(None) == BuildConfig()
        assert BuildConfig.from_dict({"buildFileLocation": ""}).build_file_location == "./Makefile"

    @pytest.mark.parametrize(
        "data",
        [
            {"target": 1},
            {"watchPaths": "src"},
            {"watchPaths": ["src", 3]},
            {"rebuildOnHostReload": "yes"},
            {"extraBindings": {"event": 1}},
        ],
    )
    def test_bad_types_rejected(self, data):
        """Test wrong value types raise ConfigError."""
        with pytest.raises(ConfigError):
            BuildConfig.from_dict(data)

    def test_round_trip_dict(self):
        """Test to_dict uses the documented keys."""
        config = BuildConfig(target="build", watch_paths=("src",))
        assert BuildConfig.from_dict(config.to_dict()) == config


class TestLoadConfig:
    """Tests for reading the JSON config file."""

    def test_missing_file_defaults(self, tmp_path):
        """Test a missing file yields defaults."""
        settings = load_config(tmp_path / "hookmake.json")

        assert settings.build == BuildConfig()
        assert settings.environment == {}

    def test_reads_build_and_environment(self, tmp_path):
        """Test build settings and host environment are split."""
        path = tmp_path / "hookmake.json"
        path.write_text(
            json.dumps(
                {
                    "target": "build",
                    "watchPaths": ["src/"],
                    "environment": {"STAGE": "dev", "PORT": 3000, "DROP": None},
                }
            )
        )

        settings = load_config(path)

        assert settings.build.target == "build"
        assert settings.build.watch_paths == ("src/",)
        assert settings.environment == {"STAGE": "dev", "PORT": "3000", "DROP": None}

    def test_invalid_json(self, tmp_path):
        """Test malformed JSON raises ConfigError."""
        path = tmp_path / "hookmake.json"
        path.write_text("{not json")

        with pytest.raises(ConfigError):
            load_config(path)

    def test_non_object(self, tmp_path):
        """Test a JSON array is rejected."""
        path = tmp_path / "hookmake.json"
        path.write_text("[]")

        with pytest.raises(ConfigError):
            load_config(path)
