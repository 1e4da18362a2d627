"""
Tests for configuration module.

Tests settings loading, validation, and environment variable overrides.
"""

from pathlib import Path

import pytest
import yaml

from convo_memory.config import (
    Settings,
    MemorySettings,
    StorageSettings,
    LoggingSettings,
    get_default_config_path,
    load_config,
)


class TestSettings:
    """Tests for Settings model."""

    def test_default_settings_valid(self):
        """Default settings should be valid."""
        settings = Settings()

        assert settings.memory.max_context_tokens == 8000
        assert settings.memory.compression_threshold == 6000
        assert settings.memory.retention_days == 90
        assert settings.memory.auto_compress is True
        assert settings.storage.backend == "sqlite"

    def test_memory_settings_defaults(self):
        """Memory settings should match the chat assistant defaults."""
        memory = MemorySettings()

        assert memory.keep_recent_messages == 10
        assert memory.excerpt_length == 100
        assert memory.compression_insight_limit == 10
        assert memory.compression_warning_percent == 85.0
        assert memory.summary_mode == "replace"

    def test_memory_settings_validation(self):
        """Memory settings should validate constraints."""
        with pytest.raises(ValueError):
            MemorySettings(compression_threshold=0)

        with pytest.raises(ValueError):
            MemorySettings(summary_mode="merge")

        with pytest.raises(ValueError):
            MemorySettings(unknown_option=True)

    def test_threshold_cannot_exceed_max(self):
        """Compression threshold above the token budget is rejected."""
        with pytest.raises(ValueError):
            Settings(memory={"max_context_tokens": 1000, "compression_threshold": 2000})

    def test_memory_threshold_checked_on_its_own(self):
        """The threshold rule holds for MemorySettings outside the root model."""
        with pytest.raises(ValueError):
            MemorySettings(compression_threshold=9000)

        with pytest.raises(ValueError):
            MemorySettings(max_context_tokens=100)

        memory = MemorySettings(max_context_tokens=100, compression_threshold=100)
        assert memory.compression_threshold == memory.max_context_tokens

    def test_storage_paths_converted(self):
        """String paths should become Path objects."""
        storage = StorageSettings(database_path="x/y.db", directory="x/files")

        assert storage.database_path == Path("x/y.db")
        assert storage.directory == Path("x/files")

    def test_invalid_backend_rejected(self):
        with pytest.raises(ValueError):
            StorageSettings(backend="redis")

    def test_logging_level_validation(self):
        assert LoggingSettings(level="DEBUG").level == "DEBUG"

        with pytest.raises(ValueError):
            LoggingSettings(level="VERBOSE")

    def test_settings_nested_override(self):
        """Nested settings can be overridden."""
        settings = Settings(
            memory={"compression_threshold": 200, "auto_compress": False},
        )

        assert settings.memory.compression_threshold == 200
        assert settings.memory.auto_compress is False
        # Non-overridden should keep defaults
        assert settings.memory.keep_recent_messages == 10


class TestConfigLoader:
    """Tests for configuration loading."""

    def test_load_config_defaults(self):
        """Loading without file should use defaults."""
        settings = load_config(config_path=None)

        assert isinstance(settings, Settings)
        assert settings.memory.auto_compress is True

    def test_load_config_from_yaml(self, temp_dir: Path):
        """Configuration should load from YAML file."""
        config_path = temp_dir / "config.yaml"
        config_data = {
            "memory": {"compression_threshold": 3000},
            "storage": {"backend": "file"},
        }

        with open(config_path, "w") as f:
            yaml.dump(config_data, f)

        settings = load_config(config_path)

        assert settings.memory.compression_threshold == 3000
        assert settings.storage.backend == "file"

    def test_load_config_env_override(self, monkeypatch, temp_dir: Path):
        """Environment variables should override file settings."""
        config_path = temp_dir / "config.yaml"
        config_path.write_text("memory:\n  compression_threshold: 3000\n")
        monkeypatch.setenv("CONVO_MEMORY__MEMORY__COMPRESSION_THRESHOLD", "4500")
        monkeypatch.setenv("CONVO_MEMORY__MEMORY__AUTO_COMPRESS", "false")

        settings = load_config(config_path)

        assert settings.memory.compression_threshold == 4500
        assert settings.memory.auto_compress is False

    def test_load_config_missing_file(self, temp_dir: Path):
        with pytest.raises(FileNotFoundError):
            load_config(temp_dir / "absent.yaml")

    def test_load_config_invalid_yaml(self, temp_dir: Path):
        """Invalid YAML should raise appropriate error."""
        config_path = temp_dir / "invalid.yaml"
        config_path.write_text("{ invalid yaml content")

        with pytest.raises(yaml.YAMLError):
            load_config(config_path)

    def test_load_config_non_mapping(self, temp_dir: Path):
        config_path = temp_dir / "list.yaml"
        config_path.write_text("- one\n- two\n")

        with pytest.raises(ValueError):
            load_config(config_path)

    def test_default_config_path_follows_cwd(self, monkeypatch, temp_dir: Path):
        """The config file lookup uses the current working directory of each call."""
        first = temp_dir / "first"
        second = temp_dir / "second"
        first.mkdir()
        (second / "config").mkdir(parents=True)
        (first / "config.yaml").write_text("memory: {}\n")
        (second / "config" / "config.yaml").write_text("memory: {}\n")
        monkeypatch.setenv("HOME", str(temp_dir))

        monkeypatch.chdir(first)
        assert get_default_config_path() == Path.cwd() / "config.yaml"

        monkeypatch.chdir(second)
        assert get_default_config_path() == Path.cwd() / "config" / "config.yaml"

    def test_env_single_segment_ignored(self, monkeypatch):
        monkeypatch.setenv("CONVO_MEMORY__DEBUG", "true")

        assert load_config().memory.auto_compress is True
