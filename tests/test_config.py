"""Tests for filesystem configuration."""

import json
import tempfile
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from agent_filesystem.config import (
    DEFAULT_DANGEROUS_COMMANDS,
    FileSearchConfig,
    FileSystemConfig,
    ProviderSettings,
)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


class TestFileSystemConfig:
    """Tests for FileSystemConfig model."""

    def test_defaults(self):
        """Test default configuration."""
        config = FileSystemConfig()
        assert config.default_provider is None
        assert config.providers == {}
        assert "npm" in config.safe_commands
        assert config.dangerous_commands == DEFAULT_DANGEROUS_COMMANDS
        assert config.split_redirections is True
        assert config.lowercase_commands is True
        assert config.default_command_timeout_seconds == 120
        assert config.max_command_timeout_seconds == 90

    def test_file_search_defaults(self):
        """Test file search tuning defaults."""
        search = FileSearchConfig()
        assert search.max_results == 25
        assert search.max_snippet_count == 10
        assert search.max_snippet_size_percent == 0.3
        assert search.snippet_lines_before == 5
        assert search.snippet_lines_after == 5

    def test_invalid_pattern(self):
        """Test that invalid regexes are rejected."""
        with pytest.raises(ValidationError, match="Invalid dangerous command pattern"):
            FileSystemConfig(dangerous_commands=["[unclosed"])

    def test_blank_safe_commands_dropped(self):
        """Test that blank safe entries do not match everything."""
        config = FileSystemConfig(safe_commands=["ls", "  ", "", " git "])
        assert config.safe_commands == ["ls", "git"]

    def test_extra_fields_forbidden(self):
        """Test that unknown keys are rejected."""
        with pytest.raises(ValidationError):
            FileSystemConfig(safe_comands=["ls"])

    def test_provider_directory_resolved(self, temp_dir):
        """Test that provider directories are made absolute."""
        settings = ProviderSettings(base_directory=str(temp_dir / "a" / ".."))
        assert settings.base_directory == temp_dir.resolve()

    def test_str(self, temp_dir):
        """Test string representation."""
        config = FileSystemConfig(
            default_provider="work",
            providers={"work": ProviderSettings(base_directory=temp_dir)},
        )
        assert str(config) == "FileSystemConfig(default_provider=work, providers=['work'])"


class TestConfigLoading:
    """Tests for loading configuration."""

    def test_from_yaml(self, temp_dir):
        """Test loading YAML."""
        path = temp_dir / "agent-fs.yaml"
        path.write_text(
            yaml.dump(
                {
                    "default_provider": "workspace",
                    "providers": {
                        "workspace": {"type": "local", "base_directory": str(temp_dir)}
                    },
                    "safe_commands": ["ls"],
                    "file_search": {"max_results": 10},
                }
            )
        )

        config = FileSystemConfig.from_file(path)

        assert config.default_provider == "workspace"
        assert config.providers["workspace"].base_directory == temp_dir.resolve()
        assert config.safe_commands == ["ls"]
        assert config.file_search.max_results == 10

    def test_from_json(self, temp_dir):
        """Test loading JSON."""
        path = temp_dir / "agent-fs.json"
        path.write_text(json.dumps({"default_selected_files": ["README.md"]}))

        config = FileSystemConfig.from_file(path)
        assert config.default_selected_files == ["README.md"]

    def test_empty_file(self, temp_dir):
        """Test that an empty file gives defaults."""
        path = temp_dir / "empty.yaml"
        path.write_text("")
        assert FileSystemConfig.from_file(path).providers == {}

    def test_missing_file(self, temp_dir):
        """Test loading a file that does not exist."""
        with pytest.raises(FileNotFoundError):
            FileSystemConfig.from_file(temp_dir / "missing.yaml")

    def test_from_dict(self):
        """Test building from a dictionary."""
        config = FileSystemConfig.from_dict({"max_command_timeout_seconds": 30})
        assert config.max_command_timeout_seconds == 30

    def test_from_env(self, temp_dir, monkeypatch):
        """Test environment overrides."""
        monkeypatch.setenv("AGENT_FS_ROOT", str(temp_dir))
        monkeypatch.setenv("AGENT_FS_COMMAND_TIMEOUT", "15")
        monkeypatch.delenv("AGENT_FS_DEFAULT_PROVIDER", raising=False)

        config = FileSystemConfig.from_env()

        assert config.default_provider == "local"
        assert config.providers["local"].base_directory == temp_dir.resolve()
        assert config.default_command_timeout_seconds == 15

    def test_from_env_empty(self, monkeypatch):
        """Test that no variables gives an unbound configuration."""
        for name in ("AGENT_FS_ROOT", "AGENT_FS_DEFAULT_PROVIDER", "AGENT_FS_COMMAND_TIMEOUT"):
            monkeypatch.delenv(name, raising=False)

        config = FileSystemConfig.from_env()
        assert config.default_provider is None
        assert config.providers == {}
