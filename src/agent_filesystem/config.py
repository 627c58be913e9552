"""
Configuration for the agent filesystem layer.

Covers provider definitions, command safety pattern sets and file search
tuning. Configuration can be built in code, loaded from a YAML/JSON file,
or read from ``AGENT_FS_*`` environment variables.
"""

import json
import re
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SAFE_COMMANDS = [
    "awk", "cat", "cd", "chdir", "diff", "echo", "find", "git", "grep", "head",
    "help", "hostname", "id", "ipconfig", "tee", "ls", "netstat", "ps", "pwd",
    "sort", "tail", "tree", "type", "uname", "uniq", "wc", "which", "touch",
    "mkdir", "npm", "yarn", "bun", "tsc", "node", "npx", "bunx", "vitest",
    "python", "pip", "pytest", "uv", "ruff",
]

DEFAULT_DANGEROUS_COMMANDS = [
    r"(^|\s)dd\s",
    r"(^|\s)rm.*-.*r",
    r"(^|\s)chmod.*-.*r",
    r"(^|\s)chown.*-.*r",
    r"(^|\s)rmdir\s",
    r"find.*-(delete|exec)",  # find -delete, find -exec rm
    r"(^|\s)sudo\s",
    r"(^|\s)del\s",
    r"(^|\s)format\s",
    r"(^|\s)reboot",
    r"(^|\s)shutdown",
    r"git.*reset",
]


class FileSearchConfig(BaseModel):
    """Tuning for file search and snippet extraction."""

    model_config = {"extra": "forbid"}

    max_results: int = Field(
        default=25,
        ge=1,
        le=10000,
        description="Maximum number of ranked files returned by relevance search",
    )
    max_snippet_count: int = Field(
        default=10,
        ge=0,
        description="Maximum number of snippets returned per file (reserved, not read yet)",
    )
    max_snippet_size_percent: float = Field(
        default=0.3,
        gt=0.0,
        le=1.0,
        description="Maximum snippet size as a fraction of the file (reserved, not read yet)",
    )
    snippet_lines_before: int = Field(
        default=5,
        ge=0,
        description="Default context lines before a grep_files match",
    )
    snippet_lines_after: int = Field(
        default=5,
        ge=0,
        description="Default context lines after a grep_files match",
    )


class ProviderSettings(BaseModel):
    """
    Definition of a single named provider.

    Example:
        ```yaml
        providers:
          workspace:
            type: local
            base_directory: ~/projects/my-app
        ```
    """

    model_config = {"extra": "forbid"}

    type: str = Field(
        default="local",
        description="Registered provider factory type",
    )
    base_directory: Optional[Path] = Field(
        default=None,
        description="Root directory for rooted providers",
    )
    default_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Command timeout used when a call does not supply one",
    )

    @field_validator("base_directory", mode="before")
    @classmethod
    def resolve_directory(cls, v):
        """Resolve the base directory to an absolute path."""
        if v is None:
            return None
        return Path(v).expanduser().resolve()


class FileSystemConfig(BaseModel):
    """
    Complete filesystem layer configuration.

    Example:
        ```python
        config = FileSystemConfig(
            default_provider="local",
            providers={"local": ProviderSettings(base_directory="/tmp/work")},
            safe_commands=["ls", "git"],
        )

        # Load from file
        config = FileSystemConfig.from_file("~/.agent-fs/config.yaml")
        ```
    """

    model_config = {"extra": "forbid"}

    default_provider: Optional[str] = Field(
        default=None,
        description="Provider selected for new sessions",
    )
    default_selected_files: list[str] = Field(
        default_factory=list,
        description="Files selected for new sessions",
    )
    providers: dict[str, ProviderSettings] = Field(
        default_factory=dict,
        description="Named provider definitions",
    )
    safe_commands: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SAFE_COMMANDS),
        description="Command name prefixes considered safe",
    )
    dangerous_commands: list[str] = Field(
        default_factory=lambda: list(DEFAULT_DANGEROUS_COMMANDS),
        description="Regular expressions (case-insensitive) that mark a command line dangerous",
    )
    split_redirections: bool = Field(
        default=True,
        description="Cut subcommands at '>' or '>>' and drop the redirection target",
    )
    lowercase_commands: bool = Field(
        default=True,
        description="Lower-case command names before matching safe prefixes",
    )
    default_command_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Timeout forwarded to providers when none is given",
    )
    max_command_timeout_seconds: float = Field(
        default=90.0,
        gt=0,
        description="Upper bound applied by the tool layer to requested timeouts",
    )
    file_search: FileSearchConfig = Field(
        default_factory=FileSearchConfig,
        description="File search tuning",
    )

    @field_validator("dangerous_commands")
    @classmethod
    def validate_patterns(cls, v: list[str]) -> list[str]:
        """Reject patterns that are not valid regular expressions."""
        for pattern in v:
            try:
                re.compile(pattern, re.IGNORECASE)
            except re.error as e:
                raise ValueError(f"Invalid dangerous command pattern {pattern!r}: {e}")
        return v

    @field_validator("safe_commands")
    @classmethod
    def strip_safe_commands(cls, v: list[str]) -> list[str]:
        """Drop blank entries, which would otherwise match every command."""
        return [c.strip() for c in v if c.strip()]

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "FileSystemConfig":
        """
        Load configuration from a YAML or JSON file.

        File format (YAML):
            ```yaml
            default_provider: workspace
            providers:
              workspace:
                type: local
                base_directory: ~/projects/my-app
            safe_commands: [ls, git, npm]
            file_search:
              max_results: 10
            ```

        Args:
            path: Path to configuration file

        Returns:
            Loaded FileSystemConfig instance

        Raises:
            FileNotFoundError: If the config file doesn't exist
        """
        path = Path(path).expanduser().resolve()

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        content = path.read_text()

        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content)
        elif path.suffix == ".json":
            data = json.loads(content)
        else:
            # Try YAML first, then JSON
            try:
                data = yaml.safe_load(content)
            except yaml.YAMLError:
                data = json.loads(content)

        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: dict) -> "FileSystemConfig":
        """Create configuration from a dictionary."""
        return cls(**data)

    @classmethod
    def from_env(cls) -> "FileSystemConfig":
        """
        Build configuration from ``AGENT_FS_*`` environment variables.

        Environment variables:
            AGENT_FS_ROOT - Root directory for a "local" provider
            AGENT_FS_DEFAULT_PROVIDER - Provider selected for new sessions
            AGENT_FS_COMMAND_TIMEOUT - Default command timeout in seconds
        """
        env = FileSystemEnvSettings()

        providers = {}
        if env.root is not None:
            providers["local"] = ProviderSettings(type="local", base_directory=env.root)

        default_provider = env.default_provider
        if default_provider is None and providers:
            default_provider = "local"

        kwargs = {}
        if env.command_timeout is not None:
            kwargs["default_command_timeout_seconds"] = env.command_timeout

        return cls(default_provider=default_provider, providers=providers, **kwargs)

    def __str__(self) -> str:
        return (
            f"FileSystemConfig(default_provider={self.default_provider}, "
            f"providers={list(self.providers)})"
        )


class FileSystemEnvSettings(BaseSettings):
    """Environment overrides read by ``FileSystemConfig.from_env``."""

    model_config = SettingsConfigDict(env_prefix="AGENT_FS_", extra="ignore")

    root: Optional[Path] = None
    default_provider: Optional[str] = None
    command_timeout: Optional[float] = None
