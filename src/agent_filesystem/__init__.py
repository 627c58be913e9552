"""
agent-filesystem: Virtual filesystem access layer for AI coding agents.

Provides pluggable storage providers, ignore-rule composition, a command
safety classifier that gates shell execution behind human confirmation,
and relevance-ranked file search for building LLM context.
"""

__version__ = "0.1.0"

from agent_filesystem.config import (
    FileSearchConfig,
    FileSystemConfig,
    ProviderSettings,
)
from agent_filesystem.exceptions import (
    CommandExecutionError,
    CommandNotApprovedError,
    ConfigurationError,
    FileNotFoundInProviderError,
    FileNotSelectedError,
    FileSystemError,
    InvalidPathError,
    PathNotFoundError,
    ProviderNotFoundError,
)
from agent_filesystem.ignore import IgnoreFilterBuilder
from agent_filesystem.providers import FileSystemProvider, LocalFileSystemProvider
from agent_filesystem.registry import (
    ProviderRegistry,
    create_provider,
    register_provider_factory,
)
from agent_filesystem.resources import FileMatchResource, MatchItem
from agent_filesystem.search import SearchMatch, SearchRanker
from agent_filesystem.security import CommandSafetyClassifier, CommandSafetyLevel
from agent_filesystem.service import FileSystemService, SessionFileSystem
from agent_filesystem.state import FileSystemState
from agent_filesystem.tools import AgentFileSystemTools

__all__ = [
    "__version__",
    # Config
    "FileSearchConfig",
    "FileSystemConfig",
    "ProviderSettings",
    # Exceptions
    "CommandExecutionError",
    "CommandNotApprovedError",
    "ConfigurationError",
    "FileNotFoundInProviderError",
    "FileNotSelectedError",
    "FileSystemError",
    "InvalidPathError",
    "PathNotFoundError",
    "ProviderNotFoundError",
    # Providers
    "FileSystemProvider",
    "LocalFileSystemProvider",
    "ProviderRegistry",
    "create_provider",
    "register_provider_factory",
    # Core
    "IgnoreFilterBuilder",
    "CommandSafetyClassifier",
    "CommandSafetyLevel",
    "SearchMatch",
    "SearchRanker",
    "FileSystemService",
    "SessionFileSystem",
    "FileSystemState",
    "FileMatchResource",
    "MatchItem",
    "AgentFileSystemTools",
]
