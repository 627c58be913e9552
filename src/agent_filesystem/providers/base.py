"""
Abstract base class for filesystem providers.

This module defines the interface that every storage backend (local disk,
SSH, containers, ...) must implement, along with the value types passed
across that boundary.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, AsyncIterator, Callable, Optional, Union

logger = logging.getLogger(__name__)

IgnoreFilter = Callable[[str], bool]
"""Predicate over a relative path; True means the path is excluded."""


@dataclass
class StatResult:
    """
    File metadata returned by a provider.

    Attributes:
        path: Path relative to the provider root
        absolute_path: Backend-specific absolute path, if meaningful
        is_file: Whether the path is a regular file
        is_directory: Whether the path is a directory
        is_symbolic_link: Whether the path is a symbolic link
        size: Size in bytes
    """

    path: str
    is_file: bool
    is_directory: bool
    absolute_path: Optional[str] = None
    is_symbolic_link: bool = False
    size: Optional[int] = None
    created: Optional[datetime] = None
    modified: Optional[datetime] = None
    accessed: Optional[datetime] = None


@dataclass
class GrepResult:
    """
    A single line hit produced by a provider grep.

    Attributes:
        file: Path of the file relative to the provider root
        line: 1-based line number
        match: The full text of the matching line
        matched_string: Which of the searched patterns matched
        content: Surrounding context block, if requested
    """

    file: str
    line: int
    match: str
    matched_string: Optional[str] = None
    content: Optional[str] = None


class GrepMatchType(str, Enum):
    """How a grep pattern is compared against each line."""

    SUBSTRING = "substring"
    """Plain substring containment."""

    WHOLE_WORD = "whole-word"
    """The pattern text bounded by word boundaries."""

    REGEX = "regex"
    """The pattern is a regular expression."""


@dataclass
class ContextLines:
    """Number of context lines to include around a grep hit."""

    lines_before: int = 0
    lines_after: int = 0


@dataclass
class DirectoryTreeOptions:
    ignore_filter: Optional[IgnoreFilter] = None
    recursive: bool = True


@dataclass
class GlobOptions:
    ignore_filter: Optional[IgnoreFilter] = None
    absolute: bool = False
    include_directories: bool = False


@dataclass
class GrepOptions:
    ignore_filter: Optional[IgnoreFilter] = None
    include_content: Optional[ContextLines] = None
    case_sensitive: bool = True
    match_type: GrepMatchType = GrepMatchType.SUBSTRING


def compile_line_matchers(
    patterns: list[str],
    match_type: GrepMatchType = GrepMatchType.SUBSTRING,
    case_sensitive: bool = True,
) -> list[tuple[str, re.Pattern]]:
    """
    Compile grep patterns into ``(pattern, regex)`` pairs.

    Invalid regular expressions are logged and skipped so the remaining
    patterns still run.
    """
    flags = 0 if case_sensitive else re.IGNORECASE
    matchers = []
    for pattern in patterns:
        if match_type == GrepMatchType.REGEX:
            source = pattern
        elif match_type == GrepMatchType.WHOLE_WORD:
            source = rf"\b{re.escape(pattern)}\b"
        else:
            source = re.escape(pattern)

        try:
            matchers.append((pattern, re.compile(source, flags)))
        except re.error as e:
            logger.warning(f"Skipping invalid grep pattern {pattern!r}: {e}")
    return matchers


@dataclass
class WatchOptions:
    ignore_filter: Optional[IgnoreFilter] = None
    poll_interval: float = 1.0


@dataclass
class ExecuteCommandOptions:
    timeout_seconds: Optional[float] = None
    env: dict[str, Optional[str]] = field(default_factory=dict)
    working_directory: Optional[str] = None


@dataclass
class ExecuteCommandResult:
    """
    Outcome of a shell command.

    A command that timed out or exited non-zero is reported here with
    ``ok=False`` rather than raised.
    """

    ok: bool
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    error: Optional[str] = None


class FileSystemProvider(ABC):
    """
    Abstract base class for filesystem providers.

    All paths are interpreted relative to the provider root. Providers that
    are not rooted on a real directory may return any stable string from
    ``get_base_directory``.
    """

    @abstractmethod
    def get_base_directory(self) -> str:
        """Get the root directory this provider operates on."""

    def relative_or_absolute_path_to_absolute_path(self, path: str) -> str:
        return path

    def relative_or_absolute_path_to_relative_path(self, path: str) -> str:
        return path

    @abstractmethod
    def get_directory_tree(
        self, path: str, options: DirectoryTreeOptions
    ) -> AsyncIterator[str]:
        """
        Walk a directory lazily.

        Yields paths relative to the provider root. Directories are
        suffixed with ``/``.
        """

    @abstractmethod
    async def write_file(self, path: str, content: Union[str, bytes]) -> bool:
        ...

    @abstractmethod
    async def append_file(self, path: str, content: Union[str, bytes]) -> bool:
        ...

    @abstractmethod
    async def delete_file(self, path: str) -> bool:
        ...

    @abstractmethod
    async def read_file(
        self, path: str, encoding: Optional[str] = "utf-8"
    ) -> Optional[Union[str, bytes]]:
        """
        Read a file.

        Returns text when an encoding is given, bytes when ``encoding`` is
        None, and None when the path is not a readable file.
        """

    @abstractmethod
    async def rename(self, old_path: str, new_path: str) -> bool:
        ...

    @abstractmethod
    async def exists(self, path: str) -> bool:
        ...

    @abstractmethod
    async def stat(self, path: str) -> StatResult:
        ...

    @abstractmethod
    async def create_directory(self, path: str, recursive: bool = False) -> bool:
        ...

    @abstractmethod
    async def copy(
        self, source: str, destination: str, overwrite: bool = False
    ) -> bool:
        ...

    @abstractmethod
    async def chmod(self, path: str, mode: int) -> bool:
        ...

    @abstractmethod
    async def glob(self, pattern: str, options: GlobOptions) -> list[str]:
        ...

    @abstractmethod
    async def watch(self, directory: str, options: WatchOptions) -> Any:
        ...

    @abstractmethod
    async def execute_command(
        self,
        command: Union[str, list[str]],
        options: ExecuteCommandOptions,
    ) -> ExecuteCommandResult:
        ...

    @abstractmethod
    async def grep(
        self, search: Union[str, list[str]], options: GrepOptions
    ) -> list[GrepResult]:
        ...
