"""
Filesystem provider interface and built-in backends.
"""

from agent_filesystem.providers.base import (
    ContextLines,
    DirectoryTreeOptions,
    ExecuteCommandOptions,
    ExecuteCommandResult,
    FileSystemProvider,
    GlobOptions,
    GrepMatchType,
    GrepOptions,
    GrepResult,
    IgnoreFilter,
    StatResult,
    WatchOptions,
    compile_line_matchers,
)
from agent_filesystem.providers.local import DirectoryWatcher, LocalFileSystemProvider

__all__ = [
    "ContextLines",
    "DirectoryTreeOptions",
    "ExecuteCommandOptions",
    "ExecuteCommandResult",
    "FileSystemProvider",
    "GlobOptions",
    "GrepMatchType",
    "GrepOptions",
    "GrepResult",
    "IgnoreFilter",
    "StatResult",
    "WatchOptions",
    "compile_line_matchers",
    "DirectoryWatcher",
    "LocalFileSystemProvider",
]
