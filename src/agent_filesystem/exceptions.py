"""
Exceptions for virtual filesystem operations.

Configuration mistakes, missing paths and policy rejections each get their
own exception family so callers can tell a refused command apart from a
failed one.
"""

from typing import Optional


class FileSystemError(Exception):
    """Base exception for all agent filesystem errors."""

    pass


class ConfigurationError(FileSystemError):
    """Raised when the filesystem layer is misconfigured."""

    pass


class ProviderNotFoundError(ConfigurationError):
    """Raised when a provider name is not registered."""

    def __init__(self, name: str, available: Optional[list[str]] = None):
        self.name = name
        self.available = available or []
        message = f"Unknown filesystem provider: {name}"
        if self.available:
            message += f". Available providers: {', '.join(self.available)}"
        else:
            message += ". No providers are registered"
        super().__init__(message)


class PathNotFoundError(FileSystemError, LookupError):
    """Base class for errors about paths that were expected to exist."""

    def __init__(self, path: str, reason: str = "Path not found"):
        self.path = path
        self.reason = reason
        super().__init__(f"{reason}: {path}")


class FileNotFoundInProviderError(PathNotFoundError):
    """Raised when a file does not exist in the active provider."""

    def __init__(self, path: str):
        super().__init__(path, "Could not find file")


class FileNotSelectedError(PathNotFoundError):
    """Raised when removing a file that is not in the selected file set."""

    def __init__(self, path: str):
        super().__init__(path, "File is not in the chat context and could not be removed")


class InvalidPathError(FileSystemError):
    """Raised when a path is invalid or escapes the provider root."""

    def __init__(self, path: str, reason: str = "Invalid path"):
        self.path = path
        self.reason = reason
        super().__init__(f"{reason}: {path}")


class CommandNotApprovedError(FileSystemError):
    """Raised when a human declines to run a gated shell command."""

    def __init__(self, command: str, level: Optional[str] = None):
        self.command = command
        self.level = level
        super().__init__("User did not approve command execution")


class CommandExecutionError(FileSystemError):
    """Raised when the provider itself fails while executing a command."""

    def __init__(self, command: str, message: str):
        self.command = command
        super().__init__(message)
