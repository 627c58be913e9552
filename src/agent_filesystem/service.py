"""
Filesystem service facade.

Routes every call to the provider bound to the calling session, injects
the session's ignore filter into listing and search calls, tracks the
dirty flag and manages the files selected into the chat context.
"""

import dataclasses
import logging
from typing import Any, AsyncIterator, Iterable, Optional, Union

from agent_filesystem.config import FileSystemConfig
from agent_filesystem.exceptions import (
    ConfigurationError,
    FileNotFoundInProviderError,
    FileNotSelectedError,
    FileSystemError,
)
from agent_filesystem.ignore import IgnoreFilterBuilder
from agent_filesystem.providers.base import (
    DirectoryTreeOptions,
    ExecuteCommandOptions,
    ExecuteCommandResult,
    FileSystemProvider,
    GlobOptions,
    GrepOptions,
    GrepResult,
    IgnoreFilter,
    StatResult,
    WatchOptions,
)
from agent_filesystem.registry import ProviderRegistry
from agent_filesystem.security import CommandSafetyClassifier, CommandSafetyLevel
from agent_filesystem.state import FileSystemState

logger = logging.getLogger(__name__)

FILE_ATTACHMENT_HEADER = "// The user has attached the following files:\n\n"
DIRECTORY_LISTING_HEADER = "// The user has attached the following directory listing:\n\n"


class FileSystemService:
    """
    Unified, session-aware entry point to the filesystem providers.

    Usage:
        config = FileSystemConfig.from_file("agent-fs.yaml")
        service = FileSystemService(config)
        state = service.attach()

        await service.write_file("notes.md", "# Notes", state)
        files = await service.glob("**/*.py", state)
        level = service.get_command_safety_level("npm install")
    """

    def __init__(
        self,
        config: Optional[FileSystemConfig] = None,
        registry: Optional[ProviderRegistry] = None,
        ignore_builder: Optional[IgnoreFilterBuilder] = None,
    ):
        """
        Initialize the service.

        Args:
            config: Filesystem configuration (defaults are used if omitted)
            registry: Provider registry, built from ``config.providers`` if omitted
            ignore_builder: Builder for ignore filters
        """
        self.config = config or FileSystemConfig()
        self.registry = registry or ProviderRegistry.from_settings(self.config.providers)
        self.ignore_builder = ignore_builder or IgnoreFilterBuilder()
        self.classifier = CommandSafetyClassifier.from_config(self.config)

    def register_provider(self, name: str, provider: FileSystemProvider) -> None:
        self.registry.register(name, provider)

    def attach(self, state: Optional[FileSystemState] = None) -> FileSystemState:
        """Create (or adopt) the state for a new session."""
        if state is None:
            state = FileSystemState.create(
                selected_files=self.config.default_selected_files,
                active_provider=self.config.default_provider,
            )
        logger.debug(f"Attached session with provider {state.active_provider}")
        return state

    def bind(self, state: FileSystemState) -> "SessionFileSystem":
        """Return a view of this service that carries the session state."""
        return SessionFileSystem(self, state)

    # Provider selection

    def get_active_provider_name(self, state: FileSystemState) -> Optional[str]:
        return state.active_provider or self.config.default_provider

    def set_active_provider_name(self, name: str, state: FileSystemState) -> None:
        """
        Bind the session to a registered provider.

        Raises:
            ProviderNotFoundError: If the name is not registered
        """
        self.registry.get(name)
        state.active_provider = name
        state.ignore_filter = None
        logger.info(f"Session switched to filesystem provider: {name}")

    def get_available_providers(self) -> list[str]:
        return self.registry.list_providers()

    def resolve_provider(self, state: FileSystemState) -> FileSystemProvider:
        """
        Get the provider the session is bound to.

        Raises:
            ConfigurationError: If neither the session nor the config names a provider
            ProviderNotFoundError: If the bound name is not registered
        """
        name = self.get_active_provider_name(state)
        if name is None:
            raise ConfigurationError(
                "No filesystem provider is active and no default provider is configured"
            )
        return self.registry.get(name)

    # Ignore filters

    async def create_ignore_filter(self, state: FileSystemState) -> IgnoreFilter:
        """Build the session's ignore filter, reusing the cached one if present."""
        if state.ignore_filter is None:
            state.ignore_filter = await self.ignore_builder.build(
                self.resolve_provider(state)
            )
        return state.ignore_filter

    def invalidate_ignore_filter(self, state: FileSystemState) -> None:
        state.ignore_filter = None

    async def _with_ignore_filter(self, options, state: FileSystemState):
        if options.ignore_filter is None:
            options = dataclasses.replace(
                options, ignore_filter=await self.create_ignore_filter(state)
            )
        return options

    # Directory walking

    async def get_directory_tree(
        self,
        path: str,
        state: FileSystemState,
        options: Optional[DirectoryTreeOptions] = None,
    ) -> AsyncIterator[str]:
        options = await self._with_ignore_filter(options or DirectoryTreeOptions(), state)
        async for item in self.resolve_provider(state).get_directory_tree(path, options):
            yield item

    # File operations

    async def write_file(
        self, path: str, content: Union[str, bytes], state: FileSystemState
    ) -> bool:
        result = await self.resolve_provider(state).write_file(path, content)
        state.dirty = True
        return result

    async def append_file(
        self, path: str, content: Union[str, bytes], state: FileSystemState
    ) -> bool:
        result = await self.resolve_provider(state).append_file(path, content)
        state.dirty = True
        return result

    async def delete_file(self, path: str, state: FileSystemState) -> bool:
        result = await self.resolve_provider(state).delete_file(path)
        state.dirty = True
        return result

    async def read_file(
        self,
        path: str,
        state: FileSystemState,
        encoding: Optional[str] = "utf-8",
    ) -> Optional[Union[str, bytes]]:
        return await self.resolve_provider(state).read_file(path, encoding)

    async def get_file(self, path: str, state: FileSystemState) -> Optional[str]:
        """Read a file as UTF-8 text, or None if it is not a file."""
        return await self.read_file(path, state, "utf-8")

    async def rename(self, old_path: str, new_path: str, state: FileSystemState) -> bool:
        result = await self.resolve_provider(state).rename(old_path, new_path)
        state.dirty = True
        return result

    async def exists(self, path: str, state: FileSystemState) -> bool:
        return await self.resolve_provider(state).exists(path)

    async def stat(self, path: str, state: FileSystemState) -> StatResult:
        return await self.resolve_provider(state).stat(path)

    async def create_directory(
        self, path: str, state: FileSystemState, recursive: bool = False
    ) -> bool:
        result = await self.resolve_provider(state).create_directory(path, recursive)
        state.dirty = True
        return result

    async def copy(
        self,
        source: str,
        destination: str,
        state: FileSystemState,
        overwrite: bool = False,
    ) -> bool:
        result = await self.resolve_provider(state).copy(source, destination, overwrite)
        state.dirty = True
        return result

    async def chmod(self, path: str, mode: int, state: FileSystemState) -> bool:
        result = await self.resolve_provider(state).chmod(path, mode)
        state.dirty = True
        return result

    # Search

    async def glob(
        self,
        pattern: str,
        state: FileSystemState,
        options: Optional[GlobOptions] = None,
    ) -> list[str]:
        options = await self._with_ignore_filter(options or GlobOptions(), state)
        return await self.resolve_provider(state).glob(pattern, options)

    async def grep(
        self,
        search: Union[str, list[str]],
        state: FileSystemState,
        options: Optional[GrepOptions] = None,
    ) -> list[GrepResult]:
        options = await self._with_ignore_filter(options or GrepOptions(), state)
        return await self.resolve_provider(state).grep(search, options)

    async def watch(
        self,
        directory: str,
        state: FileSystemState,
        options: Optional[WatchOptions] = None,
    ) -> Any:
        options = await self._with_ignore_filter(options or WatchOptions(), state)
        return await self.resolve_provider(state).watch(directory, options)

    # Command execution

    async def execute_command(
        self,
        command: Union[str, list[str]],
        state: FileSystemState,
        options: Optional[ExecuteCommandOptions] = None,
    ) -> ExecuteCommandResult:
        """
        Run a command through the active provider.

        No safety check happens here; callers gate commands with
        ``get_command_safety_level`` first.
        """
        options = options or ExecuteCommandOptions()
        if options.timeout_seconds is None:
            options = dataclasses.replace(
                options, timeout_seconds=self.config.default_command_timeout_seconds
            )

        result = await self.resolve_provider(state).execute_command(command, options)
        if result.ok:
            state.dirty = True
        return result

    def get_command_safety_level(self, command: str) -> CommandSafetyLevel:
        return self.classifier.classify(command)

    def parse_compound_command(self, command: str) -> list[str]:
        return self.classifier.parse_compound_command(command)

    # Chat file selection

    async def add_file_to_chat(self, file: str, state: FileSystemState) -> None:
        """
        Select a file into the chat context.

        Raises:
            FileNotFoundInProviderError: If the file does not exist
        """
        if not await self.exists(file, state):
            raise FileNotFoundInProviderError(file)
        state.selected_files.add(file)

    def remove_file_from_chat(self, file: str, state: FileSystemState) -> None:
        """
        Deselect a file.

        Raises:
            FileNotSelectedError: If the file was not selected
        """
        if file not in state.selected_files:
            raise FileNotSelectedError(file)
        state.selected_files.discard(file)

    def get_files_in_chat(self, state: FileSystemState) -> set[str]:
        return state.selected_files

    async def set_files_in_chat(self, files: Iterable[str], state: FileSystemState) -> None:
        """Replace the selection; every file is checked before anything changes."""
        files = list(files)
        for file in files:
            if not await self.exists(file, state):
                raise FileNotFoundInProviderError(file)
        state.selected_files = set(files)

    def get_default_files(self) -> list[str]:
        return list(self.config.default_selected_files)

    async def get_selected_file_context(self, state: FileSystemState) -> list[str]:
        """
        Render the selected files as attachment blocks for the chat context.

        Files are attached with their content. Selected directories are
        attached as a listing. Paths that are neither are skipped.

        Returns:
            Zero, one or two text blocks (files, then directories)
        """
        file_blocks = []
        directory_blocks = []

        for file in sorted(state.selected_files):
            content = await self.get_file(file, state)
            if content:
                file_blocks.append(
                    f"BEGIN FILE ATTACHMENT: {file}\n{content}\nEND FILE ATTACHMENT: {file}"
                )
                continue

            try:
                entries = [entry async for entry in self.get_directory_tree(file, state)]
            except (OSError, FileSystemError) as e:
                logger.debug(f"Skipping selected path {file}: {e}")
                continue

            listing = "\n".join(f"- {entry}" for entry in entries)
            directory_blocks.append(
                f"BEGIN DIRECTORY LISTING:\n{file}\n{listing}\nEND DIRECTORY LISTING"
            )

        blocks = []
        if file_blocks:
            blocks.append(FILE_ATTACHMENT_HEADER + "\n\n".join(file_blocks))
        if directory_blocks:
            blocks.append(DIRECTORY_LISTING_HEADER + "\n\n".join(directory_blocks))
        return blocks


class SessionFileSystem:
    """
    A FileSystemService bound to one session's state.

    Exposes the service operations without the ``state`` argument, which
    makes it usable wherever a plain filesystem object is expected, for
    example as the input to SearchRanker.
    """

    def __init__(self, service: FileSystemService, state: FileSystemState):
        self.service = service
        self.state = state

    def get_directory_tree(
        self, path: str, options: Optional[DirectoryTreeOptions] = None
    ) -> AsyncIterator[str]:
        return self.service.get_directory_tree(path, self.state, options)

    async def read_file(self, path: str, encoding: Optional[str] = "utf-8"):
        return await self.service.read_file(path, self.state, encoding)

    async def get_file(self, path: str) -> Optional[str]:
        return await self.service.get_file(path, self.state)

    async def write_file(self, path: str, content: Union[str, bytes]) -> bool:
        return await self.service.write_file(path, content, self.state)

    async def append_file(self, path: str, content: Union[str, bytes]) -> bool:
        return await self.service.append_file(path, content, self.state)

    async def delete_file(self, path: str) -> bool:
        return await self.service.delete_file(path, self.state)

    async def exists(self, path: str) -> bool:
        return await self.service.exists(path, self.state)

    async def stat(self, path: str) -> StatResult:
        return await self.service.stat(path, self.state)

    async def glob(self, pattern: str, options: Optional[GlobOptions] = None) -> list[str]:
        return await self.service.glob(pattern, self.state, options)

    async def grep(
        self, search: Union[str, list[str]], options: Optional[GrepOptions] = None
    ) -> list[GrepResult]:
        return await self.service.grep(search, self.state, options)

    async def execute_command(
        self,
        command: Union[str, list[str]],
        options: Optional[ExecuteCommandOptions] = None,
    ) -> ExecuteCommandResult:
        return await self.service.execute_command(command, self.state, options)
