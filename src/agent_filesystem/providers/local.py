"""
Local disk filesystem provider.

Every path is resolved against a root directory and refused if it escapes
that root.
"""

import asyncio
import logging
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import AsyncIterator, Optional, Union

from agent_filesystem.exceptions import InvalidPathError
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
    compile_line_matchers,
)

logger = logging.getLogger(__name__)


class LocalFileSystemProvider(FileSystemProvider):
    """
    Filesystem provider backed by a directory on local disk.

    File reads, writes, copies and directory scans run synchronously inside
    the async methods and block the event loop while they run. Only command
    execution is truly asynchronous.

    Usage:
        provider = LocalFileSystemProvider(Path("/tmp/workspace"))
        await provider.write_file("src/main.py", "print('hi')")

        async for path in provider.get_directory_tree("", DirectoryTreeOptions()):
            print(path)
    """

    def __init__(
        self,
        base_directory: Union[str, Path],
        default_timeout_seconds: float = 120.0,
    ):
        """
        Initialize the provider.

        Args:
            base_directory: Root directory for all operations
            default_timeout_seconds: Timeout used when a command gives none
        """
        self.root = Path(base_directory).expanduser().resolve()
        self.default_timeout_seconds = default_timeout_seconds

    def get_base_directory(self) -> str:
        return str(self.root)

    def relative_or_absolute_path_to_absolute_path(self, path: str) -> str:
        return str(self._resolve(path))

    def relative_or_absolute_path_to_relative_path(self, path: str) -> str:
        return self._relative(self._resolve(path))

    def _resolve(self, path: str) -> Path:
        """Resolve a path against the root, refusing anything outside it."""
        candidate = Path(path).expanduser()
        if not candidate.is_absolute():
            candidate = self.root / candidate

        try:
            resolved = candidate.resolve()
        except (OSError, RuntimeError) as e:
            raise InvalidPathError(path, f"Cannot resolve path: {e}")

        if not self._is_within_directory(resolved, self.root):
            raise InvalidPathError(path, "Path is outside the provider root")
        return resolved

    def _relative(self, path: Path) -> str:
        rel = path.relative_to(self.root).as_posix()
        return "" if rel == "." else rel

    def _is_within_directory(self, path: Path, directory: Path) -> bool:
        try:
            path.relative_to(directory)
            return True
        except ValueError:
            return False

    async def get_directory_tree(
        self, path: str, options: DirectoryTreeOptions
    ) -> AsyncIterator[str]:
        start = self._resolve(path)
        if not start.is_dir():
            raise NotADirectoryError(f"Not a directory: {path}")

        async for rel in self._walk(start, options.ignore_filter, options.recursive):
            yield rel

    async def _walk(
        self,
        directory: Path,
        ignore_filter: Optional[IgnoreFilter],
        recursive: bool,
    ) -> AsyncIterator[str]:
        try:
            entries = sorted(os.scandir(directory), key=lambda e: e.name)
        except PermissionError:
            logger.warning(f"Permission denied while listing {directory}")
            return

        for entry in entries:
            rel = self._relative(Path(entry.path))
            is_dir = entry.is_dir(follow_symlinks=False)
            if is_dir:
                rel += "/"
            if ignore_filter is not None and ignore_filter(rel):
                continue

            yield rel

            if is_dir and recursive:
                async for child in self._walk(Path(entry.path), ignore_filter, recursive):
                    yield child

    async def write_file(self, path: str, content: Union[str, bytes]) -> bool:
        resolved = self._resolve(path)
        resolved.parent.mkdir(parents=True, exist_ok=True)

        if isinstance(content, bytes):
            resolved.write_bytes(content)
        else:
            resolved.write_text(content, encoding="utf-8")

        logger.debug(f"Wrote file: {resolved} ({len(content)} chars/bytes)")
        return True

    async def append_file(self, path: str, content: Union[str, bytes]) -> bool:
        resolved = self._resolve(path)
        resolved.parent.mkdir(parents=True, exist_ok=True)

        mode = "ab" if isinstance(content, bytes) else "a"
        encoding = None if isinstance(content, bytes) else "utf-8"
        with open(resolved, mode, encoding=encoding) as f:
            f.write(content)

        logger.debug(f"Appended to file: {resolved}")
        return True

    async def delete_file(self, path: str) -> bool:
        resolved = self._resolve(path)
        resolved.unlink()
        logger.debug(f"Deleted file: {resolved}")
        return True

    async def read_file(
        self, path: str, encoding: Optional[str] = "utf-8"
    ) -> Optional[Union[str, bytes]]:
        resolved = self._resolve(path)
        if not resolved.is_file():
            return None

        if encoding is None:
            return resolved.read_bytes()
        return resolved.read_text(encoding=encoding)

    async def rename(self, old_path: str, new_path: str) -> bool:
        source = self._resolve(old_path)
        target = self._resolve(new_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        source.rename(target)
        return True

    async def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    async def stat(self, path: str) -> StatResult:
        resolved = self._resolve(path)
        st = resolved.stat()
        return StatResult(
            path=self._relative(resolved),
            absolute_path=str(resolved),
            is_file=resolved.is_file(),
            is_directory=resolved.is_dir(),
            is_symbolic_link=resolved.is_symlink(),
            size=st.st_size,
            created=datetime.fromtimestamp(st.st_ctime),
            modified=datetime.fromtimestamp(st.st_mtime),
            accessed=datetime.fromtimestamp(st.st_atime),
        )

    async def create_directory(self, path: str, recursive: bool = False) -> bool:
        resolved = self._resolve(path)
        resolved.mkdir(parents=recursive, exist_ok=recursive)
        return True

    async def copy(
        self, source: str, destination: str, overwrite: bool = False
    ) -> bool:
        src = self._resolve(source)
        dst = self._resolve(destination)

        if dst.exists() and not overwrite:
            raise FileExistsError(f"Destination already exists: {destination}")

        dst.parent.mkdir(parents=True, exist_ok=True)
        if src.is_dir():
            shutil.copytree(src, dst, dirs_exist_ok=overwrite)
        else:
            shutil.copy2(src, dst)
        return True

    async def chmod(self, path: str, mode: int) -> bool:
        os.chmod(self._resolve(path), mode)
        return True

    def _check_glob_pattern(self, pattern: str) -> None:
        """Refuse glob patterns that could match outside the root."""
        if Path(pattern).is_absolute():
            raise InvalidPathError(pattern, "Glob pattern must be relative to the provider root")
        if ".." in Path(pattern).parts:
            raise InvalidPathError(pattern, "Glob pattern must not contain '..'")

    async def glob(self, pattern: str, options: GlobOptions) -> list[str]:
        self._check_glob_pattern(pattern)

        matches = []
        for path in sorted(self.root.glob(pattern)):
            # Symlinks may still point outside the root
            if not self._is_within_directory(path.resolve(), self.root):
                logger.debug(f"glob skipped path outside root: {path}")
                continue

            is_dir = path.is_dir()
            if is_dir and not options.include_directories:
                continue

            rel = self._relative(path)
            if not rel:
                continue
            filter_path = rel + "/" if is_dir else rel
            if options.ignore_filter is not None and options.ignore_filter(filter_path):
                continue

            matches.append(str(path) if options.absolute else rel)

        logger.debug(f"glob {pattern!r} matched {len(matches)} paths")
        return matches

    async def grep(
        self, search: Union[str, list[str]], options: GrepOptions
    ) -> list[GrepResult]:
        patterns = [search] if isinstance(search, str) else list(search)
        matchers = compile_line_matchers(
            patterns, options.match_type, options.case_sensitive
        )
        context = options.include_content
        results: list[GrepResult] = []
        if not matchers:
            return results

        async for rel in self._walk(self.root, options.ignore_filter, recursive=True):
            if rel.endswith("/"):
                continue

            try:
                text = (self.root / rel).read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                logger.warning(f"Failed to search in {rel}: {e}")
                continue

            if "\x00" in text:
                continue

            lines = text.split("\n")
            for index, line in enumerate(lines):
                matched = next(
                    (p for p, regex in matchers if regex.search(line)), None
                )
                if matched is None:
                    continue

                content = None
                if context is not None:
                    start = max(0, index - context.lines_before)
                    end = min(len(lines) - 1, index + context.lines_after)
                    content = "\n".join(lines[start : end + 1])

                results.append(
                    GrepResult(
                        file=rel,
                        line=index + 1,
                        match=line,
                        matched_string=matched,
                        content=content,
                    )
                )

        logger.info(f"grep found {len(results)} matches")
        return results

    async def watch(self, directory: str, options: WatchOptions) -> "DirectoryWatcher":
        start = self._resolve(directory)
        return DirectoryWatcher(self, start, options)

    async def execute_command(
        self,
        command: Union[str, list[str]],
        options: ExecuteCommandOptions,
    ) -> ExecuteCommandResult:
        timeout = options.timeout_seconds
        if timeout is None:
            timeout = self.default_timeout_seconds
        cwd = self._resolve(options.working_directory or ".")

        env = dict(os.environ)
        for key, value in options.env.items():
            if value is None:
                env.pop(key, None)
            else:
                env[key] = value

        if isinstance(command, str):
            proc = await asyncio.create_subprocess_shell(
                command,
                cwd=cwd,
                env=env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        else:
            proc = await asyncio.create_subprocess_exec(
                *command,
                cwd=cwd,
                env=env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.error(f"Command timed out after {timeout}s")
            return ExecuteCommandResult(
                ok=False,
                exit_code=-1,
                error=f"Command timed out after {timeout} seconds",
            )

        exit_code = proc.returncode if proc.returncode is not None else -1
        result = ExecuteCommandResult(
            ok=exit_code == 0,
            exit_code=exit_code,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )
        if not result.ok:
            result.error = f"Process exited with code {exit_code}"
        return result


class DirectoryWatcher:
    """
    Polling watcher over a provider directory.

    Iterate asynchronously to receive ``(event, path)`` tuples where event is
    one of ``"add"``, ``"change"`` or ``"unlink"``. Call ``close()`` to stop.
    """

    def __init__(
        self,
        provider: LocalFileSystemProvider,
        directory: Path,
        options: WatchOptions,
    ):
        self.provider = provider
        self.directory = directory
        self.options = options
        self._closed = False
        self._snapshot: Optional[dict[str, float]] = None

    def close(self) -> None:
        self._closed = True

    async def _take_snapshot(self) -> dict[str, float]:
        snapshot = {}
        async for rel in self.provider._walk(
            self.directory, self.options.ignore_filter, recursive=True
        ):
            if rel.endswith("/"):
                continue
            try:
                snapshot[rel] = (self.provider.root / rel).stat().st_mtime
            except FileNotFoundError:
                continue
        return snapshot

    async def __aiter__(self) -> AsyncIterator[tuple[str, str]]:
        if self._snapshot is None:
            self._snapshot = await self._take_snapshot()

        while not self._closed:
            await asyncio.sleep(self.options.poll_interval)
            current = await self._take_snapshot()
            previous = self._snapshot

            for rel, mtime in current.items():
                if rel not in previous:
                    yield "add", rel
                elif previous[rel] != mtime:
                    yield "change", rel
            for rel in previous:
                if rel not in current:
                    yield "unlink", rel

            self._snapshot = current
