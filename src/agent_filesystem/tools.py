"""
Agent tool interface to the filesystem service.

Exposes the session-bound filesystem, relevance and content search, and
gated shell execution to an LLM through function calling (OpenAI function
calling format).
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from agent_filesystem.exceptions import (
    CommandExecutionError,
    CommandNotApprovedError,
    FileSystemError,
)
from agent_filesystem.providers.base import (
    ContextLines,
    DirectoryTreeOptions,
    ExecuteCommandOptions,
    ExecuteCommandResult,
    GrepMatchType,
    GrepOptions,
    compile_line_matchers,
)
from agent_filesystem.search import SearchRanker
from agent_filesystem.security import CommandSafetyLevel
from agent_filesystem.service import FileSystemService
from agent_filesystem.state import FileSystemState

logger = logging.getLogger(__name__)

# Asked before running unknown or dangerous commands; may be sync or async
ConfirmCallback = Callable[[str, CommandSafetyLevel], Union[bool, Awaitable[bool]]]

SHELL_TOOL_NAME = "run_shell_command"
GREP_TOOL_NAME = "grep_files"
DEFAULT_COMMAND_TIMEOUT_SECONDS = 60
MIN_COMMAND_TIMEOUT_SECONDS = 1

GREP_RETURN_TYPES = ("names", "content", "matches")
# Above this many files or matches, grep_files falls back to names only
GREP_RESULT_LIMIT = 50


def _schema(name: str, description: str, properties: dict, required: list[str]) -> dict:
    return {
        "type": "function",
        "function": {
            "name": name,
            "description": description,
            "parameters": {
                "type": "object",
                "properties": properties,
                "required": required,
            },
        },
    }


class AgentFileSystemTools:
    """
    Filesystem tools for LLM function calling, bound to one session.

    Usage:
        service = FileSystemService(config)
        state = service.attach()
        tools = AgentFileSystemTools(service, state, confirm=ask_user)

        # Get tool schemas for LLM
        schemas = tools.get_tool_schemas()

        # Execute tool call
        result = await tools.execute_tool(
            "run_shell_command", {"command": "npm test"}
        )
    """

    def __init__(
        self,
        service: FileSystemService,
        state: FileSystemState,
        confirm: Optional[ConfirmCallback] = None,
        ranker: Optional[SearchRanker] = None,
    ):
        """
        Initialize the tools.

        Args:
            service: Filesystem service
            state: Session state the tools act on
            confirm: Human confirmation callback; without one, gated
                commands are declined
            ranker: Relevance search, built from the service config if omitted
        """
        self.service = service
        self.state = state
        self.confirm = confirm
        self.ranker = ranker or SearchRanker(service.config.file_search)

    def get_tool_schemas(self) -> list[dict[str, Any]]:
        """
        Get OpenAI function calling schemas for all available tools.

        Returns:
            List of tool schemas in OpenAI format
        """
        path_property = {
            "path": {
                "type": "string",
                "description": "Path relative to the filesystem root",
            },
        }
        content_property = {
            "content": {"type": "string", "description": "Text content"},
        }

        return [
            _schema(
                "read_file",
                "Read the contents of a file.",
                path_property,
                ["path"],
            ),
            _schema(
                "list_files",
                "List files and directories. Directories end with '/'.",
                {
                    "directory": {
                        "type": "string",
                        "description": "Directory to list (default: root)",
                    },
                    "recursive": {
                        "type": "boolean",
                        "description": "Whether to list recursively (default: false)",
                    },
                },
                [],
            ),
            _schema(
                "search_files",
                "Find files relevant to a natural-language query, ranked by "
                "filename and content matches.",
                {
                    "query": {"type": "string", "description": "What to look for"},
                    "max_results": {
                        "type": "integer",
                        "description": "Maximum number of files to return",
                    },
                },
                ["query"],
            ),
            _schema(
                "find_files",
                "Find files by glob pattern, e.g. '**/*.py'.",
                {"pattern": {"type": "string", "description": "Glob pattern"}},
                ["pattern"],
            ),
            _schema(
                GREP_TOOL_NAME,
                "Search file contents for text patterns, or retrieve a set of "
                "files by path or glob. Give 'searches' to grep the whole "
                "filesystem, 'files' to fetch specific files, or both to grep "
                "within those files.",
                {
                    "searches": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Patterns to search for",
                    },
                    "files": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "File paths or glob patterns to restrict to",
                    },
                    "return_type": {
                        "type": "string",
                        "enum": list(GREP_RETURN_TYPES),
                        "description": "names: paths only; content: whole files; "
                        "matches: matching lines with context (default: content)",
                    },
                    "match_type": {
                        "type": "string",
                        "enum": [m.value for m in GrepMatchType],
                        "description": "How patterns are matched (default: substring)",
                    },
                    "case_sensitive": {
                        "type": "boolean",
                        "description": "Whether matching is case sensitive (default: true)",
                    },
                    "lines_before": {
                        "type": "integer",
                        "description": "Context lines before each match",
                    },
                    "lines_after": {
                        "type": "integer",
                        "description": "Context lines after each match",
                    },
                },
                [],
            ),
            _schema(
                "write_file",
                "Write content to a file, replacing it if it exists.",
                {**path_property, **content_property},
                ["path", "content"],
            ),
            _schema(
                "append_file",
                "Append content to the end of a file.",
                {**path_property, **content_property},
                ["path", "content"],
            ),
            _schema(
                "delete_file",
                "Delete a file.",
                path_property,
                ["path"],
            ),
            _schema(
                SHELL_TOOL_NAME,
                "Run a shell command in the filesystem root. Commands that are "
                "not known to be safe need user approval. Not sandboxed!",
                {
                    "command": {"type": "string", "description": "The shell command to execute"},
                    "timeout_seconds": {
                        "type": "integer",
                        "description": "Timeout in seconds (default 60, capped by configuration)",
                    },
                    "working_directory": {
                        "type": "string",
                        "description": "Working directory relative to the filesystem root",
                    },
                },
                ["command"],
            ),
            _schema(
                "select_file",
                "Attach a file to the chat context.",
                path_property,
                ["path"],
            ),
            _schema(
                "deselect_file",
                "Remove a file from the chat context.",
                path_property,
                ["path"],
            ),
        ]

    async def execute_tool(
        self, tool_name: str, arguments: dict[str, Any]
    ) -> dict[str, Any]:
        """
        Execute a tool call from an LLM.

        Args:
            tool_name: Name of the tool to execute
            arguments: Tool arguments (from LLM function call)

        Returns:
            Tool execution result as a dict; failures carry
            ``success=False`` with ``error`` and ``error_type``

        Raises:
            ValueError: If tool name is unknown
        """
        handlers = {
            "read_file": self._read_file,
            "list_files": self._list_files,
            "search_files": self._search_files,
            "find_files": self._find_files,
            GREP_TOOL_NAME: self.grep_files,
            "write_file": self._write_file,
            "append_file": self._append_file,
            "delete_file": self._delete_file,
            SHELL_TOOL_NAME: self._run_shell_command,
            "select_file": self._select_file,
            "deselect_file": self._deselect_file,
        }
        handler = handlers.get(tool_name)
        if handler is None:
            raise ValueError(f"Unknown tool: {tool_name}")

        try:
            return await handler(**arguments)
        except (FileSystemError, OSError, ValueError) as e:
            logger.warning(f"Tool {tool_name} failed: {e}")
            return {
                "success": False,
                "error": str(e),
                "error_type": type(e).__name__,
            }

    async def run_shell_command(
        self,
        command: Union[str, list[str]],
        timeout_seconds: int = DEFAULT_COMMAND_TIMEOUT_SECONDS,
        working_directory: Optional[str] = None,
    ) -> ExecuteCommandResult:
        """
        Run a shell command after the safety gate.

        Args:
            command: Command line, or argv list joined with spaces for classification
            timeout_seconds: Requested timeout, clamped between 1 second and
                max_command_timeout_seconds
            working_directory: Working directory relative to the root

        Returns:
            The provider's result; a timeout is a failed result, not an error

        Raises:
            ValueError: If the command is empty
            CommandNotApprovedError: If confirmation was declined or unavailable
            CommandExecutionError: If the provider raised while executing
        """
        command_line = (
            " ".join(command) if isinstance(command, list) else command
        ).strip()
        if not command_line:
            raise ValueError(f"[{SHELL_TOOL_NAME}] command is required")

        timeout_seconds = max(
            MIN_COMMAND_TIMEOUT_SECONDS,
            min(timeout_seconds, self.service.config.max_command_timeout_seconds),
        )
        logger.info(
            f"[{SHELL_TOOL_NAME}] Running shell command: {command_line} "
            f"(cwd={working_directory} timeout={timeout_seconds}s)"
        )

        level = self.service.get_command_safety_level(command_line)
        if level.requires_confirmation:
            qualifier = "dangerous" if level is CommandSafetyLevel.DANGEROUS else "unsafe"
            message = f"Execute potentially {qualifier} command: {command_line}?"
            if not await self._ask_confirmation(message, level):
                raise CommandNotApprovedError(command_line, level.value)

        try:
            return await self.service.execute_command(
                command,
                self.state,
                ExecuteCommandOptions(
                    timeout_seconds=timeout_seconds,
                    working_directory=working_directory or "./",
                ),
            )
        except Exception as e:
            raise CommandExecutionError(command_line, f"[{SHELL_TOOL_NAME}] {e}") from e

    async def grep_files(
        self,
        searches: Optional[list[str]] = None,
        files: Optional[list[str]] = None,
        return_type: str = "content",
        match_type: str = "substring",
        case_sensitive: bool = True,
        lines_before: Optional[int] = None,
        lines_after: Optional[int] = None,
    ) -> dict[str, Any]:
        """
        Search file contents or retrieve files.

        With only ``searches``, the whole filesystem is grepped. With
        ``files`` (paths or glob patterns), those files are retrieved and,
        in ``matches`` mode, searched line by line.

        In ``matches`` mode without explicit context, the configured
        ``snippet_lines_before``/``snippet_lines_after`` are used. More than
        50 files or matches degrade the result to file names only, with
        ``limit_exceeded`` set in the summary.

        Raises:
            ValueError: If neither searches nor files is given, or a mode
                is not recognized
        """
        if not searches and not files:
            raise ValueError(
                f"[{GREP_TOOL_NAME}] Either 'files' or 'searches' must be provided"
            )
        if return_type not in GREP_RETURN_TYPES:
            raise ValueError(
                f"[{GREP_TOOL_NAME}] return_type must be one of: "
                f"{', '.join(GREP_RETURN_TYPES)}"
            )
        try:
            mode = GrepMatchType(match_type)
        except ValueError:
            raise ValueError(
                f"[{GREP_TOOL_NAME}] match_type must be one of: "
                f"{', '.join(m.value for m in GrepMatchType)}"
            ) from None

        if return_type == "matches" and lines_before is None and lines_after is None:
            lines_before = self.service.config.file_search.snippet_lines_before
            lines_after = self.service.config.file_search.snippet_lines_after
        context = ContextLines(lines_before or 0, lines_after or 0)

        summary = {
            "total_files": 0,
            "total_matches": 0,
            "search_patterns": searches or [],
            "return_type": return_type,
            "limit_exceeded": False,
        }

        if searches and not files:
            return await self._grep_all_files(
                searches, mode, case_sensitive, context, summary
            )

        resolved = await self._resolve_file_patterns(files)
        if len(resolved) > GREP_RESULT_LIMIT and summary["return_type"] != "names":
            logger.info(
                f"[{GREP_TOOL_NAME}] {len(resolved)} files exceed the limit of "
                f"{GREP_RESULT_LIMIT}, returning names only"
            )
            summary["return_type"] = "names"
            summary["limit_exceeded"] = True

        file_entries = []
        for path in resolved:
            file_entries.append(
                await self._retrieve_file(path, summary["return_type"] != "names")
            )
        summary["total_files"] = len(file_entries)

        matches = []
        if searches and summary["return_type"] == "matches":
            matchers = compile_line_matchers(searches, mode, case_sensitive)
            for entry in file_entries:
                if not entry["content"]:
                    continue
                lines = entry["content"].split("\n")
                for index, line in enumerate(lines):
                    matched = next((p for p, regex in matchers if regex.search(line)), None)
                    if matched is None:
                        continue
                    start = max(0, index - context.lines_before)
                    end = min(len(lines) - 1, index + context.lines_after)
                    matches.append(
                        {
                            "file": entry["file"],
                            "line": index + 1,
                            "match": line,
                            "matched_pattern": matched,
                            "content": "\n".join(lines[start : end + 1]),
                        }
                    )
            if len(matches) > GREP_RESULT_LIMIT:
                matches = matches[:GREP_RESULT_LIMIT]
                summary["limit_exceeded"] = True
            summary["total_matches"] = len(matches)

        return {"success": True, "files": file_entries, "matches": matches, "summary": summary}

    async def _grep_all_files(
        self,
        searches: list[str],
        mode: GrepMatchType,
        case_sensitive: bool,
        context: ContextLines,
        summary: dict[str, Any],
    ) -> dict[str, Any]:
        logger.info(
            f"[{GREP_TOOL_NAME}] Searching for {searches} "
            f"(match_type={mode.value} case_sensitive={case_sensitive})"
        )
        results = await self.service.grep(
            searches,
            self.state,
            GrepOptions(
                include_content=context,
                case_sensitive=case_sensitive,
                match_type=mode,
            ),
        )

        unique_files = list(dict.fromkeys(r.file for r in results))
        file_entries = [{"file": f, "exists": True, "content": None} for f in unique_files]
        summary["total_files"] = len(unique_files)
        summary["total_matches"] = len(results)

        if summary["return_type"] == "names" or (
            summary["return_type"] == "matches" and len(results) > GREP_RESULT_LIMIT
        ):
            if summary["return_type"] == "matches":
                logger.info(
                    f"[{GREP_TOOL_NAME}] {len(results)} matches exceed the limit of "
                    f"{GREP_RESULT_LIMIT}, returning names only"
                )
                summary["return_type"] = "names"
                summary["limit_exceeded"] = True
            return {"success": True, "files": file_entries, "matches": [], "summary": summary}

        matches = [
            {
                "file": r.file,
                "line": r.line,
                "match": r.match,
                "matched_pattern": r.matched_string or searches[0],
                "content": r.content,
            }
            for r in results
        ]
        return {"success": True, "files": file_entries, "matches": matches, "summary": summary}

    async def _resolve_file_patterns(self, files: list[str]) -> list[str]:
        """Expand glob patterns; plain paths pass through. Duplicates are dropped."""
        resolved = []
        for pattern in files:
            if "*" in pattern or "?" in pattern:
                try:
                    resolved.extend(await self.service.glob(pattern, self.state))
                except (FileSystemError, OSError) as e:
                    logger.info(f"[{GREP_TOOL_NAME}] Cannot resolve pattern {pattern}: {e}")
            else:
                resolved.append(pattern)
        return list(dict.fromkeys(resolved))

    async def _retrieve_file(self, path: str, with_content: bool) -> dict[str, Any]:
        try:
            if not await self.service.exists(path, self.state):
                logger.info(f"[{GREP_TOOL_NAME}] File not found: {path}")
                return {"file": path, "exists": False, "content": None}
            content = await self.service.get_file(path, self.state) if with_content else None
        except (FileSystemError, OSError, UnicodeDecodeError) as e:
            logger.info(f"[{GREP_TOOL_NAME}] Cannot retrieve {path}: {e}")
            return {"file": path, "exists": False, "content": None, "error": str(e)}
        return {"file": path, "exists": True, "content": content}

    async def _ask_confirmation(self, message: str, level: CommandSafetyLevel) -> bool:
        if self.confirm is None:
            logger.info(f"No confirmation callback, declining: {message}")
            return False

        answer = self.confirm(message, level)
        if inspect.isawaitable(answer):
            answer = await answer
        return bool(answer)

    async def _read_file(self, path: str) -> dict[str, Any]:
        content = await self.service.get_file(path, self.state)
        if content is None:
            return {"success": False, "path": path, "error": f"Not a file: {path}"}
        return {"success": True, "path": path, "content": content, "size": len(content)}

    async def _list_files(self, directory: str = "", recursive: bool = False) -> dict[str, Any]:
        files = [
            entry
            async for entry in self.service.get_directory_tree(
                directory, self.state, DirectoryTreeOptions(recursive=recursive)
            )
        ]
        return {"success": True, "directory": directory, "files": files, "count": len(files)}

    async def _search_files(self, query: str, max_results: Optional[int] = None) -> dict[str, Any]:
        matches = await self.ranker.search(
            query, self.service.bind(self.state), max_results
        )
        return {
            "success": True,
            "query": query,
            "results": [
                {
                    "path": m.file_path,
                    "score": round(m.score, 3),
                    "match_type": m.match_type.value,
                    "lines": [{"line": lm.line, "content": lm.content} for lm in m.line_matches],
                }
                for m in matches
            ],
            "count": len(matches),
        }

    async def _find_files(self, pattern: str) -> dict[str, Any]:
        files = await self.service.glob(pattern, self.state)
        return {"success": True, "pattern": pattern, "files": files, "count": len(files)}

    async def _write_file(self, path: str, content: str) -> dict[str, Any]:
        await self.service.write_file(path, content, self.state)
        return {"success": True, "path": path, "bytes_written": len(content.encode("utf-8"))}

    async def _append_file(self, path: str, content: str) -> dict[str, Any]:
        await self.service.append_file(path, content, self.state)
        return {"success": True, "path": path, "bytes_appended": len(content.encode("utf-8"))}

    async def _delete_file(self, path: str) -> dict[str, Any]:
        await self.service.delete_file(path, self.state)
        return {"success": True, "path": path}

    async def _run_shell_command(
        self,
        command: str,
        timeout_seconds: int = DEFAULT_COMMAND_TIMEOUT_SECONDS,
        working_directory: Optional[str] = None,
    ) -> dict[str, Any]:
        result = await self.run_shell_command(command, timeout_seconds, working_directory)
        return {
            "success": result.ok,
            "command": command,
            "exit_code": result.exit_code,
            "stdout": result.stdout,
            "stderr": result.stderr,
            "error": result.error,
        }

    async def _select_file(self, path: str) -> dict[str, Any]:
        await self.service.add_file_to_chat(path, self.state)
        return {"success": True, "path": path, "selected_files": sorted(self.state.selected_files)}

    async def _deselect_file(self, path: str) -> dict[str, Any]:
        self.service.remove_file_from_chat(path, self.state)
        return {"success": True, "path": path, "selected_files": sorted(self.state.selected_files)}
