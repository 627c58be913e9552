"""Tests for the agent tool layer."""

import tempfile
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from agent_filesystem.config import FileSystemConfig, ProviderSettings
from agent_filesystem.exceptions import CommandExecutionError, CommandNotApprovedError
from agent_filesystem.providers import ExecuteCommandResult
from agent_filesystem.security import CommandSafetyLevel
from agent_filesystem.service import FileSystemService
from agent_filesystem.tools import AgentFileSystemTools


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def service(temp_dir):
    (temp_dir / "src").mkdir()
    (temp_dir / "src" / "router.py").write_text("def route_request():\n    pass\n")
    (temp_dir / "notes.md").write_text("remember route_request\n")
    config = FileSystemConfig(
        default_provider="local",
        providers={"local": ProviderSettings(base_directory=temp_dir)},
    )
    return FileSystemService(config)


@pytest.fixture
def state(service):
    return service.attach()


@pytest.fixture
def tools(service, state):
    return AgentFileSystemTools(service, state)


class TestToolSchemas:
    """Tests for tool schemas."""

    def test_schema_names(self, tools):
        """Test that every tool is described in OpenAI format."""
        schemas = tools.get_tool_schemas()
        names = [s["function"]["name"] for s in schemas]

        assert names == [
            "read_file",
            "list_files",
            "search_files",
            "find_files",
            "grep_files",
            "write_file",
            "append_file",
            "delete_file",
            "run_shell_command",
            "select_file",
            "deselect_file",
        ]
        for schema in schemas:
            assert schema["type"] == "function"
            assert schema["function"]["parameters"]["type"] == "object"

    def test_required_arguments(self, tools):
        """Test required argument lists."""
        by_name = {s["function"]["name"]: s["function"] for s in tools.get_tool_schemas()}
        assert by_name["write_file"]["parameters"]["required"] == ["path", "content"]
        assert by_name["run_shell_command"]["parameters"]["required"] == ["command"]
        assert by_name["list_files"]["parameters"]["required"] == []
        assert by_name["grep_files"]["parameters"]["required"] == []
        assert by_name["grep_files"]["parameters"]["properties"]["match_type"]["enum"] == [
            "substring",
            "whole-word",
            "regex",
        ]


class TestExecuteTool:
    """Tests for tool dispatch."""

    @pytest.mark.asyncio
    async def test_unknown_tool(self, tools):
        """Test that unknown tools raise."""
        with pytest.raises(ValueError, match="Unknown tool"):
            await tools.execute_tool("format_disk", {})

    @pytest.mark.asyncio
    async def test_read_file(self, tools):
        """Test reading a file."""
        result = await tools.execute_tool("read_file", {"path": "notes.md"})
        assert result["success"] is True
        assert result["content"] == "remember route_request\n"

    @pytest.mark.asyncio
    async def test_read_missing(self, tools):
        """Test reading a missing file."""
        result = await tools.execute_tool("read_file", {"path": "nope.md"})
        assert result["success"] is False

    @pytest.mark.asyncio
    async def test_read_outside_root(self, tools):
        """Test that path errors become failure results."""
        result = await tools.execute_tool("read_file", {"path": "../../etc/passwd"})
        assert result["success"] is False
        assert result["error_type"] == "InvalidPathError"

    @pytest.mark.asyncio
    async def test_list_files(self, tools):
        """Test listing the root."""
        result = await tools.execute_tool("list_files", {})
        assert result["files"] == ["notes.md", "src/"]

        result = await tools.execute_tool("list_files", {"directory": "", "recursive": True})
        assert result["files"] == ["notes.md", "src/", "src/router.py"]

    @pytest.mark.asyncio
    async def test_find_files(self, tools):
        """Test glob search."""
        result = await tools.execute_tool("find_files", {"pattern": "**/*.py"})
        assert result["files"] == ["src/router.py"]
        assert result["count"] == 1

    @pytest.mark.asyncio
    async def test_find_files_outside_root(self, tools):
        """Test that escaping glob patterns become failure results."""
        result = await tools.execute_tool("find_files", {"pattern": "/etc/*"})
        assert result["success"] is False
        assert result["error_type"] == "InvalidPathError"

        result = await tools.execute_tool("find_files", {"pattern": "../*"})
        assert result["success"] is False
        assert result["error_type"] == "InvalidPathError"

    @pytest.mark.asyncio
    async def test_search_files(self, tools):
        """Test relevance search."""
        result = await tools.execute_tool("search_files", {"query": "router"})
        assert result["success"] is True
        assert result["results"][0]["path"] == "src/router.py"
        assert result["results"][0]["match_type"] == "filename"

    @pytest.mark.asyncio
    async def test_write_append_delete(self, tools, state, temp_dir):
        """Test mutating tools."""
        await tools.execute_tool("write_file", {"path": "out/a.txt", "content": "one"})
        await tools.execute_tool("append_file", {"path": "out/a.txt", "content": "two"})
        assert (temp_dir / "out" / "a.txt").read_text() == "onetwo"
        assert state.dirty

        result = await tools.execute_tool("delete_file", {"path": "out/a.txt"})
        assert result["success"] is True
        assert not (temp_dir / "out" / "a.txt").exists()

    @pytest.mark.asyncio
    async def test_select_deselect(self, tools, state):
        """Test chat selection tools."""
        result = await tools.execute_tool("select_file", {"path": "notes.md"})
        assert result["selected_files"] == ["notes.md"]

        result = await tools.execute_tool("deselect_file", {"path": "notes.md"})
        assert result["selected_files"] == []

        result = await tools.execute_tool("deselect_file", {"path": "notes.md"})
        assert result["success"] is False
        assert result["error_type"] == "FileNotSelectedError"

    @pytest.mark.asyncio
    async def test_select_missing(self, tools):
        """Test selecting a file that does not exist."""
        result = await tools.execute_tool("select_file", {"path": "ghost.md"})
        assert result["success"] is False
        assert result["error_type"] == "FileNotFoundInProviderError"


class TestRunShellCommand:
    """Tests for gated shell execution."""

    @pytest.mark.asyncio
    async def test_safe_runs_without_confirmation(self, service, state):
        """Test that safe commands never ask."""
        confirm = MagicMock(return_value=False)
        tools = AgentFileSystemTools(service, state, confirm=confirm)

        result = await tools.run_shell_command("echo hello")

        assert result.ok
        assert result.stdout == "hello\n"
        confirm.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_without_callback(self, tools):
        """Test that a missing callback declines gated commands."""
        with pytest.raises(CommandNotApprovedError, match="User did not approve"):
            await tools.run_shell_command("printf hi")

    @pytest.mark.asyncio
    async def test_unknown_approved(self, service, state):
        """Test approving an unknown command."""
        confirm = MagicMock(return_value=True)
        tools = AgentFileSystemTools(service, state, confirm=confirm)

        result = await tools.run_shell_command("printf hi")

        assert result.stdout == "hi"
        confirm.assert_called_once_with(
            "Execute potentially unsafe command: printf hi?", CommandSafetyLevel.UNKNOWN
        )

    @pytest.mark.asyncio
    async def test_dangerous_declined(self, service, state):
        """Test declining a dangerous command with an async callback."""
        confirm = AsyncMock(return_value=False)
        service.execute_command = AsyncMock()
        tools = AgentFileSystemTools(service, state, confirm=confirm)

        with pytest.raises(CommandNotApprovedError) as exc:
            await tools.run_shell_command("sudo ls")

        assert exc.value.level == "dangerous"
        confirm.assert_awaited_once_with(
            "Execute potentially dangerous command: sudo ls?", CommandSafetyLevel.DANGEROUS
        )
        service.execute_command.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_command(self, tools):
        """Test that an empty command is rejected."""
        with pytest.raises(ValueError, match="command is required"):
            await tools.run_shell_command("   ")

    @pytest.mark.asyncio
    async def test_timeout_clamped(self, service, state):
        """Test that requested timeouts are capped."""
        service.execute_command = AsyncMock(
            return_value=ExecuteCommandResult(ok=True, exit_code=0)
        )
        tools = AgentFileSystemTools(service, state)

        await tools.run_shell_command("ls", timeout_seconds=600)
        options = service.execute_command.await_args.args[2]
        assert options.timeout_seconds == 90
        assert options.working_directory == "./"

        await tools.run_shell_command("ls", timeout_seconds=5, working_directory="src")
        options = service.execute_command.await_args.args[2]
        assert options.timeout_seconds == 5
        assert options.working_directory == "src"

        await tools.run_shell_command("ls", timeout_seconds=0)
        assert service.execute_command.await_args.args[2].timeout_seconds == 1

        await tools.run_shell_command("ls", timeout_seconds=-10)
        assert service.execute_command.await_args.args[2].timeout_seconds == 1

    @pytest.mark.asyncio
    async def test_provider_error_wrapped(self, service, state):
        """Test that provider failures are distinct from policy rejections."""
        service.execute_command = AsyncMock(side_effect=RuntimeError("socket closed"))
        tools = AgentFileSystemTools(service, state)

        with pytest.raises(CommandExecutionError, match=r"\[run_shell_command\] socket closed"):
            await tools.run_shell_command("ls")

    @pytest.mark.asyncio
    async def test_timeout_is_a_result(self, service, state):
        """Test that a timed-out command returns a failed result."""
        tools = AgentFileSystemTools(service, state, confirm=lambda message, level: True)
        result = await tools.run_shell_command("sleep 5", timeout_seconds=1)
        assert not result.ok
        assert "timed out" in result.error

    @pytest.mark.asyncio
    async def test_tool_call_declined(self, tools):
        """Test the dict result of a declined tool call."""
        result = await tools.execute_tool("run_shell_command", {"command": "rm -rf /"})
        assert result["success"] is False
        assert result["error_type"] == "CommandNotApprovedError"

    @pytest.mark.asyncio
    async def test_tool_call_result(self, tools):
        """Test the dict result of a completed tool call."""
        result = await tools.execute_tool("run_shell_command", {"command": "ls"})
        assert result["success"] is True
        assert result["exit_code"] == 0
        assert "notes.md" in result["stdout"]


class TestGrepFiles:
    """Tests for the content search tool."""

    @pytest.mark.asyncio
    async def test_search_everywhere(self, tools):
        """Test grepping the whole filesystem."""
        result = await tools.execute_tool("grep_files", {"searches": ["route_request"]})

        assert result["success"] is True
        assert [m["file"] for m in result["matches"]] == ["notes.md", "src/router.py"]
        assert result["matches"][0] == {
            "file": "notes.md",
            "line": 1,
            "match": "remember route_request",
            "matched_pattern": "route_request",
            "content": "remember route_request",
        }
        assert [f["file"] for f in result["files"]] == ["notes.md", "src/router.py"]
        assert result["summary"]["total_files"] == 2
        assert result["summary"]["total_matches"] == 2
        assert result["summary"]["return_type"] == "content"
        assert result["summary"]["limit_exceeded"] is False

    @pytest.mark.asyncio
    async def test_names_only(self, tools):
        """Test that names mode returns files without matches."""
        result = await tools.grep_files(searches=["pass"], return_type="names")
        assert result["files"] == [{"file": "src/router.py", "exists": True, "content": None}]
        assert result["matches"] == []

    @pytest.mark.asyncio
    async def test_case_and_match_type(self, tools):
        """Test case sensitivity and whole-word matching."""
        result = await tools.grep_files(searches=["ROUTE_REQUEST"])
        assert result["matches"] == []

        result = await tools.grep_files(searches=["ROUTE_REQUEST"], case_sensitive=False)
        assert result["summary"]["total_matches"] == 2

        result = await tools.grep_files(searches=["route"], match_type="whole-word")
        assert result["matches"] == []

        result = await tools.grep_files(searches=[r"def \w+\("], match_type="regex")
        assert [(m["file"], m["line"]) for m in result["matches"]] == [("src/router.py", 1)]

    @pytest.mark.asyncio
    async def test_matches_in_files_uses_configured_context(self, tools):
        """Test searching inside globbed files with default snippet context."""
        result = await tools.grep_files(
            searches=["pass"], files=["src/*.py"], return_type="matches"
        )

        assert result["matches"] == [
            {
                "file": "src/router.py",
                "line": 2,
                "match": "    pass",
                "matched_pattern": "pass",
                "content": "def route_request():\n    pass\n",
            }
        ]
        assert result["files"][0]["exists"] is True

    @pytest.mark.asyncio
    async def test_explicit_context(self, tools):
        """Test explicit context lines."""
        result = await tools.grep_files(
            searches=["pass"],
            files=["src/router.py"],
            return_type="matches",
            lines_before=0,
            lines_after=0,
        )
        assert result["matches"][0]["content"] == "    pass"

    @pytest.mark.asyncio
    async def test_retrieve_files(self, tools):
        """Test retrieving plain paths, including a missing one."""
        result = await tools.grep_files(files=["notes.md", "missing.md", "notes.md"])

        assert result["files"] == [
            {"file": "notes.md", "exists": True, "content": "remember route_request\n"},
            {"file": "missing.md", "exists": False, "content": None},
        ]
        assert result["summary"]["total_files"] == 2

    @pytest.mark.asyncio
    async def test_escaping_glob_is_skipped(self, tools):
        """Test that an unresolvable glob does not fail the whole call."""
        result = await tools.grep_files(files=["../*", "notes.md"], return_type="names")
        assert result["files"] == [{"file": "notes.md", "exists": True, "content": None}]

    @pytest.mark.asyncio
    async def test_too_many_matches_degrades_to_names(self, tools, temp_dir):
        """Test the result limit in matches mode."""
        (temp_dir / "data").mkdir()
        for i in range(51):
            (temp_dir / "data" / f"f{i:02d}.txt").write_text("needle\n")

        result = await tools.grep_files(searches=["needle"], return_type="matches")
        assert result["summary"]["return_type"] == "names"
        assert result["summary"]["limit_exceeded"] is True
        assert result["summary"]["total_matches"] == 51
        assert len(result["files"]) == 51
        assert result["matches"] == []

        result = await tools.grep_files(files=["data/*.txt"])
        assert result["summary"]["return_type"] == "names"
        assert result["summary"]["limit_exceeded"] is True
        assert all(f["content"] is None for f in result["files"])

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, tools):
        """Test argument validation."""
        result = await tools.execute_tool("grep_files", {})
        assert result["success"] is False
        assert result["error_type"] == "ValueError"

        with pytest.raises(ValueError, match="return_type"):
            await tools.grep_files(searches=["x"], return_type="everything")
        with pytest.raises(ValueError, match="match_type"):
            await tools.grep_files(searches=["x"], match_type="fuzzy")
