"""
CLI module for agent-filesystem.

Provides a command-line interface for inspecting a workspace through the
filesystem service and for trying out the command safety gate.
"""

from agent_filesystem.cli.main import cli

__all__ = ["cli"]
