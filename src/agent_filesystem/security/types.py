"""
Command safety types.

Defines the verdict levels and the detailed classification result.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class CommandSafetyLevel(str, Enum):
    """Tri-state safety verdict for a command line."""

    SAFE = "safe"
    """Every subcommand starts with a known safe command."""

    UNKNOWN = "unknown"
    """At least one subcommand is not on the safe list."""

    DANGEROUS = "dangerous"
    """The command line matched a dangerous pattern."""

    @property
    def requires_confirmation(self) -> bool:
        """Whether a human must approve before the command runs."""
        return self is not CommandSafetyLevel.SAFE


@dataclass
class CommandClassification:
    """
    Detailed result of classifying a command line.

    Carries the evidence behind the verdict so operators can see why a
    command was gated.
    """

    command: str
    level: CommandSafetyLevel
    commands: list[str] = field(default_factory=list)
    """Command names extracted from each subcommand."""

    matched_pattern: Optional[str] = None
    """The dangerous pattern that matched, if any."""

    unknown_commands: list[str] = field(default_factory=list)
    """Command names that matched no safe prefix."""

    @property
    def reason(self) -> str:
        if self.level is CommandSafetyLevel.DANGEROUS:
            return f"matches dangerous pattern {self.matched_pattern!r}"
        if self.level is CommandSafetyLevel.UNKNOWN:
            return f"unrecognized commands: {', '.join(self.unknown_commands)}"
        return "all commands are on the safe list"

    def __repr__(self) -> str:
        return f"CommandClassification({self.level.value}: {self.command!r})"
