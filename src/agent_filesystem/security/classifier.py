"""
Command safety classifier.

Classifies shell command lines as safe, unknown or dangerous:

1. The whole line is tested against every dangerous pattern first, since a
   dangerous flag combination may span subcommand boundaries.
2. The line is split into subcommands on control operators. Redirection
   targets (after ">" or ">>") are file names, not commands, and are dropped.
3. The line is safe only if every subcommand's name starts with a safe
   prefix; otherwise it is unknown.

Splitting is plain string splitting and does not understand quoting, so
``echo "a && b"`` is split inside the quotes. This is a known limitation of
pattern-based gating, not a shell parser.
"""

import logging
import re
from typing import Iterable, Optional

from agent_filesystem.exceptions import ConfigurationError
from agent_filesystem.security.types import CommandClassification, CommandSafetyLevel

logger = logging.getLogger(__name__)

CONTROL_SEPARATORS = ("&&", "||", ";", "|")
REDIRECTION_OPERATOR = ">"


class CommandSafetyClassifier:
    """
    Pattern-based command safety classifier.

    Usage:
        classifier = CommandSafetyClassifier(
            safe_commands=["cd", "ls", "npm"],
            dangerous_commands=[r"(^|\\s)rm.*-.*r"],
        )
        classifier.classify("cd src && npm install")  # SAFE
        classifier.classify("cd src && rm -rf build")  # DANGEROUS
    """

    def __init__(
        self,
        safe_commands: Iterable[str],
        dangerous_commands: Iterable[str],
        split_redirections: bool = True,
        lowercase_commands: bool = True,
    ):
        """
        Initialize the classifier.

        Args:
            safe_commands: Command name prefixes considered safe
            dangerous_commands: Regular expressions matched case-insensitively
                against the full command line
            split_redirections: Cut each subcommand at ">" or ">>" and drop
                the redirection target
            lowercase_commands: Lower-case command names before prefix matching

        Raises:
            ConfigurationError: If a dangerous pattern is not a valid regex
        """
        self.lowercase_commands = lowercase_commands
        self.safe_commands = tuple(
            c.lower() if lowercase_commands else c for c in safe_commands
        )

        compiled = []
        for pattern in dangerous_commands:
            try:
                compiled.append(re.compile(pattern, re.IGNORECASE))
            except re.error as e:
                raise ConfigurationError(
                    f"Invalid dangerous command pattern {pattern!r}: {e}"
                )
        self.dangerous_patterns = tuple(compiled)

        self.split_redirections = split_redirections

    @classmethod
    def from_config(cls, config) -> "CommandSafetyClassifier":
        """Create a classifier from a FileSystemConfig."""
        return cls(
            safe_commands=config.safe_commands,
            dangerous_commands=config.dangerous_commands,
            split_redirections=config.split_redirections,
            lowercase_commands=config.lowercase_commands,
        )

    def parse_compound_command(self, command: str) -> list[str]:
        """
        Extract command names from a compound command line.

        ``"cd frontend/chat && bun add lucide-react"`` gives ``["cd", "bun"]``.
        Empty and separator-only input gives ``[]``.
        """
        parts = [command]
        for sep in CONTROL_SEPARATORS:
            parts = [piece for part in parts for piece in part.split(sep)]

        names = []
        for part in parts:
            if self.split_redirections:
                part = part.split(REDIRECTION_OPERATOR, 1)[0]
            part = part.strip()
            if not part:
                continue
            names.append(part.split(" ")[0])
        return names

    def find_dangerous_pattern(self, command: str) -> Optional[str]:
        """Return the first dangerous pattern matching the line, if any."""
        for pattern in self.dangerous_patterns:
            if pattern.search(command):
                return pattern.pattern
        return None

    def is_safe_command(self, name: str) -> bool:
        if self.lowercase_commands:
            name = name.lower()
        return any(name.startswith(prefix) for prefix in self.safe_commands)

    def explain(self, command: str) -> CommandClassification:
        """Classify a command line and keep the evidence."""
        matched = self.find_dangerous_pattern(command)
        names = self.parse_compound_command(command)

        if matched is not None:
            return CommandClassification(
                command=command,
                level=CommandSafetyLevel.DANGEROUS,
                commands=names,
                matched_pattern=matched,
            )

        unknown = [name for name in names if not self.is_safe_command(name)]
        level = CommandSafetyLevel.UNKNOWN if unknown else CommandSafetyLevel.SAFE
        return CommandClassification(
            command=command,
            level=level,
            commands=names,
            unknown_commands=unknown,
        )

    def classify(self, command: str) -> CommandSafetyLevel:
        """Classify a command line as safe, unknown or dangerous."""
        result = self.explain(command)

        if result.level is CommandSafetyLevel.SAFE:
            logger.debug(f"Command classified safe: {command}")
        else:
            logger.info(
                f"Command classified {result.level.value} ({result.reason}): {command}"
            )
        return result.level
