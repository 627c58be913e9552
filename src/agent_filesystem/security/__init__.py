"""
Command safety gate for agent shell execution.

Commands are classified before they reach a provider:
- SAFE: every subcommand is on the safe list
- UNKNOWN: something is not on the safe list, ask a human
- DANGEROUS: a dangerous pattern matched, ask a human with a warning
"""

from agent_filesystem.security.types import (
    CommandClassification,
    CommandSafetyLevel,
)
from agent_filesystem.security.classifier import CommandSafetyClassifier

__all__ = [
    "CommandClassification",
    "CommandSafetyLevel",
    "CommandSafetyClassifier",
]
