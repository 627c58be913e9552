"""
Ignore filter construction.

Builds a single exclusion predicate from built-in defaults plus the
``.gitignore`` and ``.aiignore`` files found at the provider root.
"""

import logging
from typing import Iterable, Union

from pathspec import PathSpec

from agent_filesystem.providers.base import FileSystemProvider, IgnoreFilter

logger = logging.getLogger(__name__)

DEFAULT_IGNORE_PATTERNS = (
    ".git",  # always ignore .git dir at root
    "*.lock",
    "node_modules",
    ".*",
)

IGNORE_FILE_NAMES = (".gitignore", ".aiignore")


def parse_ignore_lines(data: Union[str, bytes]) -> list[str]:
    """Split ignore-file content into non-empty rule lines."""
    if isinstance(data, bytes):
        data = data.decode("utf-8", errors="replace")
    return [line for line in data.splitlines() if line.strip()]


def compile_ignore_filter(patterns: Iterable[str]) -> IgnoreFilter:
    """
    Compile gitignore-style rules into an exclusion predicate.

    Negated rules (``!pattern``) are skipped so that the result is always a
    plain union of exclusions.
    """
    rules = []
    for pattern in patterns:
        if pattern.lstrip().startswith("!"):
            logger.debug(f"Skipping negated ignore rule: {pattern}")
            continue
        rules.append(pattern)

    spec = PathSpec.from_lines("gitwildmatch", rules)

    def ignores(path: str) -> bool:
        normalized = path.replace("\\", "/")
        while normalized.startswith("./"):
            normalized = normalized[2:]
        normalized = normalized.lstrip("/")
        if not normalized:
            return False
        return spec.match_file(normalized)

    return ignores


class IgnoreFilterBuilder:
    """
    Builds ignore predicates for a provider.

    Usage:
        builder = IgnoreFilterBuilder()
        ignore_filter = await builder.build(provider)
        if ignore_filter("node_modules/react/index.js"):
            ...
    """

    def __init__(
        self,
        default_patterns: Iterable[str] = DEFAULT_IGNORE_PATTERNS,
        ignore_files: Iterable[str] = IGNORE_FILE_NAMES,
    ):
        self.default_patterns = tuple(default_patterns)
        self.ignore_files = tuple(ignore_files)

    async def collect_patterns(self, provider: FileSystemProvider) -> list[str]:
        """
        Gather default rules plus the lines of every ignore file present.

        Provider errors propagate; only a missing file is tolerated.
        """
        patterns = list(self.default_patterns)

        for name in self.ignore_files:
            if not await provider.exists(name):
                logger.debug(f"No {name} found, skipping")
                continue

            data = await provider.read_file(name)
            if data:
                lines = parse_ignore_lines(data)
                logger.debug(f"Loaded {len(lines)} rules from {name}")
                patterns.extend(lines)

        return patterns

    async def build(self, provider: FileSystemProvider) -> IgnoreFilter:
        """Build the exclusion predicate for a provider."""
        return compile_ignore_filter(await self.collect_patterns(provider))
