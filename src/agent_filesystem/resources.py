"""
Pattern-filtered file sets over a provider's directory tree.
"""

import logging
import re
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Pattern, Union

from agent_filesystem.state import FileSystemState

logger = logging.getLogger(__name__)


@dataclass
class MatchItem:
    """
    A directory to walk plus optional include/exclude regexes.

    Attributes:
        path: Directory relative to the provider root
        include: Only paths matching this regex are kept
        exclude: Paths matching this regex are dropped
    """

    path: str
    include: Optional[Pattern[str]] = None
    exclude: Optional[Pattern[str]] = None

    @classmethod
    def from_strings(
        cls,
        path: str,
        include: Optional[str] = None,
        exclude: Optional[str] = None,
    ) -> "MatchItem":
        return cls(
            path=path,
            include=re.compile(include) if include else None,
            exclude=re.compile(exclude) if exclude else None,
        )

    def accepts(self, rel_path: str) -> bool:
        if self.exclude is not None and self.exclude.search(rel_path):
            return False
        if self.include is not None and not self.include.search(rel_path):
            return False
        return True


class FileMatchResource:
    """
    A named set of files defined by directory walks and regex filters.

    Usage:
        resource = FileMatchResource([
            MatchItem.from_strings("src", include=r"\\.py$", exclude=r"/tests?/"),
        ])
        async for path in resource.get_matched_files(service, state):
            print(path)
    """

    def __init__(self, items: list[Union[MatchItem, dict]]):
        self.items = [
            item if isinstance(item, MatchItem) else MatchItem.from_strings(**item)
            for item in items
        ]

    async def get_matched_files(self, service, state: FileSystemState) -> AsyncIterator[str]:
        """Lazily yield every walked path accepted by its item's filters."""
        for item in self.items:
            async for rel_path in service.get_directory_tree(item.path, state):
                if item.accepts(rel_path):
                    yield rel_path

    async def add_files_to_set(self, target: set[str], service, state: FileSystemState) -> None:
        before = len(target)
        async for rel_path in self.get_matched_files(service, state):
            target.add(rel_path)
        logger.debug(f"Added {len(target) - before} matched files to set")
