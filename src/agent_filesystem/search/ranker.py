"""
Relevance-ranked file search.

Fuses two signals into one ranked list:
- path scoring of every file returned by ``glob("**/*")``
- grep hit counts for identifier-like keywords

The filesystem argument can be anything with async ``glob(pattern)`` and
``grep(patterns)`` methods, normally a session-bound FileSystemService view.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, Iterable, Optional, Protocol

from agent_filesystem.config import FileSearchConfig
from agent_filesystem.providers.base import GrepResult
from agent_filesystem.search.keywords import (
    STOP_WORDS,
    extract_file_extensions,
    extract_keywords,
)
from agent_filesystem.search.scoring import score_file_path

logger = logging.getLogger(__name__)

IDENTIFIER_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

MIN_PATH_SCORE = 0.5
CONTENT_HIT_SCORE = 0.3
MAX_CONTENT_SCORE = 3.0
MAX_LINES_PER_FILE = 5


class SearchableFileSystem(Protocol):
    async def glob(self, pattern: str) -> list[str]:
        ...

    async def grep(self, search: list[str]) -> list[GrepResult]:
        ...


class MatchType(str, Enum):
    """How a file matched the query."""

    FILENAME = "filename"
    CONTENT = "content"
    BOTH = "both"

    @property
    def label(self) -> str:
        if self is MatchType.BOTH:
            return "(filename + content)"
        return f"({self.value})"


@dataclass
class LineMatch:
    line: int
    content: str


@dataclass
class SearchMatch:
    """A ranked file with the evidence for its score."""

    file_path: str
    score: float
    match_type: MatchType
    line_matches: list[LineMatch] = field(default_factory=list)


def aggregate_grep_results(results: Iterable[GrepResult]) -> dict[str, list[LineMatch]]:
    """
    Group grep hits by file.

    Each line number is kept once per file (first hit wins) and the hits are
    sorted by line number.
    """
    by_file: dict[str, list[LineMatch]] = {}
    seen_lines: dict[str, set[int]] = {}

    for result in results:
        lines = seen_lines.setdefault(result.file, set())
        if result.line in lines:
            continue
        lines.add(result.line)
        by_file.setdefault(result.file, []).append(
            LineMatch(line=result.line, content=result.match)
        )

    for matches in by_file.values():
        matches.sort(key=lambda m: m.line)
    return by_file


def select_grep_keywords(keywords: Iterable[str]) -> list[str]:
    """Keep keywords worth a content search: long identifiers, no stop-words."""
    return [
        k
        for k in keywords
        if len(k) > 3 and k.lower() not in STOP_WORDS and IDENTIFIER_PATTERN.match(k)
    ]


def format_results(results: list[SearchMatch], keywords: list[str]) -> str:
    """Render ranked results as a plain-text block for an LLM context window."""
    keyword_list = ", ".join(keywords)
    if not results:
        return f"No files found matching keywords: {keyword_list}"

    lines = [f"Found {len(results)} file(s) matching keywords: {keyword_list}", ""]

    for result in results:
        lines.append(f"## {result.file_path} {result.match_type.label}")

        if result.line_matches:
            lines.append("")
            lines.append("Matching lines:")
            for match in result.line_matches[:MAX_LINES_PER_FILE]:
                lines.append(f"  Line {match.line}: {match.content.strip()}")
            extra = len(result.line_matches) - MAX_LINES_PER_FILE
            if extra > 0:
                lines.append(f"  ... and {extra} more matches")

        lines.append("")

    return "\n".join(lines)


class SearchRanker:
    """
    Ranks files in a filesystem by relevance to a free-text query.

    Usage:
        ranker = SearchRanker(FileSearchConfig(max_results=10))
        matches = await ranker.search("where is config.json loaded", fs)
        for match in matches:
            print(match.file_path, match.score, match.match_type)
    """

    def __init__(self, config: Optional[FileSearchConfig] = None):
        self.config = config or FileSearchConfig()

    async def search(
        self,
        query: str,
        filesystem: SearchableFileSystem,
        max_results: Optional[int] = None,
    ) -> list[SearchMatch]:
        """
        Search for files relevant to a query.

        Args:
            query: Free-text query
            filesystem: Object exposing async glob and grep
            max_results: Result cap, defaults to config.max_results

        Returns:
            Matches sorted by descending score, at most max_results long.
            An empty list when the query yields no keywords.
        """
        keywords = extract_keywords(query)
        if not keywords:
            logger.debug("Query produced no keywords, skipping search")
            return []

        extensions = extract_file_extensions(query)
        return await self.search_keywords(keywords, extensions, filesystem, max_results)

    async def search_keywords(
        self,
        keywords: list[str],
        extensions: list[str],
        filesystem: SearchableFileSystem,
        max_results: Optional[int] = None,
    ) -> list[SearchMatch]:
        """Rank files for keywords that were already extracted."""
        if max_results is None:
            max_results = self.config.max_results
        if not keywords:
            return []

        results: dict[str, SearchMatch] = {}

        for path in await filesystem.glob("**/*"):
            score = score_file_path(path, keywords, extensions)
            if score > MIN_PATH_SCORE:
                results[path] = SearchMatch(
                    file_path=path, score=score, match_type=MatchType.FILENAME
                )

        grep_keywords = select_grep_keywords(keywords)
        if grep_keywords:
            try:
                hits = await filesystem.grep(grep_keywords)
            except Exception as e:
                logger.warning(f"Content search failed, using path matches only: {e}")
            else:
                self._merge_content_hits(results, aggregate_grep_results(hits))

        ranked = sorted(results.values(), key=lambda m: m.score, reverse=True)
        logger.debug(
            f"Search for {keywords} ranked {len(ranked)} files, returning {min(len(ranked), max_results)}"
        )
        return ranked[:max_results]

    def _merge_content_hits(
        self,
        results: dict[str, SearchMatch],
        content_hits: dict[str, list[LineMatch]],
    ) -> None:
        for path, line_matches in content_hits.items():
            content_score = min(len(line_matches) * CONTENT_HIT_SCORE, MAX_CONTENT_SCORE)
            existing = results.get(path)

            if existing is not None:
                existing.score += content_score
                existing.match_type = MatchType.BOTH
                existing.line_matches = line_matches
            else:
                results[path] = SearchMatch(
                    file_path=path,
                    score=content_score,
                    match_type=MatchType.CONTENT,
                    line_matches=line_matches,
                )

    async def iter_search(
        self,
        query: str,
        filesystem: SearchableFileSystem,
        max_results: Optional[int] = None,
    ) -> AsyncIterator[SearchMatch]:
        """
        Yield ranked matches one at a time, best first.

        Ranking needs the full candidate set, so the whole search runs before
        the first match is yielded. Stopping early saves no provider calls.
        """
        for match in await self.search(query, filesystem, max_results):
            yield match

    async def get_context_text(
        self,
        query: str,
        filesystem: SearchableFileSystem,
        max_results: Optional[int] = None,
    ) -> Optional[str]:
        """
        Build the context block for a chat message.

        Returns None when the message contains no searchable keywords.
        """
        keywords = extract_keywords(query)
        if not keywords:
            return None

        extensions = extract_file_extensions(query)
        results = await self.search_keywords(keywords, extensions, filesystem, max_results)
        return format_results(results, keywords)
