"""
Relevance-ranked file search for LLM context building.
"""

from agent_filesystem.search.keywords import (
    LANGUAGE_EXTENSIONS,
    STOP_WORDS,
    extract_file_extensions,
    extract_keywords,
)
from agent_filesystem.search.scoring import fuzzy_score, score_file_path
from agent_filesystem.search.ranker import (
    LineMatch,
    MatchType,
    SearchMatch,
    SearchRanker,
    aggregate_grep_results,
    format_results,
)

__all__ = [
    "LANGUAGE_EXTENSIONS",
    "STOP_WORDS",
    "extract_file_extensions",
    "extract_keywords",
    "fuzzy_score",
    "score_file_path",
    "LineMatch",
    "MatchType",
    "SearchMatch",
    "SearchRanker",
    "aggregate_grep_results",
    "format_results",
]
