"""
Keyword and extension extraction from free-text queries.
"""

import re

STOP_WORDS = frozenset({
    "a", "an", "the", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "is", "are", "was", "were", "be", "been",
    "being", "have", "has", "had", "do", "does", "did", "will", "would",
    "could", "should", "may", "might", "must", "shall", "can", "need",
    "it", "its", "this", "that", "these", "those", "i", "you", "he", "she",
    "we", "they", "what", "which", "who", "when", "where", "why", "how",
    "all", "each", "every", "both", "few", "more", "most", "other", "some",
    "such", "no", "not", "only", "same", "so", "than", "too", "very",
    "just", "about", "into", "through", "during", "before", "after",
    "above", "below", "between", "under", "again", "further", "then",
    "once", "here", "there", "any", "if", "because", "as", "until", "while",
    "find", "show", "get", "make", "want", "look", "file", "files", "code",
    "please", "help", "me", "my", "your", "our", "their",
})

LANGUAGE_EXTENSIONS = {
    "typescript": ".ts",
    "javascript": ".js",
    "python": ".py",
    "java": ".java",
    "rust": ".rs",
    "go": ".go",
    "ruby": ".rb",
    "css": ".css",
    "html": ".html",
    "json": ".json",
    "yaml": ".yaml",
    "yml": ".yml",
    "markdown": ".md",
    "react": ".tsx",
    "vue": ".vue",
    "svelte": ".svelte",
}

QUOTED_PATTERN = re.compile(r"\"([^\"]+)\"|'([^']+)'")
PATH_PATTERN = re.compile(r"[\w./\\-]+[/\\][\w./\\-]+", re.ASCII)
FILENAME_PATTERN = re.compile(r"\b[\w-]+\.[a-zA-Z0-9]{1,10}\b", re.ASCII)
EXTENSION_MENTION_PATTERN = re.compile(r"\.([a-zA-Z0-9]{1,10})\b", re.ASCII)
PUNCTUATION_PATTERN = re.compile(r"[^\w\s.-]", re.ASCII)
CAMEL_BOUNDARY_PATTERN = re.compile(r"([a-z])([A-Z])")


def split_identifier(token: str) -> list[str]:
    """Split a camelCase or snake_case identifier into its parts."""
    parts = []
    for piece in CAMEL_BOUNDARY_PATTERN.sub(r"\1 \2", token).split(" "):
        parts.extend(p for p in piece.split("_") if p)
    return parts


def _dedupe(items) -> list[str]:
    seen = set()
    unique = []
    for item in items:
        if item not in seen:
            seen.add(item)
            unique.append(item)
    return unique


def extract_keywords(query: str) -> list[str]:
    """
    Extract search keywords from a free-text query.

    Quoted phrases, path-like tokens and ``name.ext`` tokens are kept
    verbatim. The remaining words are lower-cased, stripped of punctuation
    other than ``.``, ``-`` and ``_``, and filtered against STOP_WORDS.
    Identifiers written in camelCase or snake_case also contribute their
    individual parts.

    Args:
        query: The user's free-text query

    Returns:
        Unique keywords in first-seen order, each longer than one character
    """
    keywords = []

    for match in QUOTED_PATTERN.finditer(query):
        keywords.append(match.group(0).replace('"', "").replace("'", ""))
    remaining = QUOTED_PATTERN.sub(" ", query)

    for pattern in (PATH_PATTERN, FILENAME_PATTERN):
        found = pattern.findall(remaining)
        keywords.extend(found)
        for match in found:
            remaining = remaining.replace(match, " ", 1)

    cleaned = PUNCTUATION_PATTERN.sub(" ", remaining)
    for raw in cleaned.split():
        token = raw.lower()
        if len(token) <= 1 or token in STOP_WORDS:
            continue

        keywords.append(token)

        # camelCase is detected on the original casing
        if "_" in raw or CAMEL_BOUNDARY_PATTERN.search(raw):
            keywords.extend(part.lower() for part in split_identifier(raw))

    return [k for k in _dedupe(keywords) if len(k) > 1]


def extract_file_extensions(query: str) -> list[str]:
    """
    Extract file extensions implied by a query.

    Explicit mentions such as ``.ts`` are kept as written; language names
    such as "python" map through LANGUAGE_EXTENSIONS.
    """
    extensions = [m.group(0) for m in EXTENSION_MENTION_PATTERN.finditer(query)]

    lowered = query.lower()
    for language, extension in LANGUAGE_EXTENSIONS.items():
        if language in lowered:
            extensions.append(extension)

    return _dedupe(extensions)
