"""
Heuristic path scoring for relevance search.
"""

import re

FILE_EXTENSION_PATTERN = re.compile(r"\.[a-zA-Z0-9]{1,10}$")

EXACT_FILENAME_SCORE = 10.0
STEM_SCORE = 8.0
FILENAME_FUZZY_WEIGHT = 5.0
PATH_FUZZY_WEIGHT = 2.0
EXTENSION_BONUS = 0.5
DEPTH_PENALTY = 0.05


def fuzzy_score(needle: str, haystack: str) -> float:
    """
    Score how well ``needle`` matches ``haystack`` on a 0..1 scale.

    - equal (case-insensitive): 1.0
    - substring: 0.7 plus up to 0.2 for how much of the haystack it covers
    - in-order subsequence: 0.3 plus coverage and longest-run bonuses
    - otherwise: 0
    """
    needle = needle.lower()
    haystack = haystack.lower()

    if haystack == needle:
        return 1.0

    if needle in haystack:
        return 0.7 + 0.2 * (len(needle) / len(haystack))

    needle_index = 0
    run = 0
    longest_run = 0
    last_match = -2

    for i, char in enumerate(haystack):
        if needle_index >= len(needle):
            break
        if char != needle[needle_index]:
            continue

        if i == last_match + 1:
            run += 1
            longest_run = max(longest_run, run)
        else:
            run = 1
        last_match = i
        needle_index += 1

    if needle and needle_index == len(needle):
        coverage = len(needle) / len(haystack)
        return 0.3 + 0.2 * coverage + 0.2 * (longest_run / len(needle))

    return 0.0


def split_filename(path: str) -> tuple[str, str, str]:
    """Return ``(filename, stem, extension)`` for a ``/``-separated path."""
    filename = path.split("/")[-1]
    match = FILE_EXTENSION_PATTERN.search(filename)
    if match is None:
        return filename, filename, ""
    return filename, filename[: match.start()], match.group(0)


def score_file_path(path: str, keywords: list[str], extensions: list[str]) -> float:
    """
    Score a relative path against query keywords and extensions.

    Each keyword contributes through the first rule it satisfies: exact
    filename, filename without extension, fuzzy filename, fuzzy path.
    Deeper paths are penalized slightly.

    Args:
        path: Path relative to the provider root, ``/``-separated
        keywords: Keywords from extract_keywords
        extensions: Extensions from extract_file_extensions

    Returns:
        Score, which may be negative for unrelated deep paths
    """
    filename, stem, extension = split_filename(path)
    score = 0.0

    if extensions and extension in extensions:
        score += EXTENSION_BONUS

    lower_filename = filename.lower()
    lower_stem = stem.lower()

    for keyword in keywords:
        lower_keyword = keyword.lower()

        if lower_filename == lower_keyword:
            score += EXACT_FILENAME_SCORE
            continue

        if lower_stem == lower_keyword:
            score += STEM_SCORE
            continue

        filename_score = fuzzy_score(keyword, filename)
        if filename_score > 0.5:
            score += FILENAME_FUZZY_WEIGHT * filename_score
            continue

        path_score = fuzzy_score(keyword, path)
        if path_score > 0.3:
            score += PATH_FUZZY_WEIGHT * path_score

    score -= len(path.split("/")) * DEPTH_PENALTY
    return score
