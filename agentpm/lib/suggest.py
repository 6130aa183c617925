"""
Fuzzy matching for "Did you mean?" suggestions.
"""

from difflib import SequenceMatcher
from typing import Optional


def find_similar(query: str, candidates: list[str], threshold: float = 0.6) -> Optional[str]:
    """
    Find the most similar candidate to query.

    Args:
        query: The user's input
        candidates: List of valid ids
        threshold: Minimum similarity ratio (0-1) to suggest

    Returns:
        Best match if above threshold, None otherwise
    """
    if not candidates or not query:
        return None

    best_match = None
    best_ratio = 0.0
    query_lower = query.lower()

    for candidate in candidates:
        if candidate.lower() == query_lower:
            return candidate
        ratio = SequenceMatcher(None, query_lower, candidate.lower()).ratio()
        if ratio > best_ratio:
            best_ratio = ratio
            best_match = candidate

    if best_ratio >= threshold:
        return best_match

    return None


def suggest_epic_file(query: str, directory) -> Optional[str]:
    """
    Find a similarly named epic XML file in ``directory``.

    Args:
        query: File name the user typed
        directory: Path to search

    Returns:
        Suggested file name or None
    """
    if not directory.is_dir():
        return None

    candidates = [f.name for f in directory.glob("*.xml")]
    return find_similar(query, candidates)
