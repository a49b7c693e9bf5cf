"""Local keyword extraction used when AI tagging is unavailable."""

import re
from collections import Counter

MIN_KEYWORD_LENGTH = 3

STOPWORDS = frozenset(
    """
    a about above after again against all also am an and any are as at be
    because been before being below between both but by can could did do does
    doing down during each few for from further had has have having he her here
    hers herself him himself his how i if in into is it its itself just me more
    most my myself no nor not now of off on once only or other our ours
    ourselves out over own same she should so some such than that the their
    theirs them themselves then there these they this those through to too
    under until up very was we were what when where which while who whom why
    will with would you your yours yourself yourselves get got need needs
    really still thing things want wants way well yes yet one two
    """.split()
)

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


def tokenize(text: str) -> list[str]:
    """Lowercase word tokens of the text, digits-only tokens dropped."""
    return [
        token
        for token in _TOKEN_RE.findall(text.lower())
        if not token.isdigit() and token != "_"
    ]


def extract_keywords(text: str, limit: int = 5) -> list[str]:
    """
    Extract the most frequent non-stopword terms.

    Ties are broken by first occurrence in the text.

    Args:
        text: Source text
        limit: Maximum number of keywords

    Returns:
        Keywords ordered by descending frequency
    """
    if limit <= 0:
        return []

    tokens = [
        token
        for token in tokenize(text)
        if len(token) >= MIN_KEYWORD_LENGTH and token not in STOPWORDS
    ]
    counts = Counter(tokens)
    first_seen: dict[str, int] = {}
    for position, token in enumerate(tokens):
        first_seen.setdefault(token, position)

    ranked = sorted(counts, key=lambda token: (-counts[token], first_seen[token]))
    return ranked[:limit]


def summarize_locally(text: str, max_length: int = 100) -> str:
    """Truncate text to a short preview summary."""
    collapsed = " ".join(text.split())
    if len(collapsed) <= max_length:
        return collapsed
    return collapsed[:max_length] + "..."
