from collections.abc import Sequence

from investment_ledger.models import Suggestion

MAX_SUGGESTIONS = 8


def normalize_query(raw: str | None) -> str:
    """Trim, collapse internal whitespace and lower-case a lookup query."""
    if not raw:
        return ""
    return " ".join(raw.split()).lower()


def filter_suggestions(
    query: str,
    candidates: Sequence[Suggestion],
    limit: int = MAX_SUGGESTIONS,
) -> list[Suggestion]:
    """Keep candidates matching every token of a multi-token query, then truncate."""
    tokens = query.split()
    if len(tokens) > 1:
        candidates = [
            candidate
            for candidate in candidates
            if all(token in candidate.search_text for token in tokens)
        ]
    return list(candidates[:limit])
