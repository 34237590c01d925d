"""Edit-distance matching for "did you mean" suggestions.

:func:`distance` is the classic Levenshtein distance computed on
lower-cased inputs. :func:`rank_candidates` turns it into a short,
deterministic suggestion list: closest first, ties broken alphabetically,
and anything farther than :func:`threshold` dropped so that unrelated
commands are never suggested.
"""

from __future__ import annotations

from collections.abc import Iterable

DEFAULT_MAX_SUGGESTIONS = 3
"""Number of suggestions shown for an unknown command."""


def distance(a: str, b: str) -> int:
    """Return the case-insensitive Levenshtein distance between *a* and *b*.

    Only two rows of the dynamic-programming table are kept, sized by the
    shorter input.
    """
    a = a.lower()
    b = b.lower()
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            insertion = current[j - 1] + 1
            deletion = previous[j] + 1
            substitution = previous[j - 1] + (ca != cb)
            current.append(min(insertion, deletion, substitution))
        previous = current
    return previous[-1]


def threshold(text: str) -> int:
    """Largest distance at which a candidate still counts as a match for *text*."""
    return max(2, len(text) // 2)


def rank_candidates(
    text: str,
    candidates: Iterable[str],
    max_results: int = DEFAULT_MAX_SUGGESTIONS,
) -> list[str]:
    """Return up to *max_results* candidates closest to *text*.

    Candidates are sorted by ascending distance, then by name. Duplicates
    are collapsed and candidates beyond :func:`threshold` are excluded.

    Example::

        >>> rank_candidates("lsit", ["list", "create", "delete"])
        ['list']
    """
    if max_results <= 0:
        return []
    limit = threshold(text)
    scored = []
    for candidate in set(candidates):
        dist = distance(text, candidate)
        if dist <= limit:
            scored.append((dist, candidate))
    scored.sort()
    return [candidate for _, candidate in scored[:max_results]]
