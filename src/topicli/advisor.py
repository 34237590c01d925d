"""Follow-up suggestions shown after a command succeeds.

The advisor is a static edge list built alongside the registry: a
completed command path maps to ready-to-run command lines that usually come
next (``user create`` -> ``user add-to-team ...``). The application prints
them after the results, in human format only, so machine consumers of
structured or tabular output never see them.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence


class FollowupAdvisor:
    """Maps completed command paths to suggested next command lines.

    Example::

        advisor = FollowupAdvisor()
        advisor.add(["user", "create"], ["mmctl user activate <username>"])
        advisor.suggest(["user", "create"])
        # ['mmctl user activate <username>']
    """

    def __init__(self, edges: Mapping[tuple[str, ...], Iterable[str]] | None = None) -> None:
        self._edges: dict[tuple[str, ...], list[str]] = {}
        for path, suggestions in (edges or {}).items():
            self.add(path, suggestions)

    def add(self, path: Sequence[str], suggestions: Iterable[str]) -> None:
        """Append *suggestions* for *path*, skipping ones already present."""
        current = self._edges.setdefault(tuple(path), [])
        for suggestion in suggestions:
            if suggestion not in current:
                current.append(suggestion)

    def suggest(self, path: Sequence[str]) -> list[str]:
        """Return the suggestions for the completed command at *path* (possibly empty)."""
        return list(self._edges.get(tuple(path), ()))

    def merge(self, other: FollowupAdvisor) -> None:
        """Add every edge of *other* to this advisor."""
        for path, suggestions in other._edges.items():
            self.add(path, suggestions)

    def __len__(self) -> int:
        return len(self._edges)
