from __future__ import annotations

from typing import Iterable, Iterator, List

from .models import Team

AUTOMATIC_SCHEDULERS = frozenset({"swiss", "frc", "playoff"})


def requires_team_selection(scheduler_type: str) -> bool:
    return scheduler_type not in AUTOMATIC_SCHEDULERS


def filter_teams(teams: Iterable[Team], query: str) -> List[Team]:
    """Case-insensitive substring match on team number, name and organization."""
    if not query:
        return list(teams)
    q = query.lower()
    out: List[Team] = []
    for t in teams:
        if q in t.team_number.lower() or q in t.name.lower() or (t.organization and q in t.organization.lower()):
            out.append(t)
    return out


class TeamSelection:
    """Ordered set of selected team ids."""

    def __init__(self, ids: Iterable[str] = ()):
        self._ids: dict[str, None] = dict.fromkeys(ids)

    @property
    def ids(self) -> List[str]:
        return list(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, team_id: object) -> bool:
        return team_id in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(self._ids)

    def toggle(self, team_id: str) -> None:
        if team_id in self._ids:
            del self._ids[team_id]
        else:
            self._ids[team_id] = None

    def select_filtered(self, filtered: Iterable[Team]) -> None:
        # Deselect the filtered teams when all are already selected, otherwise add them.
        # Teams outside the filter keep their state either way.
        filtered_ids = list(dict.fromkeys(t.id for t in filtered))
        if not filtered_ids:
            return
        if all(i in self._ids for i in filtered_ids):
            for i in filtered_ids:
                self._ids.pop(i, None)
        else:
            for i in filtered_ids:
                self._ids.setdefault(i, None)

    def clear(self) -> None:
        self._ids.clear()
