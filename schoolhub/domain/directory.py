from __future__ import annotations

from typing import Iterable, Optional, Sequence

from schoolhub.domain.entities import School


def filter_schools(
    schools: Sequence[School],
    *,
    search: Optional[str] = None,
    city: Optional[str] = None,
    state: Optional[str] = None,
) -> list[School]:
    """
    Subset of `schools`, relative order preserved.

    `search` matches name, city or state case-insensitively;
    `city` and `state` must match exactly. Empty filters are ignored.
    """
    needle = (search or "").lower()

    def keep(school: School) -> bool:
        if needle and not (
            needle in school.name.lower()
            or needle in school.city.lower()
            or needle in school.state.lower()
        ):
            return False
        if city and school.city != city:
            return False
        if state and school.state != state:
            return False
        return True

    return [s for s in schools if keep(s)]


def distinct_sorted(values: Iterable[str]) -> list[str]:
    return sorted(set(values))
