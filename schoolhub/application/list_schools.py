from dataclasses import dataclass
from typing import Optional

from schoolhub.domain.directory import distinct_sorted, filter_schools
from schoolhub.domain.entities import School
from schoolhub.domain.ports.unit_of_work import UnitOfWorkPort


@dataclass(frozen=True)
class DirectoryView:
    schools: list[School]
    cities: list[str]
    states: list[str]
    total: int


async def list_schools(
    uow: UnitOfWorkPort,
    search: Optional[str] = None,
    city: Optional[str] = None,
    state: Optional[str] = None,
) -> DirectoryView:
    async with uow as transaction:
        snapshot = await transaction.schools.list_ordered_by_name()
        # read-only; nothing to commit

    return DirectoryView(
        schools=filter_schools(snapshot, search=search, city=city, state=state),
        cities=distinct_sorted(s.city for s in snapshot),
        states=distinct_sorted(s.state for s in snapshot),
        total=len(snapshot),
    )
