from __future__ import annotations

from typing import Protocol

from schoolhub.domain.entities import School


class SchoolRepositoryPort(Protocol):
    async def list_ordered_by_name(self) -> list[School]:
        """All schools, ascending by name."""

    async def add(self, school: School) -> School:
        """Insert the school and return it with its generated id."""
