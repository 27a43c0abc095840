from __future__ import annotations

from dataclasses import dataclass
from types import TracebackType
from typing import Protocol, Type

from schoolhub.domain.ports.school_repository import SchoolRepositoryPort


@dataclass
class UnitOfWorkPort(Protocol):
    """
    Transaction boundary.

    Usage:
        async with uow as tx:
            school = await tx.schools.add(school)
            await tx.commit()
    """

    schools: SchoolRepositoryPort

    async def __aenter__(self) -> "UnitOfWorkPort":
        """Begin a new transaction."""

    async def __aexit__(
        self,
        exc_type: Type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        """End the transaction; rolls back unless committed."""

    async def commit(self) -> None:
        """Commit the transaction."""

    async def rollback(self) -> None:
        """Rollback the transaction."""
