from __future__ import annotations

import psycopg

from schoolhub.domain.entities import School
from schoolhub.domain.ports.school_repository import SchoolRepositoryPort

_COLUMNS = "id, name, address, city, state, contact, email_id, image"


def _row_to_school(row: tuple) -> School:
    id_, name, address, city, state, contact, email_id, image = row
    return School(
        id=int(id_),
        name=str(name),
        address=str(address),
        city=str(city),
        state=str(state),
        contact=int(contact),
        email_id=str(email_id),
        image=image,
    )


class PgSchoolRepository(SchoolRepositoryPort):
    """
    Postgres implementation of SchoolRepositoryPort.

    Bound to an active async connection supplied by the UoW; never commits.
    """

    def __init__(self, conn: psycopg.AsyncConnection) -> None:
        self._conn = conn

    async def list_ordered_by_name(self) -> list[School]:
        sql = f"SELECT {_COLUMNS} FROM schools ORDER BY name ASC, id ASC"
        async with self._conn.cursor() as cur:
            await cur.execute(sql)
            rows = await cur.fetchall()
        return [_row_to_school(r) for r in rows]

    async def add(self, school: School) -> School:
        sql = f"""
        INSERT INTO schools (name, address, city, state, contact, email_id, image)
        VALUES (%s, %s, %s, %s, %s, %s, %s)
        RETURNING {_COLUMNS}
        """
        async with self._conn.cursor() as cur:
            await cur.execute(
                sql,
                (
                    school.name,
                    school.address,
                    school.city,
                    school.state,
                    school.contact,
                    school.email_id,
                    school.image,
                ),
            )
            row = await cur.fetchone()

        if not row:
            raise RuntimeError("insert into schools returned no row")
        return _row_to_school(row)
