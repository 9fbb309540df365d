"""회원 레포지토리 — 파생 쿼리, 명시적 쿼리, 페치 조인, 벌크 수정.

Member Repository — derived queries, explicit SQL queries, fetch joins and
bulk updates for members.
"""

from typing import Any

from sqlalchemy import Select, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager, joinedload

from app.models.member import Member
from app.repositories.base import BaseRepository
from app.repositories.query_methods import derived_query, query
from app.schemas.member import MemberDto


class MemberRepository(BaseRepository[Member]):
    """회원 테이블에 대한 데이터베이스 쿼리를 담당하는 레포지토리.

    Repository handling database queries for the member table.
    Query methods declared below are compiled when the singleton is created.
    """

    # 메서드 이름으로 파생되는 쿼리 — Derived from the method name
    find_by_username_and_age_greater_than = derived_query()
    find_by_username = derived_query()
    find_by_age = derived_query()  # page_request 를 넘기면 Page 반환
    find_by_team_name = derived_query()
    count_by_age = derived_query()
    exists_by_username = derived_query()

    # 반환 형태 — 목록 / 단건 (Return shapes: list or single)
    find_list_by_username = derived_query()
    find_member_by_username = derived_query(returns="one")
    find_optional_by_username = derived_query(returns="one")

    # 파생 쿼리 + 엔티티 그래프 — Derived query with team loaded in the same query
    find_entity_graph_by_username = derived_query(entity_graph=("team",))

    # 명시적 SQL — Explicit queries executed verbatim
    find_user = query("SELECT * FROM member WHERE username = :username AND age = :age")
    find_username_list = query("SELECT username FROM member", scalar=True)
    find_username = query(
        "SELECT username FROM member WHERE member_id = :member_id",
        scalar=True,
        returns="one",
    )
    find_by_names = query(
        "SELECT * FROM member WHERE username IN :names",
        expanding=("names",),
    )
    find_member_dto = query(
        "SELECT m.member_id AS id, m.username AS username, t.name AS team_name "
        "FROM member m JOIN team t ON m.team_id = t.team_id",
        dto=MemberDto,
    )

    def __init__(self) -> None:
        """MemberRepository를 초기화합니다.

        Initialize the MemberRepository with the Member model.
        """
        super().__init__(Member)

    async def bulk_age_plus(
        self,
        db: AsyncSession,
        age: int,
        clear_automatically: bool = True,
    ) -> int:
        """지정 나이 이상인 회원의 나이를 1 증가시킵니다.

        Increment the age of every member aged ``age`` or more with a single
        UPDATE. The session cache is cleared afterwards by default; pass
        ``clear_automatically=False`` to keep already-loaded (now stale)
        instances, which then require ``flush_and_clear`` before re-reading.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            age: 기준 나이, 이상 포함 (Lower bound, inclusive)
            clear_automatically: 실행 후 세션 캐시 비우기 (Clear the identity map)

        Returns:
            int: 수정된 회원 수 (Number of updated members)
        """
        stmt = update(Member).where(Member.age >= age).values(age=Member.age + 1)
        return await self.bulk_update(db, stmt, clear_automatically=clear_automatically)

    async def find_member_fetch_join(self, db: AsyncSession) -> list[Member]:
        """회원과 팀을 페치 조인으로 한 번에 조회합니다.

        Load members together with their team through an explicit outer join
        whose columns populate ``Member.team`` (fetch join).
        """
        stmt: Select[Any] = (
            select(Member)
            .outerjoin(Member.team)
            .options(contains_eager(Member.team))
            .order_by(Member.id)
        )
        result = await db.execute(stmt)
        return list(result.scalars().unique().all())

    async def find_member_entity_graph(self, db: AsyncSession) -> list[Member]:
        """엔티티 그래프 방식으로 회원과 팀을 함께 조회합니다.

        Load members with ``team`` attached by a joined eager load.
        """
        stmt: Select[Any] = select(Member).options(joinedload(Member.team)).order_by(Member.id)
        result = await db.execute(stmt)
        return list(result.scalars().unique().all())


# 싱글턴 인스턴스 — Singleton instance
member_repository: MemberRepository = MemberRepository()
