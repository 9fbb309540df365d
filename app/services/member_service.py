"""회원 서비스 — 회원 조회 비즈니스 로직.

Member Service — Business logic behind the member endpoints.
Converts entities to response schemas and translates repository-level
failures into HTTP exceptions.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.member import Member
from app.repositories.member_repository import member_repository
from app.schemas.member import MemberDto
from app.utils.exceptions import BadRequestError, NotFoundError, PropertyReferenceError
from app.utils.pagination import Page, PageRequest


class MemberService:
    """회원 관련 비즈니스 로직을 처리하는 서비스.

    Service handling member business logic.
    """

    async def get_username(self, db: AsyncSession, member_id: int) -> str:
        """회원 ID로 이름을 조회합니다.

        Return the username of the member with ``member_id``.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            member_id: 회원 ID (Member identifier)

        Returns:
            str: 회원 이름 (Username)

        Raises:
            NotFoundError: 회원이 없을 때 (Member not found)
        """
        member: Member = await self.get_member(db, member_id)
        return member.username

    async def get_member(self, db: AsyncSession, member_id: int) -> Member:
        """회원 엔티티를 조회합니다. 없으면 404.

        Load the member entity or raise ``NotFoundError``.
        """
        member: Member | None = await member_repository.find_by_id(db, member_id)
        if member is None:
            raise NotFoundError(f"Member {member_id} not found")
        return member

    async def list_members(self, db: AsyncSession, page_request: PageRequest) -> Page[MemberDto]:
        """회원 목록을 페이지 단위로 조회합니다.

        List members page by page as DTOs. Teams are loaded in the same query
        so the conversion never triggers a lazy load.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            page_request: 페이지 번호/크기/정렬 (Page index, size, sort)

        Returns:
            Page[MemberDto]: 회원 DTO 페이지 (Page of member DTOs)

        Raises:
            BadRequestError: 모르는 정렬 속성 (Unknown sort property)
        """
        try:
            page: Page[Member] = await member_repository.find_all(
                db, page_request=page_request, entity_graph=("team",)
            )
        except PropertyReferenceError as exc:
            raise BadRequestError(str(exc))
        return page.map(MemberDto.from_member)


# 싱글턴 인스턴스 — Singleton instance
member_service: MemberService = MemberService()
