"""회원 관련 Pydantic 응답 스키마 정의.

Member Pydantic response schema definitions.
JSON keys are camelCase (``teamName``); Python code uses snake_case names.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.models.member import Member


class MemberDto(BaseModel):
    """회원 조회 응답 스키마 — 팀 이름을 평탄화한 읽기 전용 뷰.

    Member read-only view with the team name flattened.

    Attributes:
        id: 회원 ID (Member identifier)
        username: 회원 이름 (Username)
        team_name: 소속 팀 이름, 팀이 없으면 None (Team name, None without a team)
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    username: str
    team_name: str | None = None

    @classmethod
    def from_member(cls, member: Member) -> "MemberDto":
        """회원 엔티티를 DTO로 변환합니다.

        Build the view from an entity. ``member.team`` must already be loaded
        (fetch join, entity graph, or an earlier await); a member without a
        team maps to ``team_name=None``.
        """
        team = member.team
        return cls(
            id=member.id,
            username=member.username,
            team_name=team.name if team is not None else None,
        )
