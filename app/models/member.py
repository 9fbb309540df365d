"""회원 SQLAlchemy ORM 모델 정의.

Member SQLAlchemy ORM model definition.

Tables:
    - member: 회원 (Members, optionally assigned to one team)
"""

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.base import AuditMixin
from app.models.team import Team


class Member(AuditMixin, Base):
    """회원 모델.

    Member model. Owns the many-to-one link to ``Team``; the team is
    loaded lazily unless a fetch join or entity graph is requested.
    In an async session the lazy load must be awaited explicitly via
    ``await member.awaitable_attrs.team``.

    Attributes:
        id: 고유 식별자 (Generated identifier, column ``member_id``)
        username: 회원 이름 (Username)
        age: 나이 (Age, defaults to 0)
        team_id: 소속 팀 FK (Team foreign key, nullable)

    Relationships:
        team: 소속 팀 (Owning side of member → team)
    """

    __tablename__ = "member"

    id: Mapped[int] = mapped_column("member_id", Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(255), nullable=False)
    age: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # 소속 팀 FK — 팀 없는 회원 허용 (Nullable, member may have no team)
    team_id: Mapped[int | None] = mapped_column(ForeignKey("team.team_id"), nullable=True)

    # 관계 — 소속 팀, 기본 지연 로딩 (Owning side, lazy by default)
    team = relationship("Team", back_populates="members")

    def change_team(self, team: Team) -> None:
        """소속 팀을 변경합니다.

        Reassign this member to ``team``. The backref keeps ``team.members``
        consistent when that collection is already loaded.
        """
        self.team = team

    def __repr__(self) -> str:
        # team은 지연 로딩 대상이라 출력하지 않음 (team omitted, lazily loaded)
        return f"Member(id={self.id}, username={self.username!r}, age={self.age})"
