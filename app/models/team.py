"""팀 SQLAlchemy ORM 모델 정의.

Team SQLAlchemy ORM model definition.

Tables:
    - team: 회원이 소속되는 팀 (Team that members belong to)
"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class Team(Base):
    """팀 모델.

    Team model. The ``members`` collection is the inverse (read) side of
    ``Member.team``; the member row owns the foreign key.

    Attributes:
        id: 고유 식별자 (Generated identifier, column ``team_id``)
        name: 팀 이름 (Team name)

    Relationships:
        members: 소속 회원 목록 (Members of this team, non-owning)
    """

    __tablename__ = "team"

    id: Mapped[int] = mapped_column("team_id", Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # 관계 — 읽기 전용 역방향 컬렉션 (Inverse side, lazy by default)
    members = relationship("Member", back_populates="team")

    def __repr__(self) -> str:
        return f"Team(id={self.id}, name={self.name!r})"
