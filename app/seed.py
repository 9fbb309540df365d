"""샘플 데이터 시드 스크립트 — 회원 생성.

Seed script — Creates sample members for the listing endpoint.

Usage:
    python -m app.seed

Creates:
    - member0 ~ member{N-1}, 나이 0 ~ N-1 (N members, ages 0..N-1)
"""

import asyncio

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import Base, async_session, engine
from app.models import Member
from app.repositories.member_repository import member_repository
from app.utils.logging import get_logger

logger = get_logger(__name__)


async def seed_members(db: AsyncSession, count: int = 100) -> list[Member]:
    """회원 ``count`` 명을 생성합니다 (커밋은 호출자 책임).

    Create ``member{i}`` aged ``i`` for ``i`` in ``range(count)``.
    The caller owns the transaction.

    Args:
        db: 비동기 데이터베이스 세션 (Async database session)
        count: 생성할 회원 수 (Number of members)

    Returns:
        list[Member]: 생성된 회원 목록 (Created members)
    """
    members: list[Member] = await member_repository.save_all(
        db, (Member(username=f"member{i}", age=i) for i in range(count))
    )
    logger.info("members seeded", extra={"event": {"count": len(members)}})
    return members


async def seed(count: int | None = None) -> None:
    """테이블을 만들고 회원을 시드합니다.

    Create tables if they don't exist, then insert sample members.
    Idempotent: 이미 회원이 있으면 건너뜁니다 (Skips when members exist).
    """
    # 테이블 생성 — DDL 실행 (Create all tables from ORM metadata)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as db:
        if await member_repository.count(db) > 0:
            logger.info("already seeded, skipping")
            return
        await seed_members(db, count if count is not None else settings.SEED_MEMBER_COUNT)
        await db.commit()


if __name__ == "__main__":
    asyncio.run(seed())
