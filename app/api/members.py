"""회원 라우터 — 회원 조회 엔드포인트.

Member Router — Read endpoints for members.
Single-member endpoints answer with the bare username as plain text; the list
endpoint answers with a JSON page of member DTOs.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import pageable_default
from app.database import get_db
from app.models.member import Member
from app.schemas.member import MemberDto
from app.services.member_service import member_service
from app.utils.pagination import Direction, Page, PageRequest

router: APIRouter = APIRouter()

# /members 기본 페이지 — size 12, username 내림차순 (Defaults for the list endpoint)
members_pageable = pageable_default(size=12, sort=("username",), direction=Direction.DESC)


@router.get("/members/{member_id}", response_class=PlainTextResponse)
async def find_member(
    member_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> str:
    """회원 이름을 조회합니다.

    Return the username of the member as plain text (404 when absent).
    """
    return await member_service.get_username(db, member_id)


@router.get("/members2/{member_id}", response_class=PlainTextResponse)
async def find_member2(
    member_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> str:
    """핸들러 안에서 회원 엔티티를 직접 조회해 이름을 반환합니다.

    Resolve the path identifier to the entity inside the handler, then
    return its username as plain text (404 when absent).
    """
    member: Member = await member_service.get_member(db, member_id)
    return member.username


@router.get("/members", response_model=Page[MemberDto], response_model_by_alias=True)
async def list_members(
    db: Annotated[AsyncSession, Depends(get_db)],
    page_request: Annotated[PageRequest, Depends(members_pageable)],
) -> Page[MemberDto]:
    """회원 목록을 페이지 단위로 조회합니다.

    List members as a page of DTOs.
    Query: ``page`` (0-based), ``size``, repeatable ``sort=prop[,asc|desc]``.
    """
    return await member_service.list_members(db, page_request)
