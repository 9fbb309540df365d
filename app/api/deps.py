"""FastAPI 의존성 주입 모듈 — 페이지 요청 파싱.

FastAPI dependency injection module — Pageable request parsing.
Builds a ``PageRequest`` from ``page``, ``size`` and repeated ``sort`` query
parameters with lenient, Spring-style rules:

    1. 음수 페이지는 0 (Negative page → 0)
    2. 1 미만 크기는 기본값 (Size < 1 → default size)
    3. 최대값 초과 크기는 최대값 (Size > MAX_PAGE_SIZE → MAX_PAGE_SIZE)
    4. sort 가 없으면 기본 정렬 (No ``sort`` → default sort)

Usage:
    @router.get("/members")
    async def list_members(
        page_request: Annotated[PageRequest, Depends(pageable_default(size=12, sort=("username",)))],
    ): ...
"""

from collections.abc import Callable, Sequence

from fastapi import Query

from app.config import settings
from app.utils.exceptions import BadRequestError
from app.utils.pagination import Direction, PageRequest, Sort


def resolve_page_request(
    page: int | None,
    size: int | None,
    sort_values: Sequence[str],
    default_size: int,
    default_sort: Sort,
) -> PageRequest:
    """쿼리 파라미터 값을 PageRequest 로 정규화합니다.

    Normalize raw query values into a ``PageRequest``.

    Raises:
        BadRequestError: 잘못된 sort 형식 (Malformed ``sort`` value)
    """
    page_index: int = max(page or 0, 0)
    page_size: int = default_size if size is None or size < 1 else size
    page_size = min(page_size, settings.MAX_PAGE_SIZE)

    try:
        sort: Sort = Sort.parse(sort_values)
    except ValueError as exc:
        raise BadRequestError(str(exc))
    if not sort.is_sorted:
        sort = default_sort
    return PageRequest.of(page_index, page_size, sort)


def pageable_default(
    size: int | None = None,
    sort: Sequence[str] = (),
    direction: Direction = Direction.ASC,
) -> Callable[..., PageRequest]:
    """엔드포인트별 기본값을 가진 페이지 요청 의존성 팩토리.

    Dependency factory producing a ``PageRequest`` with per-endpoint defaults.

    Args:
        size: 기본 페이지 크기, 생략 시 DEFAULT_PAGE_SIZE (Default page size)
        sort: 기본 정렬 속성 (Default sort properties)
        direction: 기본 정렬 방향 (Direction of the default sort)

    Returns:
        FastAPI 의존성 함수 (FastAPI dependency returning a PageRequest)
    """
    default_size: int = size if size is not None else settings.DEFAULT_PAGE_SIZE
    default_sort: Sort = Sort.by(direction, *sort) if sort else Sort.unsorted()

    def _pageable(
        page: int | None = Query(None, description="0부터 시작하는 페이지 번호 (Zero-based page)"),
        size: int | None = Query(None, description="페이지 크기 (Page size)"),
        sort: list[str] | None = Query(None, description="prop[,asc|desc], 반복 가능 (Repeatable)"),
    ) -> PageRequest:
        return resolve_page_request(page, size, sort or [], default_size, default_sort)

    return _pageable
