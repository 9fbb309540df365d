"""페이지네이션 유틸리티 모듈.

Pagination utility module for SQLAlchemy async queries.
Provides the paging request types (``PageRequest``, ``Sort``, ``Order``),
the ``Page`` result model, and a ``paginate`` function that runs the content
query and, when needed, a separate count query.

Usage:
    page_request = PageRequest.of(0, 3, Sort.by(Direction.DESC, "username"))
    page = await paginate(db, select(Member), page_request)
"""

import math
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any, Generic, Sequence, TypeVar

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")
U = TypeVar("U")


class Direction(str, Enum):
    """정렬 방향 (Sort direction)."""

    ASC = "asc"
    DESC = "desc"

    @classmethod
    def from_string(cls, value: str) -> "Direction":
        """대소문자 구분 없이 방향 문자열을 변환합니다.

        Raises:
            ValueError: asc/desc 가 아닌 값 (Value is neither asc nor desc)
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Invalid sort direction '{value}'; expected 'asc' or 'desc'")


class Order(BaseModel):
    """단일 속성 정렬 조건 (Single property ordering).

    Attributes:
        property_name: 정렬 속성 이름 (Entity attribute name, serialized as ``property``)
        direction: 정렬 방향 (Sort direction)
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    property_name: str = Field(alias="property")
    direction: Direction = Direction.ASC

    @property
    def is_ascending(self) -> bool:
        return self.direction is Direction.ASC


class Sort(BaseModel):
    """정렬 조건 목록 — 앞에 있는 조건이 우선.

    Ordered collection of ``Order`` items; earlier orders take precedence.
    """

    model_config = ConfigDict(frozen=True)

    orders: tuple[Order, ...] = ()

    @classmethod
    def by(cls, *args: "Direction | str | Order") -> "Sort":
        """정렬 조건을 생성합니다.

        Build a sort from property names, optionally preceded by a direction,
        or from ``Order`` instances::

            Sort.by("username")
            Sort.by(Direction.DESC, "username", "age")
            Sort.by(Order(property_name="age", direction=Direction.DESC))
        """
        direction: Direction = Direction.ASC
        items: list[Any] = list(args)
        if items and isinstance(items[0], Direction):
            direction = items.pop(0)
        orders: list[Order] = []
        for item in items:
            if isinstance(item, Order):
                orders.append(item)
            else:
                orders.append(Order(property_name=item, direction=direction))
        return cls(orders=tuple(orders))

    @classmethod
    def unsorted(cls) -> "Sort":
        return cls()

    @classmethod
    def parse(cls, values: Iterable[str]) -> "Sort":
        """쿼리 스트링 ``sort`` 파라미터를 해석합니다.

        Parse repeated ``sort=prop[,prop...][,asc|desc]`` query values.
        A trailing direction applies to every property in the same value;
        empty segments are ignored.

        Raises:
            ValueError: 속성 없이 방향만 있는 경우 (Direction without property)
        """
        orders: list[Order] = []
        for value in values:
            parts: list[str] = [p.strip() for p in value.split(",") if p.strip()]
            if not parts:
                continue
            direction: Direction = Direction.ASC
            if parts[-1].lower() in (Direction.ASC.value, Direction.DESC.value):
                direction = Direction.from_string(parts.pop())
                if not parts:
                    raise ValueError(f"Sort value '{value}' has a direction but no property")
            orders.extend(Order(property_name=p, direction=direction) for p in parts)
        return cls(orders=tuple(orders))

    @property
    def is_sorted(self) -> bool:
        return bool(self.orders)

    def and_(self, other: "Sort") -> "Sort":
        """두 정렬 조건을 이어 붙입니다 (Concatenate, self first)."""
        return Sort(orders=self.orders + other.orders)


class PageRequest(BaseModel):
    """페이지 요청 — 0부터 시작하는 페이지 번호와 크기, 정렬.

    Page request with a zero-based page index, page size, and sort.
    """

    model_config = ConfigDict(frozen=True)

    page: int = Field(0, ge=0)  # 페이지 번호 — 0부터 시작 (Zero-based page index)
    size: int = Field(20, ge=1)  # 페이지 크기 (Page size)
    sort: Sort = Field(default_factory=Sort)

    @classmethod
    def of(cls, page: int, size: int, sort: Sort | None = None) -> "PageRequest":
        return cls(page=page, size=size, sort=sort or Sort())

    @property
    def offset(self) -> int:
        return self.page * self.size

    def with_sort(self, sort: Sort) -> "PageRequest":
        return PageRequest(page=self.page, size=self.size, sort=sort)


class Page(BaseModel, Generic[T]):
    """페이지네이션 결과 모델.

    Pagination result model for typed responses.
    Contains the page content and metadata; derived values (total pages,
    first/last, has next/previous) are computed and included when serialized.
    JSON keys are camelCase (``totalElements``, ``totalPages``, ...).

    Attributes:
        content: 현재 페이지 항목 목록 (Items for the current page)
        total_elements: 전체 항목 수 (Total count across all pages)
        number: 현재 페이지 번호 (Current page number, 0-based)
        size: 페이지당 항목 수 (Requested page size)
        sort: 적용된 정렬 (Sort applied to the content)
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    content: list[T]  # 현재 페이지 항목 목록 (Paginated items)
    total_elements: int  # 전체 항목 수 (Total item count)
    number: int  # 현재 페이지 번호 — 0부터 시작 (Current page, 0-indexed)
    size: int  # 페이지당 항목 수 (Items per page)
    sort: Sort = Field(default_factory=Sort)

    @computed_field(alias="totalPages")  # type: ignore[prop-decorator]
    @property
    def total_pages(self) -> int:
        """전체 페이지 수 — ceil(total/size)."""
        if self.size == 0:
            return 1
        return math.ceil(self.total_elements / self.size)

    @computed_field(alias="numberOfElements")  # type: ignore[prop-decorator]
    @property
    def number_of_elements(self) -> int:
        return len(self.content)

    @computed_field(alias="first")  # type: ignore[prop-decorator]
    @property
    def is_first(self) -> bool:
        return not self.has_previous

    @computed_field(alias="last")  # type: ignore[prop-decorator]
    @property
    def is_last(self) -> bool:
        return not self.has_next

    @computed_field(alias="hasNext")  # type: ignore[prop-decorator]
    @property
    def has_next(self) -> bool:
        return self.number + 1 < self.total_pages

    @computed_field(alias="hasPrevious")  # type: ignore[prop-decorator]
    @property
    def has_previous(self) -> bool:
        return self.number > 0

    @computed_field(alias="empty")  # type: ignore[prop-decorator]
    @property
    def empty(self) -> bool:
        return not self.content

    def map(self, converter: Callable[[T], U]) -> "Page[U]":
        """내용만 변환한 새 페이지를 반환합니다 (메타데이터는 동일).

        Return a new page whose content is ``converter`` applied to each item.
        """
        return Page(
            content=[converter(item) for item in self.content],
            total_elements=self.total_elements,
            number=self.number,
            size=self.size,
            sort=self.sort,
        )


async def paginate(
    db: AsyncSession,
    query: Select[Any],
    page_request: PageRequest,
    count_query: Select[Any] | None = None,
) -> Page[Any]:
    """SQLAlchemy 쿼리에 대한 페이지네이션을 수행합니다.

    Execute a paginated SQLAlchemy query and return a ``Page``.
    The content query runs with OFFSET/LIMIT. The total count needs a second
    query only when the content does not already determine it (a first page
    that is not full, or a partial later page, skips the count).

    Args:
        db: 비동기 DB 세션 (Async database session)
        query: 정렬까지 적용된 SELECT 쿼리 (Entity query with ordering applied)
        page_request: 요청 페이지 (Page index, size, sort)
        count_query: 전체 개수 쿼리의 기반 SELECT, 생략 시 query 사용
                     (Base select for counting; defaults to ``query``)

    Returns:
        Page: 현재 페이지 항목과 메타데이터 (Page content and metadata)
    """
    offset: int = page_request.offset
    size: int = page_request.size

    # 페이지 항목 조회 — OFFSET/LIMIT 적용 (Fetch page items with offset/limit)
    result = await db.execute(query.offset(offset).limit(size))
    items: Sequence[Any] = result.scalars().unique().all()

    total: int
    if offset == 0 and len(items) < size:
        total = len(items)
    elif items and len(items) < size:
        total = offset + len(items)
    else:
        # 전체 개수 조회 — 서브쿼리로 감싸서 COUNT 실행 (Count total via subquery)
        base: Select[Any] = count_query if count_query is not None else query
        count_stmt = select(func.count()).select_from(base.order_by(None).subquery())
        total = (await db.execute(count_stmt)).scalar() or 0

    return Page(
        content=list(items),
        total_elements=total,
        number=page_request.page,
        size=size,
        sort=page_request.sort,
    )
