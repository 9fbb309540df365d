"""기본 CRUD 레포지토리 — 모든 레포지토리의 부모 클래스.

Base CRUD Repository — Parent class for all domain repositories.
Provides generic save/find/delete/count, paging and sorting, bulk updates,
and compiles the declarative query methods (``derived_query``/``query``)
declared on subclasses.

Usage:
    class TeamRepository(BaseRepository[Team]):
        find_by_name = derived_query()

        def __init__(self) -> None:
            super().__init__(Team)
"""

from collections.abc import Iterable, Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, Update, func, inspect, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute, joinedload

from app.database import Base
from app.repositories.derivation import PropertyRegistry
from app.repositories.query_methods import QueryMethod
from app.utils.exceptions import PropertyReferenceError, QueryDerivationError
from app.utils.logging import get_logger
from app.utils.pagination import Page, PageRequest, Sort, paginate

# 제네릭 타입 변수 — SQLAlchemy 모델을 나타냄
# Generic type variable representing a SQLAlchemy model
ModelType = TypeVar("ModelType", bound=Base)

logger = get_logger(__name__)


class BaseRepository(Generic[ModelType]):
    """제네릭 CRUD 레포지토리.

    Generic repository over one entity type. All operations take the caller's
    ``AsyncSession`` (the unit of work and its identity map).

    Attributes:
        model: SQLAlchemy 모델 클래스 (The SQLAlchemy model class)
        properties: 파생 쿼리/정렬용 속성 목록 (Typed property registry)
    """

    def __init__(self, model: type[ModelType]) -> None:
        """레포지토리를 초기화하고 선언된 쿼리 메서드를 컴파일합니다.

        Initialize the repository and compile every declared query method.

        Args:
            model: 이 레포지토리가 관리할 SQLAlchemy 모델 클래스
                   (SQLAlchemy model class this repository manages)

        Raises:
            QueryDerivationError: 잘못 선언된 쿼리 메서드가 있을 때
                                  (A query method declaration is malformed)
        """
        self.model: type[ModelType] = model
        self.properties: PropertyRegistry = PropertyRegistry(model)
        self._query_methods: dict[str, Any] = {}

        for name, declaration in self._declared_query_methods().items():
            self._query_methods[name] = declaration.compile(self)
            logger.debug(
                "query method registered",
                extra={"event": {"repository": type(self).__name__, "method": name}},
            )

    @classmethod
    def _declared_query_methods(cls) -> dict[str, QueryMethod]:
        # 하위 클래스 선언이 우선, 일반 메서드로 덮어쓰면 제외
        # Subclass declarations win; a plain override removes the declaration
        declarations: dict[str, QueryMethod] = {}
        for klass in reversed(cls.__mro__):
            for name, attr in vars(klass).items():
                if isinstance(attr, QueryMethod):
                    declarations[name] = attr
                elif name in declarations:
                    del declarations[name]
        return declarations

    # ------------------------------------------------------------------
    # 조회 옵션 — Loading and sorting helpers
    # ------------------------------------------------------------------
    def load_options(self, entity_graph: Sequence[str], method_name: str | None = None) -> list[Any]:
        """엔티티 그래프 이름을 joinedload 옵션으로 변환합니다.

        Turn relationship names into ``joinedload`` options so they are loaded
        in the same round trip as the owning rows.

        Raises:
            QueryDerivationError: 선언 시점의 잘못된 관계 이름 (at declaration)
            PropertyReferenceError: 호출 시점의 잘못된 관계 이름 (at call time)
        """
        relationships = inspect(self.model).relationships
        options: list[Any] = []
        for name in entity_graph:
            if name not in relationships:
                if method_name is not None:
                    raise QueryDerivationError(
                        method_name, f"entity graph references unknown relationship '{name}'"
                    )
                raise PropertyReferenceError(name, self.model.__name__)
            options.append(joinedload(getattr(self.model, name)))
        return options

    def apply_sort(
        self,
        query: Select[Any],
        sort: Sort,
        joined: Sequence[InstrumentedAttribute[Any]] = (),
    ) -> Select[Any]:
        """정렬 조건을 쿼리에 적용합니다.

        Append ORDER BY clauses for ``sort``. Sorting by a related column
        (``team.name``) adds an outer join unless ``joined`` already has it.

        Raises:
            PropertyReferenceError: 모르는 정렬 속성 (Unknown sort property)
        """
        joins, clauses = self.properties.order_by(sort)
        for rel in joins:
            if not any(rel is j for j in joined):
                query = query.outerjoin(rel)
        return query.order_by(*clauses)

    def _identifier(self, entity: ModelType) -> tuple[Any, ...]:
        mapper = inspect(self.model)
        return tuple(getattr(entity, mapper.get_property_by_column(col).key) for col in mapper.primary_key)

    # ------------------------------------------------------------------
    # 기본 CRUD — Basic CRUD
    # ------------------------------------------------------------------
    async def save(self, db: AsyncSession, entity: ModelType) -> ModelType:
        """엔티티를 저장합니다.

        Insert ``entity`` when it has no identifier yet, otherwise merge it
        into the session. The flush assigns generated identifiers.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            entity: 저장할 엔티티 (Entity to persist)

        Returns:
            ModelType: 영속 상태의 엔티티 (The persistent instance)
        """
        state = inspect(entity)
        if state.transient and all(v is None for v in self._identifier(entity)):
            db.add(entity)
        elif state.transient or state.detached:
            entity = await db.merge(entity)
        await db.flush()
        return entity

    async def save_all(self, db: AsyncSession, entities: Iterable[ModelType]) -> list[ModelType]:
        """여러 엔티티를 저장합니다 (Save each entity in order)."""
        return [await self.save(db, entity) for entity in entities]

    async def find_by_id(
        self,
        db: AsyncSession,
        record_id: Any,
        entity_graph: Sequence[str] = (),
    ) -> ModelType | None:
        """ID로 단일 레코드를 조회합니다.

        Retrieve a single record by its identifier. The identity map is
        consulted first, so an instance already loaded in this session is
        returned as-is.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            record_id: 조회할 레코드의 ID (Identifier of the record)
            entity_graph: 함께 로딩할 관계 (Relationships to load eagerly)

        Returns:
            ModelType | None: 조회된 레코드 또는 None (Found record or None)
        """
        entity: ModelType | None = await db.get(
            self.model, record_id, options=self.load_options(entity_graph)
        )
        if entity is None:
            return None
        # 캐시된 인스턴스에는 옵션이 적용되지 않으므로 남은 관계를 직접 로딩
        # Options are skipped for an instance already in the identity map
        unloaded = inspect(entity).unloaded
        for name in entity_graph:
            if name in unloaded:
                await getattr(entity.awaitable_attrs, name)
        return entity

    async def find_all(
        self,
        db: AsyncSession,
        page_request: PageRequest | None = None,
        sort: Sort | None = None,
        entity_graph: Sequence[str] = (),
    ) -> list[ModelType] | Page[Any]:
        """모든 레코드를 조회합니다 (페이지 요청 시 Page 반환).

        Retrieve all records. With ``page_request`` the result is a ``Page``.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            page_request: 페이지 요청 (Page index/size/sort, optional)
            sort: 페이지 없이 정렬만 할 때 (Sort for the unpaged variant)
            entity_graph: 함께 로딩할 관계 (Relationships to load eagerly)

        Returns:
            list[ModelType] | Page[ModelType]: 레코드 목록 또는 페이지
        """
        query: Select[Any] = select(self.model).options(*self.load_options(entity_graph))

        if page_request is not None:
            query = self.apply_sort(query, page_request.sort)
            return await paginate(db, query, page_request, count_query=select(self.model))

        if sort is not None:
            query = self.apply_sort(query, sort)
        result = await db.execute(query)
        return list(result.scalars().unique().all())

    async def count(self, db: AsyncSession) -> int:
        """전체 레코드 수를 반환합니다 (Total number of rows)."""
        query: Select[Any] = select(func.count()).select_from(self.model)
        return (await db.execute(query)).scalar() or 0

    async def exists_by_id(self, db: AsyncSession, record_id: Any) -> bool:
        """ID에 해당하는 레코드가 존재하는지 확인합니다."""
        return await self.find_by_id(db, record_id) is not None

    async def delete(self, db: AsyncSession, entity: ModelType) -> None:
        """엔티티를 삭제합니다.

        Delete ``entity``. A detached instance is merged first.
        """
        if inspect(entity).detached:
            entity = await db.merge(entity)
        await db.delete(entity)
        await db.flush()

    async def delete_by_id(self, db: AsyncSession, record_id: Any) -> bool:
        """ID로 레코드를 삭제합니다.

        Returns:
            bool: 삭제 성공 여부 (Whether a record was deleted)
        """
        entity: ModelType | None = await self.find_by_id(db, record_id)
        if entity is None:
            return False
        await self.delete(db, entity)
        return True

    # ------------------------------------------------------------------
    # 벌크 연산과 영속성 컨텍스트 — Bulk operations and the identity map
    # ------------------------------------------------------------------
    async def bulk_update(
        self,
        db: AsyncSession,
        statement: Update,
        clear_automatically: bool = False,
    ) -> int:
        """벌크 UPDATE 를 실행하고 영향받은 행 수를 반환합니다.

        Execute a set-based UPDATE directly in the database. Instances already
        loaded in the session are NOT refreshed: until the identity map is
        cleared, reads in this session keep returning the old values.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            statement: ORM UPDATE 문 (ORM-enabled update statement)
            clear_automatically: 실행 후 세션의 모든 인스턴스를 분리할지
                                 (Expunge the identity map afterwards)

        Returns:
            int: 영향받은 행 수 (Number of affected rows)
        """
        result = await db.execute(statement.execution_options(synchronize_session=False))
        affected: int = result.rowcount
        if clear_automatically:
            db.expunge_all()
        logger.info(
            "bulk update executed",
            extra={
                "event": {
                    "repository": type(self).__name__,
                    "affected": affected,
                    "cleared": clear_automatically,
                }
            },
        )
        return affected

    async def flush_and_clear(self, db: AsyncSession) -> None:
        """변경 사항을 반영하고 세션 캐시를 비웁니다.

        Flush pending changes, then detach every instance so that the next
        read goes to the database.
        """
        await db.flush()
        db.expunge_all()
