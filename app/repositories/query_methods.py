"""선언형 쿼리 메서드 — 파생 쿼리와 명시적 SQL 쿼리.

Declarative query methods for repositories.

A repository declares query methods as class attributes::

    class MemberRepository(BaseRepository[Member]):
        find_by_username_and_age_greater_than = derived_query()
        find_user = query("SELECT * FROM member WHERE username = :username AND age = :age")

``BaseRepository.__init__`` compiles every declaration against the model, so
a malformed declaration raises ``QueryDerivationError`` when the repository
singleton is created (at import), never at call time. On an instance, the
attribute resolves to the compiled coroutine function, called with the session
first::

    members = await member_repository.find_by_username_and_age_greater_than(db, "AAA", 15)
"""

import re
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel
from sqlalchemy import Select, TextClause, bindparam, func, select, text
from sqlalchemy.exc import MultipleResultsFound
from sqlalchemy.ext.asyncio import AsyncSession

from app.repositories.derivation import QueryPlan, derive_query
from app.utils.exceptions import QueryDerivationError
from app.utils.pagination import PageRequest, paginate

if TYPE_CHECKING:
    from app.repositories.base import BaseRepository

# SQLAlchemy text() 와 같은 규칙의 ``:name`` 파라미터 (Same rule as text() binds)
_PARAM_PATTERN = re.compile(r"(?<![:\w\\]):(\w+)(?!:)")

_RETURN_KINDS = ("list", "one")


class QueryMethod:
    """쿼리 메서드 선언의 공통 디스크립터.

    Descriptor base for declared query methods. Subclasses implement
    ``compile`` which returns the callable bound to one repository.
    """

    name: str = ""

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        try:
            return instance._query_methods[self.name]
        except (AttributeError, KeyError):
            raise AttributeError(
                f"query method '{self.name}' is not compiled; "
                f"was BaseRepository.__init__ called?"
            ) from None

    def compile(self, repository: "BaseRepository[Any]") -> Any:
        raise NotImplementedError


class DerivedQuery(QueryMethod):
    """메서드 이름에서 조건을 파생하는 쿼리 선언.

    Query whose predicate is derived from the attribute name.

    Args:
        returns: ``"list"`` (기본) 또는 ``"one"`` — 단건은 없으면 None,
                 2건 이상이면 MultipleResultsFound
                 (Single result: None when absent, error when ambiguous)
        entity_graph: 같은 조회에서 함께 로딩할 관계 이름
                      (Relationships eagerly loaded in the same round trip)
    """

    def __init__(self, returns: str = "list", entity_graph: Sequence[str] = ()) -> None:
        self.returns = returns
        self.entity_graph = tuple(entity_graph)

    def compile(self, repository: "BaseRepository[Any]") -> "DerivedQueryExecutor":
        if self.returns not in _RETURN_KINDS:
            raise QueryDerivationError(self.name, f"returns must be one of {_RETURN_KINDS}")
        plan: QueryPlan = derive_query(self.name, repository.properties)
        options: list[Any] = repository.load_options(self.entity_graph, method_name=self.name)
        return DerivedQueryExecutor(repository, plan, self.returns, options)


class DerivedQueryExecutor:
    """컴파일된 파생 쿼리 — 호출 시 인자만 바인딩합니다.

    Compiled derived query. Each call binds arguments to the precompiled plan.
    """

    def __init__(
        self,
        repository: "BaseRepository[Any]",
        plan: QueryPlan,
        returns: str,
        options: list[Any],
    ) -> None:
        self.repository = repository
        self.plan = plan
        self.returns = returns
        self.options = options
        self.__name__ = plan.method_name

    def __repr__(self) -> str:
        return f"<derived query {type(self.repository).__name__}.{self.plan.method_name}>"

    async def __call__(
        self,
        db: AsyncSession,
        *args: Any,
        page_request: PageRequest | None = None,
    ) -> Any:
        model = self.repository.model
        base: Select[Any] = self.plan.select(model, args)

        if self.plan.action == "count":
            count_stmt = select(func.count()).select_from(base.subquery())
            return (await db.execute(count_stmt)).scalar() or 0
        if self.plan.action == "exists":
            return bool((await db.execute(select(base.exists()))).scalar())

        stmt: Select[Any] = base.options(*self.options).order_by(*self.plan.order_clauses())

        if page_request is not None:
            stmt = self.repository.apply_sort(stmt, page_request.sort, joined=self.plan.joins)
            return await paginate(db, stmt, page_request, count_query=base)

        if self.plan.limit is not None:
            stmt = stmt.limit(self.plan.limit)
        result = await db.execute(stmt)
        if self.returns == "one":
            return result.scalars().unique().one_or_none()
        return list(result.scalars().unique().all())


class TextQuery(QueryMethod):
    """명시적 SQL 문자열 쿼리 선언 — 문자열 그대로 실행합니다.

    Explicit query: a fixed SQL string executed verbatim with ``:name``
    parameters. Positional call arguments bind to parameters in order of first
    appearance; keyword arguments bind by name.

    Args:
        sql: 실행할 SQL (SQL text)
        returns: ``"list"`` 또는 ``"one"`` (List or single result)
        scalar: 첫 번째 컬럼만 반환 (Return the first column only)
        dto: 각 행을 검증할 Pydantic 모델 (Pydantic model built from each row)
        expanding: IN 절에 컬렉션을 바인딩할 파라미터 이름
                   (Parameters bound as collections for ``IN``)
    """

    def __init__(
        self,
        sql: str,
        returns: str = "list",
        scalar: bool = False,
        dto: type[BaseModel] | None = None,
        expanding: Sequence[str] = (),
    ) -> None:
        self.sql = sql
        self.returns = returns
        self.scalar = scalar
        self.dto = dto
        self.expanding = tuple(expanding)

    def compile(self, repository: "BaseRepository[Any]") -> "TextQueryExecutor":
        if not self.sql or not self.sql.strip():
            raise QueryDerivationError(self.name, "query text is empty")
        if self.returns not in _RETURN_KINDS:
            raise QueryDerivationError(self.name, f"returns must be one of {_RETURN_KINDS}")
        if self.scalar and self.dto is not None:
            raise QueryDerivationError(self.name, "scalar and dto results are mutually exclusive")

        names: list[str] = list(dict.fromkeys(_PARAM_PATTERN.findall(self.sql)))
        unknown: list[str] = [n for n in self.expanding if n not in names]
        if unknown:
            raise QueryDerivationError(
                self.name, f"expanding parameter(s) {unknown} do not appear in the query"
            )

        clause: TextClause = text(self.sql)
        if self.expanding:
            clause = clause.bindparams(*(bindparam(n, expanding=True) for n in self.expanding))
        return TextQueryExecutor(self.name, repository, clause, names, self)


class TextQueryExecutor:
    """컴파일된 명시적 쿼리 (Compiled explicit query)."""

    def __init__(
        self,
        name: str,
        repository: "BaseRepository[Any]",
        clause: TextClause,
        param_names: list[str],
        declaration: TextQuery,
    ) -> None:
        self.__name__ = name
        self.repository = repository
        self.clause = clause
        self.param_names = param_names
        self.declaration = declaration

    def __repr__(self) -> str:
        return f"<text query {type(self.repository).__name__}.{self.__name__}>"

    def bind(self, args: Sequence[Any], kwargs: dict[str, Any]) -> dict[str, Any]:
        """호출 인자를 SQL 파라미터에 바인딩합니다.

        Raises:
            TypeError: 인자 개수 초과, 중복, 누락, 모르는 이름
                       (Too many, duplicated, missing or unknown arguments)
        """
        if len(args) > len(self.param_names):
            raise TypeError(
                f"{self.__name__}() takes {len(self.param_names)} query argument(s) "
                f"but {len(args)} were given"
            )
        params: dict[str, Any] = dict(zip(self.param_names, args))
        for key, value in kwargs.items():
            if key not in self.param_names:
                raise TypeError(f"{self.__name__}() got an unexpected query argument '{key}'")
            if key in params:
                raise TypeError(f"{self.__name__}() got multiple values for query argument '{key}'")
            params[key] = value
        missing: list[str] = [n for n in self.param_names if n not in params]
        if missing:
            raise TypeError(f"{self.__name__}() missing query argument(s): {', '.join(missing)}")
        return params

    async def __call__(self, db: AsyncSession, *args: Any, **kwargs: Any) -> Any:
        params: dict[str, Any] = self.bind(args, kwargs)
        declaration: TextQuery = self.declaration

        if declaration.dto is not None:
            result = await db.execute(self.clause, params)
            rows: list[Any] = [declaration.dto.model_validate(dict(row)) for row in result.mappings()]
            return self._shape(rows)

        if declaration.scalar:
            result = await db.execute(self.clause, params)
            return self._shape(list(result.scalars().all()))

        stmt = select(self.repository.model).from_statement(self.clause)
        result = await db.execute(stmt, params)
        return self._shape(list(result.scalars().unique().all()))

    def _shape(self, rows: list[Any]) -> Any:
        if self.declaration.returns == "one":
            if len(rows) > 1:
                raise MultipleResultsFound(
                    f"{self.__name__}() expected at most one row, got {len(rows)}"
                )
            return rows[0] if rows else None
        return rows


def derived_query(returns: str = "list", entity_graph: Sequence[str] = ()) -> DerivedQuery:
    """파생 쿼리 메서드를 선언합니다 (Declare a derived query method)."""
    return DerivedQuery(returns=returns, entity_graph=entity_graph)


def query(
    sql: str,
    returns: str = "list",
    scalar: bool = False,
    dto: type[BaseModel] | None = None,
    expanding: Sequence[str] = (),
) -> TextQuery:
    """명시적 SQL 쿼리 메서드를 선언합니다 (Declare an explicit SQL query method)."""
    return TextQuery(sql, returns=returns, scalar=scalar, dto=dto, expanding=expanding)
