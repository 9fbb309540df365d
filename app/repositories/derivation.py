"""메서드 이름 기반 쿼리 파생 모듈.

Query derivation from method names.
Turns a declared repository method name such as
``find_by_username_and_age_greater_than`` into a ``QueryPlan``: the list of
criteria, the static ordering, and the result limit. Parsing happens once,
when the repository is constructed; calls only bind arguments.

Grammar::

    <action>[_<subject>]_by_<criterion>(_and_<criterion>)*[_order_by_<order>(_and_<order>)*]

    action    := find | count | exists
    subject   := free words, plus optional ``distinct`` and ``first``/``topN``
    criterion := <property>[_<operator>]
    order     := <property>[_asc|_desc]

Properties come from the model's ``PropertyRegistry``: mapped columns
(``username``), many-to-one relationships (``team``) and one-hop columns
through a many-to-one relationship (``team_name``). Criteria combine with AND
only.
"""

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import ColumnElement, Select, inspect, select
from sqlalchemy.orm import InstrumentedAttribute, RelationshipDirection

from app.utils.exceptions import PropertyReferenceError, QueryDerivationError
from app.utils.pagination import Direction, Sort

_METHOD_PATTERN = re.compile(r"^(?P<action>find|count|exists)_(?P<rest>\w+)$")
_LIMIT_PATTERN = re.compile(r"^(?:first|top)(?P<limit>\d*)$")
_OR_PATTERN = re.compile(r"(?:^|_)or(?:_|$)")


@dataclass(frozen=True, eq=False)
class Operator:
    """비교 연산자 — 키워드, 필요한 인자 수, SQL 조건 생성 함수.

    Comparison operator: keyword, number of bound arguments, and a builder
    producing the SQL condition from the attribute and the bound values.
    """

    keyword: str
    arity: int
    build: Callable[[Any, Sequence[Any]], ColumnElement[bool]]
    # 관계 속성에도 허용되는지 여부 (Usable on a relationship property)
    relationship_safe: bool = False


def _op(keyword: str, arity: int, build: Callable[[Any, Sequence[Any]], Any], relationship_safe: bool = False) -> Operator:
    return Operator(keyword=keyword, arity=arity, build=build, relationship_safe=relationship_safe)


# ``== None`` / ``!= None`` 은 SQLAlchemy 가 IS NULL / IS NOT NULL 로 렌더링
# (Comparing with None renders IS [NOT] NULL)
_EQUALS = _op("", 1, lambda attr, args: attr == args[0], relationship_safe=True)
_NOT_EQUALS = _op("not", 1, lambda attr, args: attr != args[0], relationship_safe=True)

OPERATORS: dict[str, Operator] = {
    "": _EQUALS,
    "is": _EQUALS,
    "equals": _EQUALS,
    "not": _NOT_EQUALS,
    "is_not": _NOT_EQUALS,
    "greater_than": _op("greater_than", 1, lambda attr, args: attr > args[0]),
    "greater_than_equal": _op("greater_than_equal", 1, lambda attr, args: attr >= args[0]),
    "less_than": _op("less_than", 1, lambda attr, args: attr < args[0]),
    "less_than_equal": _op("less_than_equal", 1, lambda attr, args: attr <= args[0]),
    "after": _op("after", 1, lambda attr, args: attr > args[0]),
    "before": _op("before", 1, lambda attr, args: attr < args[0]),
    "between": _op("between", 2, lambda attr, args: attr.between(args[0], args[1])),
    "in": _op("in", 1, lambda attr, args: attr.in_(args[0])),
    "not_in": _op("not_in", 1, lambda attr, args: attr.not_in(args[0])),
    "is_null": _op("is_null", 0, lambda attr, args: attr == None, relationship_safe=True),  # noqa: E711
    "is_not_null": _op("is_not_null", 0, lambda attr, args: attr != None, relationship_safe=True),  # noqa: E711
    "like": _op("like", 1, lambda attr, args: attr.like(args[0])),
    "not_like": _op("not_like", 1, lambda attr, args: attr.not_like(args[0])),
    "starting_with": _op("starting_with", 1, lambda attr, args: attr.startswith(args[0], autoescape=True)),
    "ending_with": _op("ending_with", 1, lambda attr, args: attr.endswith(args[0], autoescape=True)),
    "containing": _op("containing", 1, lambda attr, args: attr.contains(args[0], autoescape=True)),
    "true": _op("true", 0, lambda attr, args: attr.is_(True)),
    "false": _op("false", 0, lambda attr, args: attr.is_(False)),
}


@dataclass(frozen=True, eq=False)
class PropertyPath:
    """파생 쿼리에서 참조 가능한 속성 경로.

    A property reachable from the root model.

    Attributes:
        name: 메서드 이름 안의 토큰 (Token used in method names, e.g. ``team_name``)
        attribute: 비교/정렬 대상 ORM 속성 (ORM attribute compared or sorted on)
        join: 경유하는 관계 속성, 직접 컬럼이면 None (Relationship to join through)
        is_relationship: 속성 자체가 관계인지 (Attribute is a relationship)
    """

    name: str
    attribute: InstrumentedAttribute[Any]
    join: InstrumentedAttribute[Any] | None = None
    is_relationship: bool = False


def _add_join(joins: list[InstrumentedAttribute[Any]], rel: InstrumentedAttribute[Any] | None) -> None:
    # 속성 객체의 == 는 SQL 식을 만들므로 동일성으로 비교 (== builds SQL, compare identity)
    if rel is not None and not any(rel is j for j in joins):
        joins.append(rel)


class PropertyRegistry:
    """모델의 타입이 지정된 속성 목록.

    Typed field registry for one model. Built once per repository and used to
    resolve derived-query tokens and sort properties.
    """

    def __init__(self, model: type[Any]) -> None:
        self.model = model
        self.entity_name: str = model.__name__
        self._paths: dict[str, PropertyPath] = {}

        mapper = inspect(model)
        for column_attr in mapper.column_attrs:
            self._paths[column_attr.key] = PropertyPath(
                name=column_attr.key, attribute=getattr(model, column_attr.key)
            )
        for rel in mapper.relationships:
            if rel.direction is not RelationshipDirection.MANYTOONE:
                continue
            rel_attr: InstrumentedAttribute[Any] = getattr(model, rel.key)
            self._paths.setdefault(
                rel.key, PropertyPath(name=rel.key, attribute=rel_attr, is_relationship=True)
            )
            target = rel.mapper.class_
            for target_attr in rel.mapper.column_attrs:
                name: str = f"{rel.key}_{target_attr.key}"
                # 같은 이름의 직접 컬럼이 우선 (Direct columns win, e.g. team_id)
                self._paths.setdefault(
                    name,
                    PropertyPath(
                        name=name,
                        attribute=getattr(target, target_attr.key),
                        join=rel_attr,
                    ),
                )

        # 최장 일치를 위해 긴 이름부터 (Longest names first for prefix matching)
        self._by_length: list[PropertyPath] = sorted(
            self._paths.values(), key=lambda p: len(p.name), reverse=True
        )

    def __contains__(self, name: str) -> bool:
        return name in self._paths

    def names(self) -> list[str]:
        return sorted(self._paths)

    def match_prefix(self, token: str) -> PropertyPath | None:
        """토큰 앞부분과 가장 길게 일치하는 속성을 찾습니다.

        Return the longest property whose name equals ``token`` or is followed
        by ``_`` in it.
        """
        for path in self._by_length:
            if token == path.name or token.startswith(path.name + "_"):
                return path
        return None

    def get(self, name: str) -> PropertyPath:
        """정렬 속성 이름을 해석합니다 (``team.name`` 도 허용).

        Raises:
            PropertyReferenceError: 없는 속성이거나 관계 자체인 경우
                                    (Unknown property or a bare relationship)
        """
        key: str = name.replace(".", "_")
        path: PropertyPath | None = self._paths.get(key)
        if path is None or path.is_relationship:
            raise PropertyReferenceError(name, self.entity_name)
        return path

    def order_by(self, sort: Sort) -> tuple[list[InstrumentedAttribute[Any]], list[Any]]:
        """Sort 를 ORDER BY 절과 필요한 조인 목록으로 변환합니다.

        Returns:
            tuple: (조인할 관계 목록, ORDER BY 절 목록)
                   (Relationships to join, ORDER BY clauses)
        """
        joins: list[InstrumentedAttribute[Any]] = []
        clauses: list[Any] = []
        for order in sort.orders:
            path: PropertyPath = self.get(order.property_name)
            _add_join(joins, path.join)
            clauses.append(path.attribute.asc() if order.is_ascending else path.attribute.desc())
        return joins, clauses


@dataclass(frozen=True, eq=False)
class Criterion:
    """단일 조건 — 속성과 연산자 (One predicate: property plus operator)."""

    path: PropertyPath
    operator: Operator

    def build(self, args: Sequence[Any]) -> ColumnElement[bool]:
        return self.operator.build(self.path.attribute, args)


@dataclass(frozen=True, eq=False)
class QueryPlan:
    """메서드 이름에서 파생된 실행 계획.

    Executable plan derived from a method name. ``arity`` is the number of
    positional arguments a call must supply, in criterion order.
    """

    method_name: str
    action: str
    criteria: tuple[Criterion, ...]
    orders: tuple[tuple[PropertyPath, Direction], ...] = ()
    distinct: bool = False
    limit: int | None = None
    joins: tuple[InstrumentedAttribute[Any], ...] = field(default=())

    @property
    def arity(self) -> int:
        return sum(c.operator.arity for c in self.criteria)

    def where(self, args: Sequence[Any]) -> list[ColumnElement[bool]]:
        """인자를 조건에 순서대로 바인딩합니다.

        Bind positional arguments to criteria, left to right.

        Raises:
            TypeError: 인자 개수 불일치 (Wrong number of arguments)
        """
        if len(args) != self.arity:
            raise TypeError(
                f"{self.method_name}() takes {self.arity} query argument(s) "
                f"but {len(args)} were given"
            )
        clauses: list[ColumnElement[bool]] = []
        position: int = 0
        for criterion in self.criteria:
            arity: int = criterion.operator.arity
            clauses.append(criterion.build(args[position:position + arity]))
            position += arity
        return clauses

    def select(self, model: type[Any], args: Sequence[Any]) -> Select[Any]:
        """조인과 WHERE 가 적용된 SELECT 를 만듭니다 (정렬/제한 제외).

        Build the filtered entity select, without ordering or limit.
        """
        stmt: Select[Any] = select(model)
        for rel in self.joins:
            stmt = stmt.join(rel)
        stmt = stmt.where(*self.where(args))
        if self.distinct:
            stmt = stmt.distinct()
        return stmt

    def order_clauses(self) -> list[Any]:
        return [
            path.attribute.asc() if direction is Direction.ASC else path.attribute.desc()
            for path, direction in self.orders
        ]


def _parse_subject(method_name: str, subject: str | None) -> tuple[bool, int | None]:
    distinct: bool = False
    limit: int | None = None
    for word in (subject or "").split("_"):
        if word == "distinct":
            distinct = True
            continue
        match = _LIMIT_PATTERN.match(word)
        if match:
            limit = int(match.group("limit") or 1)
            if limit < 1:
                raise QueryDerivationError(method_name, f"limit in '{word}' must be positive")
    return distinct, limit


def _parse_criterion(method_name: str, token: str, registry: PropertyRegistry) -> Criterion:
    path: PropertyPath | None = registry.match_prefix(token)
    if path is None:
        raise QueryDerivationError(
            method_name,
            f"no property matches '{token}' on {registry.entity_name} "
            f"(known: {', '.join(registry.names())})",
        )
    keyword: str = token[len(path.name):].lstrip("_")
    operator: Operator | None = OPERATORS.get(keyword)
    if operator is None:
        raise QueryDerivationError(
            method_name, f"unknown operator '{keyword}' for property '{path.name}'"
        )
    if path.is_relationship and not operator.relationship_safe:
        raise QueryDerivationError(
            method_name,
            f"operator '{keyword}' cannot be applied to relationship '{path.name}'",
        )
    return Criterion(path=path, operator=operator)


def _parse_order(method_name: str, token: str, registry: PropertyRegistry) -> tuple[PropertyPath, Direction]:
    direction: Direction = Direction.ASC
    for suffix in ("_asc", "_desc"):
        if token.endswith(suffix):
            direction = Direction.from_string(suffix[1:])
            token = token[: -len(suffix)]
            break
    if token not in registry:
        raise QueryDerivationError(method_name, f"cannot order by unknown property '{token}'")
    try:
        path: PropertyPath = registry.get(token)
    except PropertyReferenceError:
        raise QueryDerivationError(method_name, f"cannot order by relationship '{token}'")
    return path, direction


def _split_subject(rest: str, registry: PropertyRegistry) -> tuple[str | None, str] | None:
    # 속성 이름에 ``_by`` 포함 가능 (created_by) — 술어가 속성으로 시작하는 첫 분할
    # First split whose predicate starts with a known property; subject-less reading first
    candidates: list[tuple[str | None, str]] = []
    if rest.startswith("by_"):
        candidates.append((None, rest[len("by_"):]))
    position: int = rest.find("_by_")
    while position > 0:
        candidates.append((rest[:position], rest[position + len("_by_"):]))
        position = rest.find("_by_", position + 1)
    if not candidates:
        return None
    for subject, predicate in candidates:
        if registry.match_prefix(predicate) is not None:
            return subject, predicate
    return candidates[0]


def derive_query(method_name: str, registry: PropertyRegistry) -> QueryPlan:
    """메서드 이름을 해석해 실행 계획을 만듭니다.

    Parse ``method_name`` against ``registry`` into a ``QueryPlan``.

    Args:
        method_name: 선언된 메서드 이름 (Declared method name)
        registry: 대상 모델의 속성 목록 (Property registry of the model)

    Returns:
        QueryPlan: 파생된 실행 계획 (Derived plan)

    Raises:
        QueryDerivationError: 문법 오류, 모르는 속성/연산자, OR 사용
                              (Malformed name, unknown property/operator, OR)
    """
    match = _METHOD_PATTERN.match(method_name)
    split = _split_subject(match.group("rest"), registry) if match else None
    if split is None:
        raise QueryDerivationError(
            method_name, "expected '<find|count|exists>[_subject]_by_<criteria>'"
        )

    action: str = match.group("action")
    subject, body = split
    distinct, limit = _parse_subject(method_name, subject)
    predicate, _, order_part = body.partition("_order_by_")

    if _OR_PATTERN.search(predicate):
        raise QueryDerivationError(method_name, "OR clauses are not supported; combine criteria with _and_")
    if not predicate:
        raise QueryDerivationError(method_name, "empty criteria")

    criteria: list[Criterion] = []
    for token in predicate.split("_and_"):
        if not token:
            raise QueryDerivationError(method_name, "empty criterion between '_and_'")
        criteria.append(_parse_criterion(method_name, token, registry))

    orders: list[tuple[PropertyPath, Direction]] = []
    if order_part:
        if action != "find":
            raise QueryDerivationError(method_name, f"ordering is meaningless for '{action}'")
        orders = [_parse_order(method_name, token, registry) for token in order_part.split("_and_")]

    joins: list[InstrumentedAttribute[Any]] = []
    for path in [c.path for c in criteria] + [p for p, _ in orders]:
        _add_join(joins, path.join)

    return QueryPlan(
        method_name=method_name,
        action=action,
        criteria=tuple(criteria),
        orders=tuple(orders),
        distinct=distinct,
        limit=limit,
        joins=tuple(joins),
    )
