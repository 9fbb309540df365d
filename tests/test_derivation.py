"""쿼리 파생 테스트 — 메서드 이름 해석과 등록 시점 오류.

Query derivation tests — method name parsing and registration-time errors.
"""

import pytest

from app.models import Member, Team
from app.repositories.base import BaseRepository
from app.repositories.derivation import PropertyRegistry, derive_query
from app.repositories.query_methods import derived_query, query
from app.utils.exceptions import PropertyReferenceError, QueryDerivationError
from app.utils.pagination import Direction

registry = PropertyRegistry(Member)


class TestPropertyRegistry:
    """속성 목록 테스트."""

    def test_columns_and_paths(self):
        assert "username" in registry
        assert "team" in registry
        assert "team_name" in registry
        assert "nickname" not in registry

    def test_direct_column_wins(self):
        """team_id 는 직접 FK 컬럼으로 해석 (조인 없음)."""
        path = registry.get("team_id")
        assert path.join is None
        assert path.attribute is Member.team_id

    def test_dotted_sort_property(self):
        path = registry.get("team.name")
        assert path.attribute is Team.name
        assert path.join is Member.team

    def test_unknown_property(self):
        with pytest.raises(PropertyReferenceError) as exc_info:
            registry.get("nickname")
        assert exc_info.value.property_name == "nickname"
        assert exc_info.value.entity_name == "Member"

    def test_relationship_is_not_sortable(self):
        with pytest.raises(PropertyReferenceError):
            registry.get("team")


class TestDeriveQuery:
    """메서드 이름 해석 테스트."""

    def test_two_criteria(self):
        plan = derive_query("find_by_username_and_age_greater_than", registry)
        assert plan.action == "find"
        assert [c.path.name for c in plan.criteria] == ["username", "age"]
        assert [c.operator.keyword for c in plan.criteria] == ["", "greater_than"]
        assert plan.arity == 2
        assert plan.joins == ()

    def test_between_takes_two_arguments(self):
        plan = derive_query("find_by_age_between", registry)
        assert plan.arity == 2

    def test_null_checks_take_no_arguments(self):
        plan = derive_query("find_by_team_is_null", registry)
        assert plan.arity == 0
        assert plan.criteria[0].path.is_relationship

    def test_subject_limit_and_ordering(self):
        plan = derive_query("find_first3_by_age_order_by_username_desc", registry)
        assert plan.limit == 3
        assert [(p.name, d) for p, d in plan.orders] == [("username", Direction.DESC)]

    def test_top_defaults_to_one(self):
        assert derive_query("find_top_by_age", registry).limit == 1

    def test_distinct_with_join(self):
        plan = derive_query("find_distinct_by_team_name", registry)
        assert plan.distinct is True
        assert len(plan.joins) == 1
        assert plan.joins[0] is Member.team

    def test_count_and_exists(self):
        assert derive_query("count_by_age", registry).action == "count"
        assert derive_query("exists_by_username", registry).action == "exists"

    def test_descriptive_subject_is_ignored(self):
        plan = derive_query("find_member_by_username", registry)
        assert plan.limit is None
        assert plan.distinct is False

    def test_audit_properties_ending_in_by(self):
        plan = derive_query("find_by_created_by_and_age", registry)
        assert [c.path.name for c in plan.criteria] == ["created_by", "age"]
        assert plan.arity == 2

    def test_count_with_last_modified_by(self):
        plan = derive_query("count_by_last_modified_by_and_age_greater_than", registry)
        assert plan.action == "count"
        assert [c.path.name for c in plan.criteria] == ["last_modified_by", "age"]
        assert [c.operator.keyword for c in plan.criteria] == ["", "greater_than"]

    def test_order_after_property_ending_in_by(self):
        plan = derive_query("find_by_created_by_order_by_age", registry)
        assert [c.path.name for c in plan.criteria] == ["created_by"]
        assert [(p.name, d) for p, d in plan.orders] == [("age", Direction.ASC)]

    def test_subject_before_property_ending_in_by(self):
        plan = derive_query("find_first2_by_created_by", registry)
        assert plan.limit == 2
        assert [c.path.name for c in plan.criteria] == ["created_by"]

    def test_wrong_arity(self):
        plan = derive_query("find_by_username", registry)
        with pytest.raises(TypeError):
            plan.where([])

    @pytest.mark.parametrize(
        "method_name",
        [
            "find_by_nickname",
            "find_by_age_around",
            "find_by_username_or_age",
            "find_by_team_greater_than",
            "find_by_username_order_by_team",
            "find_by_username_order_by_nickname",
            "count_by_age_order_by_username",
            "find_by_username_and_",
            "delete_by_username",
            "find_username",
        ],
    )
    def test_invalid_names(self, method_name: str):
        with pytest.raises(QueryDerivationError) as exc_info:
            derive_query(method_name, registry)
        assert exc_info.value.method_name == method_name


class TestRegistration:
    """레포지토리 생성 시점에 선언 오류가 드러나는지 테스트."""

    def test_audit_property_names_compile(self):
        class AuditRepository(BaseRepository[Member]):
            find_by_created_by_and_age = derived_query()
            count_by_last_modified_by_and_age_greater_than = derived_query()
            find_by_created_by_order_by_age = derived_query()

        repository = AuditRepository(Member)
        assert set(repository._query_methods) == {
            "find_by_created_by_and_age",
            "count_by_last_modified_by_and_age_greater_than",
            "find_by_created_by_order_by_age",
        }

    def test_unknown_property_fails_at_construction(self):
        class BrokenRepository(BaseRepository[Member]):
            find_by_nickname = derived_query()

        with pytest.raises(QueryDerivationError, match="find_by_nickname"):
            BrokenRepository(Member)

    def test_or_clause_fails_at_construction(self):
        class BrokenRepository(BaseRepository[Member]):
            find_by_username_or_age = derived_query()

        with pytest.raises(QueryDerivationError):
            BrokenRepository(Member)

    def test_unknown_entity_graph(self):
        class BrokenRepository(BaseRepository[Member]):
            find_by_username = derived_query(entity_graph=("club",))

        with pytest.raises(QueryDerivationError):
            BrokenRepository(Member)

    def test_invalid_return_kind(self):
        class BrokenRepository(BaseRepository[Member]):
            find_by_username = derived_query(returns="stream")

        with pytest.raises(QueryDerivationError):
            BrokenRepository(Member)

    def test_empty_explicit_query(self):
        class BrokenRepository(BaseRepository[Member]):
            find_everyone = query("  ")

        with pytest.raises(QueryDerivationError):
            BrokenRepository(Member)

    def test_expanding_parameter_not_in_query(self):
        class BrokenRepository(BaseRepository[Member]):
            find_by_names = query("SELECT * FROM member WHERE username = :name", expanding=("names",))

        with pytest.raises(QueryDerivationError):
            BrokenRepository(Member)

    def test_plain_override_removes_declaration(self):
        class ParentRepository(BaseRepository[Member]):
            find_by_username = derived_query()

        class ChildRepository(ParentRepository):
            async def find_by_username(self, db, username):
                return []

        repository = ChildRepository(Member)
        assert "find_by_username" not in repository._query_methods

    def test_valid_declarations_compile(self):
        class SampleRepository(BaseRepository[Member]):
            find_by_age_between = derived_query()
            find_user = query("SELECT * FROM member WHERE username = :username AND age = :age")

        repository = SampleRepository(Member)
        assert repository.find_by_age_between.plan.arity == 2
        assert repository.find_user.param_names == ["username", "age"]
