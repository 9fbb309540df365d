"""회원 API 테스트.

Member API tests — plain-text single lookups and the paged listing with its
lenient pageable parsing.
"""

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models import Member, Team
from app.seed import seed_members

URL = "/members"


class TestFindMember:
    """단건 조회 테스트."""

    async def test_find_member(self, client: AsyncClient, db: AsyncSession):
        (member,) = await seed_members(db, count=1)
        res = await client.get(f"{URL}/{member.id}")
        assert res.status_code == 200
        assert res.text == "member0"
        assert res.headers["content-type"].startswith("text/plain")

    async def test_find_member_not_found(self, client: AsyncClient):
        """없는 회원은 404."""
        res = await client.get(f"{URL}/999")
        assert res.status_code == 404
        assert "999" in res.json()["detail"]

    async def test_find_member2(self, client: AsyncClient, db: AsyncSession):
        (member,) = await seed_members(db, count=1)
        res = await client.get(f"/members2/{member.id}")
        assert res.status_code == 200
        assert res.text == "member0"

    async def test_find_member2_not_found(self, client: AsyncClient):
        res = await client.get("/members2/999")
        assert res.status_code == 404

    async def test_non_integer_id(self, client: AsyncClient):
        res = await client.get(f"{URL}/abc")
        assert res.status_code == 422


class TestListMembers:
    """목록 조회 테스트."""

    async def test_defaults(self, client: AsyncClient, db: AsyncSession):
        """기본값 — size 12, username 내림차순."""
        await seed_members(db, count=15)
        res = await client.get(URL)
        assert res.status_code == 200
        data = res.json()
        assert data["size"] == 12
        assert data["number"] == 0
        assert data["totalElements"] == 15
        assert data["totalPages"] == 2
        assert data["numberOfElements"] == 12
        assert data["first"] is True
        assert data["hasNext"] is True
        # 문자열 정렬 — member9 > member8 > ... > member14 > ... > member0
        usernames = [m["username"] for m in data["content"]]
        assert usernames[:3] == ["member9", "member8", "member7"]
        assert usernames[-1] == "member11"

    async def test_page_size_sort(self, client: AsyncClient, db: AsyncSession):
        await seed_members(db, count=15)
        res = await client.get(URL, params={"page": 1, "size": 5, "sort": "age,asc"})
        assert res.status_code == 200
        data = res.json()
        assert [m["username"] for m in data["content"]] == [f"member{i}" for i in range(5, 10)]
        assert data["hasPrevious"] is True

    async def test_repeated_sort(self, client: AsyncClient, db: AsyncSession):
        await seed_members(db, count=4)
        res = await client.get(URL, params=[("sort", "age,desc"), ("sort", "username")])
        assert res.status_code == 200
        assert [m["username"] for m in res.json()["content"]] == ["member3", "member2", "member1", "member0"]

    async def test_dto_shape(self, client: AsyncClient, db: AsyncSession):
        """팀 이름은 teamName, 팀 없으면 null."""
        team = Team(name="teamA")
        db.add_all([team, Member(username="member1", age=10, team=team), Member(username="member2", age=20)])
        await db.flush()

        res = await client.get(URL, params={"sort": "username"})
        content = res.json()["content"]
        assert set(content[0]) == {"id", "username", "teamName"}
        assert [(m["username"], m["teamName"]) for m in content] == [
            ("member1", "teamA"),
            ("member2", None),
        ]

    async def test_sort_by_team_name(self, client: AsyncClient, db: AsyncSession):
        team_a, team_b = Team(name="teamA"), Team(name="teamB")
        db.add_all([
            team_a,
            team_b,
            Member(username="x", age=1, team=team_b),
            Member(username="y", age=2, team=team_a),
        ])
        await db.flush()

        res = await client.get(URL, params={"sort": "team.name,asc"})
        assert res.status_code == 200
        assert [m["teamName"] for m in res.json()["content"]] == ["teamA", "teamB"]

    async def test_negative_page_becomes_zero(self, client: AsyncClient, db: AsyncSession):
        await seed_members(db, count=3)
        res = await client.get(URL, params={"page": -1})
        assert res.status_code == 200
        assert res.json()["number"] == 0

    async def test_non_positive_size_uses_default(self, client: AsyncClient, db: AsyncSession):
        await seed_members(db, count=3)
        res = await client.get(URL, params={"size": 0})
        assert res.json()["size"] == 12

    async def test_size_capped(self, client: AsyncClient, db: AsyncSession):
        await seed_members(db, count=3)
        res = await client.get(URL, params={"size": settings.MAX_PAGE_SIZE + 1})
        assert res.json()["size"] == settings.MAX_PAGE_SIZE

    async def test_unknown_sort_property(self, client: AsyncClient, db: AsyncSession):
        """모르는 정렬 속성은 400."""
        await seed_members(db, count=3)
        res = await client.get(URL, params={"sort": "nickname,desc"})
        assert res.status_code == 400
        assert "nickname" in res.json()["detail"]

    async def test_direction_without_property(self, client: AsyncClient):
        res = await client.get(URL, params={"sort": "desc"})
        assert res.status_code == 400

    async def test_empty(self, client: AsyncClient):
        res = await client.get(URL)
        assert res.status_code == 200
        data = res.json()
        assert data["content"] == []
        assert data["empty"] is True
        assert data["totalElements"] == 0


async def test_health(client: AsyncClient):
    res = await client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}
