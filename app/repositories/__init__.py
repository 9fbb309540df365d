"""레포지토리 패키지 — 데이터베이스 쿼리 계층.

Repository package — Database query layer.
Each repository extends BaseRepository for generic CRUD, paging and bulk
updates, and declares its domain queries as ``derived_query()`` / ``query()``
class attributes compiled when the singleton is created.
"""
