"""감사(Auditing) 작성자 제공 모듈.

Auditor provider module.
Resolves who is creating or modifying a record. A request (or a test) may bind
an auditor with ``auditor_scope``; otherwise a random UUID string is used.
"""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

# 현재 작업자 — Current auditor for the running task/request
_current_auditor: ContextVar[str | None] = ContextVar("current_auditor", default=None)


def get_current_auditor() -> str:
    """현재 작업자 식별자를 반환합니다.

    Return the bound auditor, or a fresh random UUID string when none is bound.
    """
    auditor: str | None = _current_auditor.get()
    if auditor is None:
        return str(uuid.uuid4())
    return auditor


@contextmanager
def auditor_scope(auditor: str) -> Iterator[None]:
    """블록 안에서 작업자를 고정합니다 (Bind an auditor for the enclosed block)."""
    token = _current_auditor.set(auditor)
    try:
        yield
    finally:
        _current_auditor.reset(token)
