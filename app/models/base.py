"""공통 감사 컬럼 믹스인.

Audit column mixin shared by domain models.
Adds creation/modification timestamps and authors. Values are filled by
mapper events on flush, so only ORM-level inserts/updates are audited;
bulk UPDATE statements bypass these hooks.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, String, event
from sqlalchemy.orm import Mapped, mapped_column

from app.utils.auditing import get_current_auditor


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditMixin:
    """생성/수정 일시와 작성자를 기록하는 믹스인.

    Attributes:
        created_by: 최초 작성자 (Creator, never updated)
        created_date: 생성 일시 UTC (Creation timestamp)
        last_modified_by: 마지막 수정자 (Last modifier)
        last_modified_date: 수정 일시 UTC (Last modification timestamp)
    """

    # 작성자 — insert 시에만 기록 (Creator, written on insert only)
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    # 생성 일시 — Record creation timestamp (UTC)
    created_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    # 수정자 — Last modifier
    last_modified_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    # 수정 일시 — Last modification timestamp (UTC)
    last_modified_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


@event.listens_for(AuditMixin, "before_insert", propagate=True)
def _audit_before_insert(mapper, connection, target: AuditMixin) -> None:
    now: datetime = _utcnow()
    auditor: str = get_current_auditor()
    target.created_date = now
    target.last_modified_date = now
    target.created_by = auditor
    target.last_modified_by = auditor


@event.listens_for(AuditMixin, "before_update", propagate=True)
def _audit_before_update(mapper, connection, target: AuditMixin) -> None:
    target.last_modified_date = _utcnow()
    target.last_modified_by = get_current_auditor()
