"""AplSyncStatus model — per-state ingestion health, read for data freshness."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from wic_eligibility.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from wic_eligibility.models.enums import SyncStatus


class AplSyncStatus(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Sync bookkeeping written by the ingestion jobs."""

    __tablename__ = "apl_sync_status"

    state: Mapped[str] = mapped_column(String(2), nullable=False, index=True)
    data_source: Mapped[str] = mapped_column(String(20), nullable=False)

    last_sync_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_success_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_sync_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SyncStatus.PENDING.value
    )
    last_sync_error: Mapped[str | None] = mapped_column(Text)
    consecutive_failures: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<AplSyncStatus state={self.state} status={self.last_sync_status}>"
