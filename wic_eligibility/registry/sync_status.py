"""Data freshness — last successful registry sync per state."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wic_eligibility.errors import RegistryUnavailableError
from wic_eligibility.models.sync_status import AplSyncStatus
from wic_eligibility.schemas.apl import SyncFreshness

logger = logging.getLogger(__name__)


class SyncStatusReader:
    """Reads the ingestion bookkeeping table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_freshness(self, state: str) -> SyncFreshness | None:
        """Most recent successful sync for `state`, or None if it never synced."""
        state = state.strip().upper()
        stmt = (
            select(AplSyncStatus.last_success_at)
            .where(AplSyncStatus.state == state, AplSyncStatus.last_success_at.is_not(None))
            .order_by(AplSyncStatus.last_success_at.desc())
            .limit(1)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                last_success = result.scalar_one_or_none()
        except (SQLAlchemyError, OSError) as exc:
            raise RegistryUnavailableError(str(exc) or type(exc).__name__) from exc

        if last_success is None:
            return None
        return SyncFreshness(state=state, last_sync=last_success)
