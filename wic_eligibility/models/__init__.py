"""SQLAlchemy ORM models for the APL registry.

Import all models here so Alembic and Base.metadata.create_all() discover them.
"""

from __future__ import annotations

from wic_eligibility.models.apl_entry import AplEntry
from wic_eligibility.models.base import Base
from wic_eligibility.models.enums import (
    DataSource,
    ParticipantType,
    Processor,
    SizeUnit,
    SyncStatus,
)
from wic_eligibility.models.sync_status import AplSyncStatus

__all__ = [
    "Base",
    "AplEntry",
    "AplSyncStatus",
    "DataSource",
    "ParticipantType",
    "Processor",
    "SizeUnit",
    "SyncStatus",
]
