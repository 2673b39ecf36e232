"""Domain enums used across SQLAlchemy models and Pydantic schemas.

All enums use str mixin for JSON serialization and PostgreSQL string columns.
"""

from __future__ import annotations

from enum import Enum


class ParticipantType(str, Enum):
    """WIC household-member category — restricts who may redeem a product."""

    PREGNANT = "pregnant"
    POSTPARTUM = "postpartum"
    BREASTFEEDING = "breastfeeding"
    INFANT = "infant"
    CHILD = "child"


# Declaration order is the canonical display order.
ALL_PARTICIPANT_TYPES: tuple[ParticipantType, ...] = tuple(ParticipantType)


class DataSource(str, Enum):
    """Origin of an APL entry, for provenance tracking."""

    FIS = "fis"              # FIS processor (Michigan, Florida)
    CONDUENT = "conduent"    # Conduent processor (North Carolina)
    STATE = "state"          # State-specific system (Oregon)
    MANUAL = "manual"
    USDA = "usda"            # USDA National UPC Database


class SizeUnit(str, Enum):
    """Units accepted on size restrictions."""

    OZ = "oz"
    LB = "lb"
    G = "g"
    KG = "kg"
    GAL = "gal"
    QT = "qt"
    PT = "pt"
    ML = "ml"
    L = "l"
    CT = "ct"
    DOZ = "doz"


class SyncStatus(str, Enum):
    """Outcome of the last registry ingestion run for a state."""

    SUCCESS = "success"
    FAILURE = "failure"
    PARTIAL = "partial"
    PENDING = "pending"


class Processor(str, Enum):
    """eWIC payment processor used by a state."""

    FIS = "fis"
    CONDUENT = "conduent"
    STATE = "state"
    JPMC = "jpmc"
    XEROX = "xerox"
