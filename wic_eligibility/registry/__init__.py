"""Approved Product Registry access (read-only)."""

from __future__ import annotations

from wic_eligibility.registry.queries import ApprovedProductRegistry, candidate_codes, pick_current
from wic_eligibility.registry.sync_status import SyncStatusReader

__all__ = [
    "ApprovedProductRegistry",
    "SyncStatusReader",
    "candidate_codes",
    "pick_current",
]
