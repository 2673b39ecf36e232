"""Approved Product Registry — read-only queries against the APL table.

Every lookup matches all comparable variants of the input code plus the raw
string, restricted to rows current at ``as_of``. When several rows match,
verified rows win, then the most recently updated.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime

from pydantic import ValidationError
from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wic_eligibility.decoders.upc import normalize_upc
from wic_eligibility.errors import RegistryUnavailableError
from wic_eligibility.models.apl_entry import AplEntry
from wic_eligibility.schemas.apl import ApprovedProductEntry, as_utc

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=UTC)

# Transport failures surfaced to callers as RegistryUnavailableError.
_UNAVAILABLE = (SQLAlchemyError, OSError, asyncio.TimeoutError)


def candidate_codes(code: str) -> list[str]:
    """All strings a registry row may store for `code`, raw input included."""
    codes = normalize_upc(code).lookup_codes()
    if code and code not in codes:
        codes.append(code)
    return codes


def pick_current(entries: Iterable[ApprovedProductEntry]) -> ApprovedProductEntry | None:
    """Tie-break among matching rows: verified first, then newest ``updated_at``."""
    return max(
        entries,
        key=lambda e: (e.verified, e.updated_at or e.created_at or _EPOCH),
        default=None,
    )


def _current_at(as_of: datetime):
    return (
        AplEntry.effective_date <= as_of,
        or_(AplEntry.expiration_date.is_(None), AplEntry.expiration_date > as_of),
    )


def _to_entries(rows: Sequence[AplEntry]) -> list[ApprovedProductEntry]:
    entries = []
    for row in rows:
        try:
            entries.append(ApprovedProductEntry.from_row(row))
        except ValidationError as exc:
            logger.error(
                "Skipping malformed APL row %s (%s %s, source_hash=%s): %d validation errors",
                row.id,
                row.state,
                row.upc,
                row.source_hash,
                exc.error_count(),
            )
    return entries


class ApprovedProductRegistry:
    """Async read access to APL entries."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def _fetch(self, stmt) -> list[AplEntry]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())
        except _UNAVAILABLE as exc:
            logger.warning("APL registry query failed: %s", exc)
            raise RegistryUnavailableError(str(exc) or type(exc).__name__) from exc

    async def lookup(
        self,
        code: str,
        state: str,
        as_of: datetime | None = None,
    ) -> ApprovedProductEntry | None:
        """The authoritative entry for `code` in `state` at `as_of`, or None."""
        as_of = as_utc(as_of) if as_of is not None else datetime.now(UTC)
        state = state.strip().upper()
        stmt = (
            select(AplEntry)
            .where(
                AplEntry.state == state,
                AplEntry.upc.in_(candidate_codes(code)),
                *_current_at(as_of),
            )
            .order_by(AplEntry.verified.desc(), AplEntry.updated_at.desc())
        )
        rows = await self._fetch(stmt)
        return pick_current(_to_entries(rows))

    async def lookup_many(
        self,
        codes: Sequence[str],
        state: str,
        as_of: datetime | None = None,
    ) -> dict[str, ApprovedProductEntry | None]:
        """Resolve many codes with a single query.

        Keys are the caller's input codes; every input is present.
        """
        if not codes:
            return {}
        as_of = as_utc(as_of) if as_of is not None else datetime.now(UTC)
        state = state.strip().upper()

        candidates = {code: candidate_codes(code) for code in codes}
        all_codes = sorted({c for variants in candidates.values() for c in variants})
        stmt = select(AplEntry).where(
            AplEntry.state == state,
            AplEntry.upc.in_(all_codes),
            *_current_at(as_of),
        )
        entries = _to_entries(await self._fetch(stmt))

        by_code: dict[str, list[ApprovedProductEntry]] = {}
        for entry in entries:
            by_code.setdefault(entry.code, []).append(entry)

        return {
            code: pick_current(e for variant in variants for e in by_code.get(variant, ()))
            for code, variants in candidates.items()
        }

    async def find_alternatives(
        self,
        state: str,
        category: str,
        limit: int = 5,
        exclude: Iterable[str] = (),
        as_of: datetime | None = None,
    ) -> list[str]:
        """Codes currently eligible in the same category, excluding `exclude`."""
        if not category or limit <= 0:
            return []
        as_of = as_utc(as_of) if as_of is not None else datetime.now(UTC)
        excluded = set(exclude)

        stmt = (
            select(AplEntry)
            .where(
                AplEntry.state == state.strip().upper(),
                func.lower(AplEntry.benefit_category) == category.strip().lower(),
                AplEntry.eligible.is_(True),
                *_current_at(as_of),
            )
            .order_by(AplEntry.verified.desc(), AplEntry.updated_at.desc())
        )
        if excluded:
            stmt = stmt.where(AplEntry.upc.not_in(sorted(excluded)))
        stmt = stmt.limit(limit)

        rows = await self._fetch(stmt)
        alternatives: list[str] = []
        for row in rows:
            if row.upc not in excluded and row.upc not in alternatives:
                alternatives.append(row.upc)
        return alternatives[:limit]
