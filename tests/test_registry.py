"""Tests for the Approved Product Registry and sync-status reader.

The async session factory is mocked; assertions cover tie-breaking, batch
resolution with a single query, alternatives, and error translation.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from wic_eligibility.errors import RegistryUnavailableError
from wic_eligibility.models.apl_entry import AplEntry
from wic_eligibility.registry.queries import ApprovedProductRegistry, candidate_codes, pick_current
from wic_eligibility.registry.sync_status import SyncStatusReader
from wic_eligibility.schemas.apl import ApprovedProductEntry

AS_OF = datetime(2025, 6, 1, tzinfo=UTC)

# ── Helpers ──────────────────────────────────────────────────────────


def _row(upc: str, *, verified: bool = False, updated: datetime | None = None, **overrides) -> AplEntry:
    data = {
        "id": uuid.uuid4(),
        "state": "MI",
        "upc": upc,
        "eligible": True,
        "benefit_category": "cereal",
        "participant_types": ["child"],
        "effective_date": datetime(2024, 1, 1, tzinfo=UTC),
        "data_source": "fis",
        "verified": verified,
        "created_at": datetime(2024, 1, 1, tzinfo=UTC),
        "updated_at": updated or datetime(2024, 1, 1, tzinfo=UTC),
    }
    data.update(overrides)
    return AplEntry(**data)


def _make_factory(rows: list | None = None, scalar=None, side_effect=None) -> tuple[MagicMock, AsyncMock]:
    """Build a mock async_sessionmaker whose sessions return `rows`."""
    result = MagicMock()
    result.scalars.return_value.all.return_value = rows or []
    result.scalar_one_or_none.return_value = scalar

    session = AsyncMock()
    session.execute = AsyncMock(return_value=result, side_effect=side_effect)

    factory = MagicMock()
    factory.return_value.__aenter__ = AsyncMock(return_value=session)
    factory.return_value.__aexit__ = AsyncMock(return_value=False)
    return factory, session


def _in_params(session: AsyncMock) -> list[list[str]]:
    """List-valued bind parameters (IN clauses) of the executed statement."""
    stmt = session.execute.call_args.args[0]
    return [v for v in stmt.compile().params.values() if isinstance(v, list)]


# ── Pure helpers ─────────────────────────────────────────────────────


class TestCandidateCodes:
    def test_includes_raw_input(self):
        assert candidate_codes("0-16000-27528-7") == [
            "016000275287",
            "0016000275287",
            "16000275287",
            "0-16000-27528-7",
        ]

    def test_no_duplicates(self):
        assert candidate_codes("016000275287") == ["016000275287", "0016000275287", "16000275287"]

    def test_upce_expanded_and_padded(self):
        codes = candidate_codes("04252614")
        assert codes[0] == "042100005264"
        assert "000004252614" in codes
        assert "04252614" in codes


class TestPickCurrent:
    def _entry(self, verified: bool, updated: datetime | None) -> ApprovedProductEntry:
        return ApprovedProductEntry(
            state="MI",
            code="016000275287",
            eligible=True,
            category="cereal",
            effective_date=datetime(2024, 1, 1, tzinfo=UTC),
            verified=verified,
            updated_at=updated,
        )

    def test_verified_beats_newer(self):
        verified = self._entry(True, datetime(2024, 1, 1, tzinfo=UTC))
        newer = self._entry(False, datetime(2025, 1, 1, tzinfo=UTC))
        assert pick_current([newer, verified]) is verified

    def test_newest_among_equals(self):
        old = self._entry(True, datetime(2024, 1, 1, tzinfo=UTC))
        new = self._entry(True, datetime(2025, 1, 1, tzinfo=UTC))
        assert pick_current([old, new]) is new

    def test_missing_timestamp_sorts_oldest(self):
        undated = self._entry(False, None)
        dated = self._entry(False, datetime(2024, 1, 1, tzinfo=UTC))
        assert pick_current([undated, dated]) is dated

    def test_empty(self):
        assert pick_current([]) is None


# ── lookup ───────────────────────────────────────────────────────────


class TestLookup:
    @pytest.mark.asyncio()
    async def test_found(self):
        factory, _ = _make_factory([_row("016000275287")])
        entry = await ApprovedProductRegistry(factory).lookup("16000275287", "mi", AS_OF)
        assert entry is not None
        assert entry.code == "016000275287"
        assert entry.state == "MI"
        assert entry.participant_types[0].value == "child"

    @pytest.mark.asyncio()
    async def test_not_found(self):
        factory, _ = _make_factory([])
        assert await ApprovedProductRegistry(factory).lookup("016000275287", "MI", AS_OF) is None

    @pytest.mark.asyncio()
    async def test_queries_all_variants(self):
        factory, session = _make_factory([])
        await ApprovedProductRegistry(factory).lookup("0-16000-27528-7", "MI", AS_OF)
        session.execute.assert_awaited_once()
        assert ["016000275287", "0016000275287", "16000275287", "0-16000-27528-7"] in _in_params(session)

    @pytest.mark.asyncio()
    async def test_upce_scan_matches_upc_a_row(self):
        factory, session = _make_factory([_row("042100005264")])
        entry = await ApprovedProductRegistry(factory).lookup("04252614", "MI", AS_OF)
        assert entry.code == "042100005264"
        assert any("042100005264" in params for params in _in_params(session))

    @pytest.mark.asyncio()
    async def test_verified_row_wins(self):
        rows = [
            _row("0016000275287", verified=False, updated=datetime(2025, 5, 1, tzinfo=UTC)),
            _row("016000275287", verified=True, updated=datetime(2024, 2, 1, tzinfo=UTC)),
        ]
        factory, _ = _make_factory(rows)
        entry = await ApprovedProductRegistry(factory).lookup("016000275287", "MI", AS_OF)
        assert entry.verified is True
        assert entry.code == "016000275287"

    @pytest.mark.asyncio()
    async def test_malformed_row_skipped(self):
        bad = _row(
            "016000275287",
            verified=True,
            effective_date=datetime(2025, 1, 1, tzinfo=UTC),
            expiration_date=datetime(2024, 1, 1, tzinfo=UTC),
        )
        good = _row("016000275287")
        factory, _ = _make_factory([bad, good])
        entry = await ApprovedProductRegistry(factory).lookup("016000275287", "MI", AS_OF)
        assert entry.verified is False

    @pytest.mark.asyncio()
    async def test_malformed_row_logged_as_error(self, caplog):
        bad = _row(
            "016000275287",
            source_hash="ab12cd34",
            effective_date=datetime(2025, 1, 1, tzinfo=UTC),
            expiration_date=datetime(2024, 1, 1, tzinfo=UTC),
        )
        factory, _ = _make_factory([bad])
        with caplog.at_level(logging.WARNING, logger="wic_eligibility.registry.queries"):
            assert await ApprovedProductRegistry(factory).lookup("016000275287", "MI", AS_OF) is None

        records = [r for r in caplog.records if r.name == "wic_eligibility.registry.queries"]
        assert len(records) == 1
        assert records[0].levelno == logging.ERROR
        assert "source_hash=ab12cd34" in records[0].getMessage()
        assert str(bad.id) in records[0].getMessage()

    @pytest.mark.asyncio()
    async def test_database_error(self):
        factory, _ = _make_factory(side_effect=OperationalError("SELECT", {}, Exception("connection lost")))
        with pytest.raises(RegistryUnavailableError):
            await ApprovedProductRegistry(factory).lookup("016000275287", "MI", AS_OF)

    @pytest.mark.asyncio()
    async def test_connection_refused(self):
        factory, _ = _make_factory()
        factory.return_value.__aenter__ = AsyncMock(side_effect=ConnectionRefusedError("refused"))
        with pytest.raises(RegistryUnavailableError):
            await ApprovedProductRegistry(factory).lookup("016000275287", "MI", AS_OF)

    @pytest.mark.asyncio()
    async def test_timeout(self):
        factory, _ = _make_factory(side_effect=asyncio.TimeoutError())
        with pytest.raises(RegistryUnavailableError):
            await ApprovedProductRegistry(factory).lookup("016000275287", "MI", AS_OF)


# ── lookup_many ──────────────────────────────────────────────────────


class TestLookupMany:
    @pytest.mark.asyncio()
    async def test_single_query_keyed_by_input(self):
        rows = [
            _row("016000275287"),
            _row("0041220576074", benefit_category="milk"),
        ]
        factory, session = _make_factory(rows)
        codes = ["16000275287", "041220576074", "099999999999"]
        result = await ApprovedProductRegistry(factory).lookup_many(codes, "MI", AS_OF)

        session.execute.assert_awaited_once()
        assert list(result) == codes
        assert result["16000275287"].code == "016000275287"
        assert result["041220576074"].category == "milk"
        assert result["099999999999"] is None

    @pytest.mark.asyncio()
    async def test_tie_break_per_code(self):
        rows = [
            _row("016000275287", verified=False, updated=datetime(2025, 1, 1, tzinfo=UTC)),
            _row("16000275287", verified=True, updated=datetime(2024, 1, 1, tzinfo=UTC)),
        ]
        factory, _ = _make_factory(rows)
        result = await ApprovedProductRegistry(factory).lookup_many(["016000275287"], "MI", AS_OF)
        assert result["016000275287"].verified is True

    @pytest.mark.asyncio()
    async def test_empty_input_no_query(self):
        factory, session = _make_factory()
        assert await ApprovedProductRegistry(factory).lookup_many([], "MI") == {}
        session.execute.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_error(self):
        factory, _ = _make_factory(side_effect=OperationalError("SELECT", {}, Exception("down")))
        with pytest.raises(RegistryUnavailableError):
            await ApprovedProductRegistry(factory).lookup_many(["016000275287"], "MI", AS_OF)


# ── find_alternatives ────────────────────────────────────────────────


class TestFindAlternatives:
    @pytest.mark.asyncio()
    async def test_returns_codes(self):
        factory, _ = _make_factory([_row("011111111111"), _row("022222222222")])
        codes = await ApprovedProductRegistry(factory).find_alternatives("MI", "Cereal", exclude=["016000275287"])
        assert codes == ["011111111111", "022222222222"]

    @pytest.mark.asyncio()
    async def test_excluded_and_duplicates_dropped(self):
        rows = [_row("016000275287"), _row("011111111111"), _row("011111111111")]
        factory, _ = _make_factory(rows)
        codes = await ApprovedProductRegistry(factory).find_alternatives("MI", "cereal", exclude=["016000275287"])
        assert codes == ["011111111111"]

    @pytest.mark.asyncio()
    async def test_limit(self):
        rows = [_row(f"0{i}1111111111") for i in range(1, 9)]
        factory, _ = _make_factory(rows)
        codes = await ApprovedProductRegistry(factory).find_alternatives("MI", "cereal", limit=3)
        assert len(codes) == 3

    @pytest.mark.asyncio()
    async def test_no_category_no_query(self):
        factory, session = _make_factory()
        assert await ApprovedProductRegistry(factory).find_alternatives("MI", "") == []
        session.execute.assert_not_awaited()


# ── Sync status ──────────────────────────────────────────────────────


class TestSyncStatusReader:
    @pytest.mark.asyncio()
    async def test_freshness(self):
        last = datetime(2025, 5, 31, 12, 0, tzinfo=UTC)
        factory, _ = _make_factory(scalar=last)
        freshness = await SyncStatusReader(factory).get_freshness("mi")
        assert freshness.state == "MI"
        assert freshness.last_sync == last
        assert freshness.data_age_seconds(AS_OF) == 12 * 3600

    @pytest.mark.asyncio()
    async def test_never_synced(self):
        factory, _ = _make_factory(scalar=None)
        assert await SyncStatusReader(factory).get_freshness("MI") is None

    @pytest.mark.asyncio()
    async def test_error(self):
        factory, _ = _make_factory(side_effect=OperationalError("SELECT", {}, Exception("down")))
        with pytest.raises(RegistryUnavailableError):
            await SyncStatusReader(factory).get_freshness("MI")

    def test_age_never_negative(self):
        from wic_eligibility.schemas.apl import SyncFreshness

        freshness = SyncFreshness(state="MI", last_sync=datetime(2025, 6, 2, tzinfo=UTC))
        assert freshness.data_age_seconds(AS_OF) == 0.0
