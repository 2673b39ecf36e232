"""Eligibility lookup service — orchestrates normalizer, cache, registry and engine.

Steps for a single check:
1. Validate the call and normalize the code (invalid → InvalidProductCodeError)
2. Check the Redis cache (key: "apl:{state}:{upc12}", TTL from settings)
3. On miss: query the registry, collapsing concurrent lookups of the same key
4. Cache the answer, including "not found"
5. Evaluate with the rules engine, then attach alternatives and data freshness

Registry outages never raise out of a check: they become an ``unknown``
verdict with the error recorded.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from datetime import UTC, datetime

from wic_eligibility.decoders.upc import normalize_upc
from wic_eligibility.eligibility.cache import EntryCache
from wic_eligibility.eligibility.engine import EligibilityRulesEngine
from wic_eligibility.errors import InvalidProductCodeError, RegistryUnavailableError, UnsupportedStateError
from wic_eligibility.policy.registry import StatePolicyRegistry
from wic_eligibility.registry.queries import ApprovedProductRegistry
from wic_eligibility.registry.sync_status import SyncStatusReader
from wic_eligibility.schemas.apl import ApprovedProductEntry, CodeVariantSet, SyncFreshness, as_utc
from wic_eligibility.schemas.eligibility import (
    EligibilityCheckResponse,
    EligibilityEvaluation,
    EligibilityStatus,
    HouseholdContext,
    ProductFacts,
)

logger = logging.getLogger(__name__)

DEFAULT_ALTERNATIVES_LIMIT = 5

_LookupKey = tuple[str, str, datetime | None]


class EligibilityService:
    """Public entry point for eligibility checks."""

    def __init__(
        self,
        registry: ApprovedProductRegistry,
        engine: EligibilityRulesEngine,
        cache: EntryCache | None = None,
        sync_status: SyncStatusReader | None = None,
        policies: StatePolicyRegistry | None = None,
        alternatives_limit: int = DEFAULT_ALTERNATIVES_LIMIT,
    ) -> None:
        self._registry = registry
        self._engine = engine
        self._cache = cache
        self._sync_status = sync_status
        self._policies = policies
        self._alternatives_limit = alternatives_limit
        self._inflight: dict[_LookupKey, asyncio.Task[ApprovedProductEntry | None]] = {}

    # ── Policy passthrough ───────────────────────────────────────────

    def is_state_supported(self, state: str) -> bool:
        return self._policies is not None and self._policies.is_supported(state)

    def supported_states(self) -> list[str]:
        return self._policies.supported_states() if self._policies else []

    def policy_summary(self, state: str) -> str:
        if self._policies is None:
            return f"State {state.strip().upper()} is not currently supported."
        return self._policies.policy_summary(state)

    def require_supported_state(self, state: str) -> str:
        """Normalized state code, or UnsupportedStateError."""
        normalized = state.strip().upper()
        if not self.is_state_supported(normalized):
            raise UnsupportedStateError(normalized)
        return normalized

    async def clear_cache(self) -> int:
        if self._cache is None:
            return 0
        return await self._cache.clear()

    # ── Registry resolution ──────────────────────────────────────────

    def _cacheable(self, use_cache: bool, as_of: datetime | None) -> bool:
        # Historical lookups bypass the cache: keys carry no timestamp.
        return self._cache is not None and use_cache and as_of is None

    async def _fetch_and_store(
        self,
        state: str,
        variants: CodeVariantSet,
        as_of: datetime | None,
        store: bool,
    ) -> ApprovedProductEntry | None:
        entry = await self._registry.lookup(variants.original, state, as_of)
        if store and self._cache is not None:
            await self._cache.set(state, variants.upc12, entry)
        return entry

    def _forget(self, key: _LookupKey, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _resolve(
        self,
        state: str,
        variants: CodeVariantSet,
        use_cache: bool,
        as_of: datetime | None,
    ) -> tuple[ApprovedProductEntry | None, bool]:
        """(entry, from_cache). Raises RegistryUnavailableError."""
        cacheable = self._cacheable(use_cache, as_of)
        if cacheable:
            cached = await self._cache.get(state, variants.upc12)
            if cached is not None:
                logger.debug("APL cache hit: %s %s", state, variants.upc12)
                return cached.entry, True

        key = (state, variants.upc12, as_of)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(self._fetch_and_store(state, variants, as_of, cacheable))
            self._inflight[key] = task
            task.add_done_callback(lambda t: self._forget(key, t))
        else:
            logger.debug("Joining in-flight lookup: %s %s", state, variants.upc12)
        return await asyncio.shield(task), False

    async def _freshness(self, state: str) -> SyncFreshness | None:
        if self._sync_status is None:
            return None
        try:
            return await self._sync_status.get_freshness(state)
        except RegistryUnavailableError:
            logger.warning("Could not read sync status for %s", state)
            return None

    async def _alternatives(
        self,
        state: str,
        category: str | None,
        variants: CodeVariantSet,
    ) -> list[str]:
        if not category:
            return []
        try:
            return await self._registry.find_alternatives(
                state,
                category,
                limit=self._alternatives_limit,
                exclude=variants.lookup_codes(),
            )
        except RegistryUnavailableError:
            logger.warning("Alternatives lookup failed for %s in %s", category, state)
            return []

    # ── Verdict construction ─────────────────────────────────────────

    @staticmethod
    def _unknown(code: str, state: str, error: Exception, as_of: datetime) -> EligibilityEvaluation:
        return EligibilityEvaluation(
            eligible=False,
            status=EligibilityStatus.UNKNOWN,
            code=code,
            state=state,
            confidence=0,
            evaluated_at=as_of,
            error=str(error) or type(error).__name__,
        )

    @staticmethod
    def _invalid(error: InvalidProductCodeError, state: str, as_of: datetime) -> EligibilityEvaluation:
        return EligibilityEvaluation(
            eligible=False,
            status=EligibilityStatus.INVALID_CODE,
            code=error.code,
            state=state,
            confidence=0,
            evaluated_at=as_of,
            error=str(error),
        )

    @staticmethod
    def _unsupported(code: str, state: str, as_of: datetime) -> EligibilityEvaluation:
        return EligibilityEvaluation(
            eligible=False,
            status=EligibilityStatus.UNSUPPORTED_STATE,
            code=code,
            state=state,
            ineligibility_reason=f"State {state} is not currently supported",
            confidence=0,
            evaluated_at=as_of,
        )

    def _evaluate(
        self,
        facts: ProductFacts,
        entry: ApprovedProductEntry | None,
        household: HouseholdContext | None,
        as_of: datetime,
    ) -> EligibilityEvaluation:
        if not self.is_state_supported(facts.state):
            if entry is None:
                return self._unsupported(facts.code, facts.state, as_of)
            evaluation = self._engine.evaluate(facts, entry, household, as_of)
            evaluation.warnings.append(
                f"No policy configured for {facts.state}; evaluated against registry data only"
            )
            return evaluation
        return self._engine.evaluate(facts, entry, household, as_of)

    def _respond(
        self,
        evaluation: EligibilityEvaluation,
        from_cache: bool,
        freshness: SyncFreshness | None,
        as_of: datetime,
    ) -> EligibilityCheckResponse:
        return EligibilityCheckResponse(
            **dict(evaluation),
            summary=EligibilityRulesEngine.summarize(evaluation),
            from_cache=from_cache,
            state_supported=self.is_state_supported(evaluation.state),
            last_sync=freshness.last_sync if freshness else None,
            data_age_seconds=freshness.data_age_seconds(as_of) if freshness else None,
        )

    # ── Public API ───────────────────────────────────────────────────

    async def check_eligibility(
        self,
        code: str,
        state: str,
        product: ProductFacts | None = None,
        household: HouseholdContext | None = None,
        include_alternatives: bool = False,
        use_cache: bool = True,
        as_of: datetime | None = None,
    ) -> EligibilityCheckResponse:
        """Check one product code in one state.

        Raises ValueError when code or state is missing and
        InvalidProductCodeError when the code does not normalize.
        """
        if not code or not code.strip():
            msg = "code is required"
            raise ValueError(msg)
        if not state or not state.strip():
            msg = "state is required"
            raise ValueError(msg)

        state = state.strip().upper()
        variants = normalize_upc(code)
        if not variants.is_valid:
            raise InvalidProductCodeError(code)

        historical = as_utc(as_of) if as_of is not None else None
        evaluated_at = historical or datetime.now(UTC)
        if product is None:
            facts = ProductFacts(code=variants.upc12, state=state)
        else:
            facts = product.model_copy(update={"code": variants.upc12, "state": state})

        try:
            entry, from_cache = await self._resolve(state, variants, use_cache, historical)
        except RegistryUnavailableError as exc:
            logger.exception("Registry lookup failed for %s in %s", variants.upc12, state)
            evaluation = self._unknown(variants.upc12, state, exc, evaluated_at)
            return self._respond(evaluation, False, await self._freshness(state), evaluated_at)

        evaluation = self._evaluate(facts, entry, household, evaluated_at)

        if include_alternatives and not evaluation.eligible and evaluation.status == EligibilityStatus.INELIGIBLE:
            category = facts.category or (entry.category if entry else None)
            evaluation.alternatives = await self._alternatives(state, category, variants)

        freshness = await self._freshness(state)
        logger.info(
            "Eligibility %s %s: %s (confidence %d)",
            state,
            variants.upc12,
            evaluation.status.value,
            evaluation.confidence,
        )
        return self._respond(evaluation, from_cache, freshness, evaluated_at)

    async def check_eligibility_batch(
        self,
        codes: Sequence[str],
        state: str,
        household: HouseholdContext | None = None,
        use_cache: bool = True,
        as_of: datetime | None = None,
    ) -> list[EligibilityCheckResponse]:
        """Check many codes in one state. Always one result per input, in order.

        Malformed codes become ``invalid_code`` items; registry failures are
        isolated per code where possible.
        """
        if not state or not state.strip():
            msg = "state is required"
            raise ValueError(msg)
        if not codes:
            return []

        state = state.strip().upper()
        historical = as_utc(as_of) if as_of is not None else None
        evaluated_at = historical or datetime.now(UTC)

        parsed: list[CodeVariantSet | InvalidProductCodeError] = []
        pending: dict[str, CodeVariantSet] = {}  # upc12 → first variants seen
        for code in codes:
            variants = normalize_upc(code or "")
            if not variants.is_valid:
                parsed.append(InvalidProductCodeError(code or ""))
                continue
            parsed.append(variants)
            pending.setdefault(variants.upc12, variants)

        # 1. Cache
        resolved: dict[str, ApprovedProductEntry | None] = {}
        failures: dict[str, Exception] = {}
        cached_codes: set[str] = set()
        cacheable = self._cacheable(use_cache, historical)
        if cacheable and pending:
            for upc12, cached in (await self._cache.get_many(state, list(pending))).items():
                resolved[upc12] = cached.entry
                cached_codes.add(upc12)

        # 2. Registry: one query for all misses, per-code fan-out if it fails
        misses = [variants for upc12, variants in pending.items() if upc12 not in resolved]
        if misses:
            try:
                found = await self._registry.lookup_many([v.original for v in misses], state, historical)
            except RegistryUnavailableError:
                logger.warning("Batch lookup failed for %d codes in %s, retrying per code", len(misses), state)
                results = await asyncio.gather(
                    *(self._resolve(state, v, use_cache, historical) for v in misses),
                    return_exceptions=True,
                )
                for variants, result in zip(misses, results, strict=True):
                    if isinstance(result, Exception):
                        failures[variants.upc12] = result
                    else:
                        resolved[variants.upc12] = result[0]
            else:
                for variants in misses:
                    entry = found.get(variants.original)
                    resolved[variants.upc12] = entry
                    if cacheable:
                        await self._cache.set(state, variants.upc12, entry)

        # 3. Evaluate
        freshness = await self._freshness(state)
        responses: list[EligibilityCheckResponse] = []
        for item in parsed:
            if isinstance(item, InvalidProductCodeError):
                evaluation = self._invalid(item, state, evaluated_at)
                responses.append(self._respond(evaluation, False, freshness, evaluated_at))
                continue
            if item.upc12 in failures:
                evaluation = self._unknown(item.upc12, state, failures[item.upc12], evaluated_at)
                responses.append(self._respond(evaluation, False, freshness, evaluated_at))
                continue
            facts = ProductFacts(code=item.upc12, state=state)
            evaluation = self._evaluate(facts, resolved.get(item.upc12), household, evaluated_at)
            responses.append(self._respond(evaluation, item.upc12 in cached_codes, freshness, evaluated_at))

        logger.info(
            "Batch eligibility %s: %d codes, %d eligible",
            state,
            len(responses),
            sum(1 for r in responses if r.eligible),
        )
        return responses


def build_eligibility_service() -> EligibilityService:
    """Wire the service from application settings and the shared DB/Redis clients."""
    from wic_eligibility.config import settings
    from wic_eligibility.db.engine import async_session_factory, redis_client
    from wic_eligibility.policy import build_policy_registry

    policies = build_policy_registry()
    return EligibilityService(
        registry=ApprovedProductRegistry(async_session_factory),
        engine=EligibilityRulesEngine(policies, settings.eligibility.not_found_confidence),
        cache=EntryCache(
            redis_client,
            ttl=settings.eligibility.eligibility_cache_ttl,
            prefix=settings.eligibility.eligibility_cache_prefix,
        ),
        sync_status=SyncStatusReader(async_session_factory),
        policies=policies,
        alternatives_limit=settings.eligibility.alternatives_limit,
    )
