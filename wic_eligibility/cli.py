"""Command-line eligibility check.

Usage:
    wic-eligibility 041220576074 MI --brand "Cheerios" --size 12 --unit oz
    wic-eligibility --policy MI

Exit status: 0 eligible, 1 not eligible, 2 operational error (registry
unreachable, invalid input, unsupported state).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from wic_eligibility.config import settings
from wic_eligibility.eligibility.service import EligibilityService, build_eligibility_service
from wic_eligibility.errors import EligibilityError
from wic_eligibility.log import configure_logging
from wic_eligibility.policy import build_policy_registry
from wic_eligibility.schemas.eligibility import EligibilityCheckResponse, EligibilityStatus, ProductFacts

logger = logging.getLogger(__name__)

EXIT_ELIGIBLE = 0
EXIT_NOT_ELIGIBLE = 1
EXIT_ERROR = 2

_RULE = "=" * 60


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="wic-eligibility",
        description="Check WIC eligibility of a product code in a state",
    )
    parser.add_argument("code", nargs="?", help="UPC/EAN product code")
    parser.add_argument("state", nargs="?", help="Two-letter state code (MI, NC, FL, OR)")
    parser.add_argument("--brand", help="Product brand")
    parser.add_argument("--size", type=float, help="Package size")
    parser.add_argument("--unit", help="Package size unit (oz, lb, gal, ...)")
    parser.add_argument("--category", help="Benefit category, used for alternatives")
    parser.add_argument("--no-alternatives", action="store_true", help="Skip alternative suggestions")
    parser.add_argument("--policy", metavar="STATE", help="Print the state's policy summary and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parsed = parser.parse_args(args)
    if not parsed.policy and (not parsed.code or not parsed.state):
        parser.error("CODE and STATE are required unless --policy is given")
    return parsed


def format_result(result: EligibilityCheckResponse) -> str:
    """Multi-line report of a single check."""
    lines = [
        _RULE,
        "ELIGIBILITY CHECK RESULT",
        _RULE,
        f"Code:       {result.code}",
        f"State:      {result.state}",
        f"Status:     {'WIC ELIGIBLE' if result.eligible else result.status.value.replace('_', ' ').upper()}",
        f"Confidence: {result.confidence}%",
    ]

    if result.summary:
        lines.extend(["", *result.summary.splitlines()])

    if result.entry is not None:
        lines.append("")
        lines.append("Product Information:")
        lines.append(f"  Category: {result.entry.category}")
        if result.entry.subcategory:
            lines.append(f"  Subcategory: {result.entry.subcategory}")
        lines.append(f"  Data Source: {result.entry.data_source.value.upper()}")
        if result.entry.updated_at:
            lines.append(f"  Last Updated: {result.entry.updated_at.isoformat()}")

    if result.error:
        lines.extend(["", "Error:", f"  {result.error}"])

    if not result.eligible and result.ineligibility_reason:
        lines.extend(["", "Reason for Ineligibility:", f"  {result.ineligibility_reason}"])

    for title, participants in (
        ("Eligible Participants:", result.eligible_participants),
        ("Ineligible Participants:", result.ineligible_participants),
    ):
        if participants:
            lines.extend(["", title])
            lines.extend(f"  - {p.value}" for p in participants)

    if result.rule_violations:
        lines.extend(["", "Rule Violations:"])
        for i, violation in enumerate(result.rule_violations, start=1):
            lines.append(f"  {i}. {violation.rule.value}")
            lines.append(f"     Severity: {violation.severity.value}")
            lines.append(f"     Message: {violation.message}")
            if violation.expected is not None:
                lines.append(f"     Expected: {json.dumps(violation.expected, default=str)}")
            if violation.actual is not None:
                lines.append(f"     Actual: {json.dumps(violation.actual, default=str)}")

    if result.warnings:
        lines.extend(["", "Warnings:"])
        lines.extend(f"  ! {w}" for w in result.warnings)

    if result.alternatives:
        lines.extend(["", "Suggested Alternatives:"])
        lines.extend(f"  - {alt}" for alt in result.alternatives)

    if result.data_age_seconds is not None:
        lines.append("")
        lines.append(f"Data Age: {round(result.data_age_seconds / 60)} minutes")
    if result.last_sync is not None:
        lines.append(f"Last APL Sync: {result.last_sync.isoformat()}")

    lines.append(_RULE)
    return "\n".join(lines)


def exit_code(result: EligibilityCheckResponse) -> int:
    if result.eligible:
        return EXIT_ELIGIBLE
    if result.status in (
        EligibilityStatus.UNKNOWN,
        EligibilityStatus.INVALID_CODE,
        EligibilityStatus.UNSUPPORTED_STATE,
    ):
        return EXIT_ERROR
    return EXIT_NOT_ELIGIBLE


async def _shutdown() -> None:
    from wic_eligibility.db.engine import close_db

    await close_db()


async def run_check(args: argparse.Namespace, service: EligibilityService) -> int:
    product = ProductFacts(
        code=args.code,
        state=args.state,
        actual_size=args.size,
        size_unit=args.unit,
        brand=args.brand,
        category=args.category,
    )
    try:
        result = await service.check_eligibility(
            args.code,
            args.state,
            product=product,
            include_alternatives=not args.no_alternatives,
        )
    except (EligibilityError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR
    finally:
        await _shutdown()

    print(format_result(result))
    return exit_code(result)


def show_policy(state: str) -> int:
    policies = build_policy_registry()
    print(policies.policy_summary(state))
    if not policies.is_supported(state):
        print(f"Supported states: {', '.join(policies.supported_states())}", file=sys.stderr)
        return EXIT_ERROR
    return EXIT_ELIGIBLE


def main(args: list[str] | None = None) -> int:
    """Console-script entry point. Returns the process exit status."""
    parsed = parse_args(args)
    configure_logging("DEBUG" if parsed.verbose else "WARNING", stream=sys.stderr)
    logger.debug("Environment: %s", settings.environment)

    if parsed.policy:
        return show_policy(parsed.policy)

    try:
        service = build_eligibility_service()
    except (EligibilityError, OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR
    return asyncio.run(run_check(parsed, service))


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
