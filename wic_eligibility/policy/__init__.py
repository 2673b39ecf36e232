"""State policy registry — per-jurisdiction category overrides and contract brands."""

from wic_eligibility.config import settings
from wic_eligibility.policy.registry import StatePolicyRegistry
from wic_eligibility.policy.states import default_policies, load_policies


def build_policy_registry(policy_file: str | None = None) -> StatePolicyRegistry:
    """Build the registry from `policy_file` (or settings), else the built-in set."""
    path = policy_file if policy_file is not None else settings.eligibility.policy_file
    policies = load_policies(path) if path else default_policies()
    return StatePolicyRegistry(policies)


__all__ = [
    "StatePolicyRegistry",
    "build_policy_registry",
    "default_policies",
    "load_policies",
]
