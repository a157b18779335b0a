"""
Policy evaluation for Toolcap.

Matchers decide whether a rule applies to an operation, rules bind matchers
to outcomes, and a Ruleset evaluates operations against its rules in order.
"""

from toolcap.policy.matcher import (
    AndMatcher,
    AnyExecute,
    CommandMatcher,
    Matcher,
    OrMatcher,
    WithinDirectory,
)
from toolcap.policy.paths import PathResolver, RealPathResolver
from toolcap.policy.rule import Rule
from toolcap.policy.ruleset import CommandMatch, Decision, Ruleset

__all__ = [
    "AndMatcher",
    "AnyExecute",
    "CommandMatch",
    "CommandMatcher",
    "Decision",
    "Matcher",
    "OrMatcher",
    "PathResolver",
    "RealPathResolver",
    "Rule",
    "Ruleset",
    "WithinDirectory",
]
