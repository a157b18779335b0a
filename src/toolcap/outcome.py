"""
The three-valued result of evaluating an operation.

ALLOW and DENY are definite answers. UNKNOWN means no rule applied (or the
operation could not be analyzed) and the caller should escalate to a human.
"""

from collections.abc import Iterable
from enum import Enum


class Outcome(str, Enum):
    """The decision for a single operation."""

    ALLOW = "allow"
    DENY = "deny"
    UNKNOWN = "unknown"


def fold_outcomes(outcomes: Iterable[Outcome]) -> Outcome:
    """
    Combine the outcomes of the parts of a compound command.

    DENY anywhere wins regardless of position. Otherwise any UNKNOWN makes
    the whole UNKNOWN. Only when every part is ALLOW (including when there
    are no parts) is the result ALLOW.

    The whole iterable is consumed; there is no short-circuit.
    """
    seen = set(outcomes)
    if Outcome.DENY in seen:
        return Outcome.DENY
    if Outcome.UNKNOWN in seen:
        return Outcome.UNKNOWN
    return Outcome.ALLOW
