"""A rule binds a matcher to an outcome."""

from dataclasses import dataclass

from toolcap.operation import Operation
from toolcap.outcome import Outcome
from toolcap.policy.matcher import Matcher


@dataclass(frozen=True)
class Rule:
    """
    A (matcher, outcome) pair.

    Attributes:
        matcher: Predicate deciding whether the rule applies
        outcome: Result when it applies
        name: Optional label shown in decision traces
    """

    matcher: Matcher
    outcome: Outcome
    name: str | None = None

    @classmethod
    def allow(cls, matcher: Matcher, name: str | None = None) -> "Rule":
        return cls(matcher=matcher, outcome=Outcome.ALLOW, name=name)

    @classmethod
    def deny(cls, matcher: Matcher, name: str | None = None) -> "Rule":
        return cls(matcher=matcher, outcome=Outcome.DENY, name=name)

    def evaluate(self, operation: Operation) -> Outcome | None:
        """Return the outcome if the matcher applies, else None."""
        if self.matcher.matches(operation):
            return self.outcome
        return None

    def describe(self) -> str:
        label = f"{self.name}: " if self.name else ""
        return f"{label}{self.outcome.value} {self.matcher.describe()}"
