"""Unit tests for Rule."""

from toolcap.operation import Operation
from toolcap.outcome import Outcome
from toolcap.policy import Matcher, Rule


class TestRule:
    def test_matching_rule_returns_outcome(self) -> None:
        rule = Rule(Matcher.command("sudo"), Outcome.DENY)
        assert rule.evaluate(Operation.execute("sudo ls")) == Outcome.DENY

    def test_non_matching_rule_returns_none(self) -> None:
        rule = Rule(Matcher.command("sudo"), Outcome.DENY)
        assert rule.evaluate(Operation.execute("ls")) is None

    def test_unknown_outcome_is_a_result(self) -> None:
        """A rule may explicitly mark something as needing review."""
        rule = Rule(Matcher.command("docker"), Outcome.UNKNOWN)
        assert rule.evaluate(Operation.execute("docker run x")) == Outcome.UNKNOWN

    def test_shortcuts(self) -> None:
        allow = Rule.allow(Matcher.command("ls"), name="ls")
        deny = Rule.deny(Matcher.command("rm"))
        assert allow.outcome == Outcome.ALLOW
        assert allow.name == "ls"
        assert deny.outcome == Outcome.DENY
        assert deny.name is None

    def test_describe(self) -> None:
        rule = Rule.deny(Matcher.command("curl"), name="network")
        assert rule.describe() == "network: deny command curl"
        assert Rule.allow(Matcher.any_execute()).describe() == "allow any command"
