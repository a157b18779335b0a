"""
Ruleset evaluation.

A Ruleset is an ordered, immutable list of rules. Evaluating an operation
returns exactly one Outcome and never raises.

How it works:
    1. Non-execute operations: the first matching rule wins, else UNKNOWN
    2. Execute operations: the command is parsed into a ShellAst
       - parse failure of any kind -> UNKNOWN
       - each simple command is evaluated on its own, first match wins
       - compound nodes fold their children: DENY beats UNKNOWN beats ALLOW

Security Note:
    A compound command is only as permitted as its least permitted part.
    "find . | sudo cat /etc/shadow" is denied by a sudo rule even though
    find is allowed, and "git status && curl evil" is UNKNOWN when curl has
    no rule.
"""

import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from toolcap.errors import ShellParseError
from toolcap.operation import ExecuteOperation, Operation
from toolcap.outcome import Outcome, fold_outcomes
from toolcap.policy.rule import Rule
from toolcap.shell.nodes import CompoundAst, ShellAst, Simple
from toolcap.shell.parser import parse

logger = logging.getLogger(__name__)


class CommandMatch(BaseModel):
    """
    How one simple command (or one non-execute operation) was decided.

    Attributes:
        command: The command text, or the operation summary
        outcome: The outcome for this piece
        rule_index: Position of the matching rule, None if no rule matched
        rule_name: Name of the matching rule, if it has one
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    command: str
    outcome: Outcome
    rule_index: int | None = None
    rule_name: str | None = None


class Decision(BaseModel):
    """
    Result of evaluating an operation against a ruleset.

    Attributes:
        outcome: The final outcome
        reason: Human-readable explanation
        matches: Per-command trace in source order
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    outcome: Outcome = Field(..., description="The final outcome")
    reason: str = Field(..., description="Human-readable explanation of the decision")
    matches: tuple[CommandMatch, ...] = Field(
        default=(),
        description="How each evaluated command was decided",
    )


class Ruleset:
    """
    An ordered collection of rules.

    Usage:
        ruleset = Ruleset([
            Rule.deny(Matcher.command("git").with_subcommand("push").with_flag("--force")),
            Rule.allow(Matcher.command("git").with_subcommand("push")),
        ])
        ruleset.evaluate(Operation.execute("git push --force"))  # Outcome.DENY

    Rulesets hold no mutable state and may be shared across threads.
    """

    def __init__(self, rules: Iterable[Rule] = ()) -> None:
        self._rules: tuple[Rule, ...] = tuple(rules)

    @classmethod
    def empty(cls) -> "Ruleset":
        """A ruleset with no rules; every operation is UNKNOWN."""
        return cls(())

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    def extended(self, other: "Ruleset") -> "Ruleset":
        """Return a new ruleset with other's rules appended after these."""
        return Ruleset(self._rules + other.rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __repr__(self) -> str:
        return f"Ruleset({len(self._rules)} rules)"

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def evaluate(self, operation: Operation) -> Outcome:
        """Evaluate an operation and return its outcome."""
        return self.decide(operation).outcome

    def decide(self, operation: Operation) -> Decision:
        """Evaluate an operation and return the outcome with its trace."""
        if isinstance(operation, ExecuteOperation):
            decision = self._decide_execute(operation)
        else:
            match = self._match(operation, operation.summary())
            decision = Decision(
                outcome=match.outcome,
                reason=_reason_for_single(match),
                matches=(match,),
            )

        logger.debug("%s -> %s (%s)", operation.summary(), decision.outcome.value, decision.reason)
        return decision

    def _decide_execute(self, operation: ExecuteOperation) -> Decision:
        try:
            tree = parse(operation.command)
        except ShellParseError as e:
            logger.debug("parse failed for %r: %s", operation.command, e.message)
            return Decision(
                outcome=Outcome.UNKNOWN,
                reason=f"could not analyze command ({e.kind.value}): {e.message}",
            )

        matches: list[CommandMatch] = []
        outcome = self._evaluate_tree(tree, operation.working_dir, matches)

        if tree.is_simple():
            reason = _reason_for_single(matches[0])
        else:
            reason = _reason_for_compound(outcome, matches)
        return Decision(outcome=outcome, reason=reason, matches=tuple(matches))

    def _evaluate_tree(
        self,
        node: ShellAst,
        working_dir: Path | None,
        matches: list[CommandMatch],
    ) -> Outcome:
        if isinstance(node, Simple):
            leaf = ExecuteOperation.from_parsed(node.command, working_dir=working_dir)
            match = self._match(leaf, leaf.command)
            matches.append(match)
            return match.outcome

        if isinstance(node, CompoundAst):
            # Evaluate every child so the trace covers the whole command
            return fold_outcomes(
                [self._evaluate_tree(child, working_dir, matches) for child in node.children]
            )

        # Unsupported, or any node kind this evaluator does not know
        return Outcome.UNKNOWN

    def _match(self, operation: Operation, label: str) -> CommandMatch:
        for index, rule in enumerate(self._rules):
            outcome = rule.evaluate(operation)
            if outcome is not None:
                return CommandMatch(
                    command=label,
                    outcome=outcome,
                    rule_index=index,
                    rule_name=rule.name,
                )
        return CommandMatch(command=label, outcome=Outcome.UNKNOWN)


def _rule_label(match: CommandMatch) -> str:
    if match.rule_name:
        return f"rule #{match.rule_index} ({match.rule_name})"
    return f"rule #{match.rule_index}"


def _reason_for_single(match: CommandMatch) -> str:
    if match.rule_index is None:
        return f"no rule matched {match.command!r}"
    return f"{match.command!r} matched {_rule_label(match)}"


def _reason_for_compound(outcome: Outcome, matches: list[CommandMatch]) -> str:
    if outcome == Outcome.ALLOW:
        return f"all {len(matches)} commands allowed"
    if outcome == Outcome.DENY:
        denied = next(m for m in matches if m.outcome == Outcome.DENY)
        return f"{denied.command!r} denied by {_rule_label(denied)}"
    unmatched = [m.command for m in matches if m.outcome == Outcome.UNKNOWN]
    if unmatched:
        return "no rule matched " + ", ".join(repr(c) for c in unmatched)
    return "command contains an unsupported construct"
