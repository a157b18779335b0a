"""
Toolcap - Fine-grained permission rules for agent tool calls.

Toolcap sits between an autonomous agent and its environment and decides,
for each attempted action, whether it is allowed, denied, or needs a human.
It provides:
- A static shell parser that splits compound commands and rejects anything
  it cannot reason about
- Ordered, first-match-wins rulesets with deny-dominant folding for
  pipelines, && / || chains and sequences
- Symlink-aware working directory containment
- YAML rulesets and an ACP permission adapter

Example usage:
    >>> from toolcap import Matcher, Operation, Outcome, Rule, Ruleset
    >>> ruleset = Ruleset([Rule(Matcher.command("git").with_subcommand("status"), Outcome.ALLOW)])
    >>> ruleset.evaluate(Operation.execute("git status"))
    <Outcome.ALLOW: 'allow'>

    $ toolcap check "git status && cargo test"
"""

__version__ = "0.1.0"
__author__ = "Toolcap Contributors"

from toolcap.operation import ExecuteOperation, Operation, OperationKind
from toolcap.outcome import Outcome, fold_outcomes
from toolcap.policy import Decision, Matcher, Rule, Ruleset

__all__ = [
    "Decision",
    "ExecuteOperation",
    "Matcher",
    "Operation",
    "OperationKind",
    "Outcome",
    "Rule",
    "Ruleset",
    "__author__",
    "__version__",
    "fold_outcomes",
]
