"""
Pytest configuration and fixtures for Toolcap tests.

This module provides shared fixtures used across unit, integration,
and security tests.
"""

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from toolcap.outcome import Outcome
from toolcap.policy import Matcher, Rule, Ruleset


@pytest.fixture(autouse=True)
def _no_rules_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a TOOLCAP_RULES from the developer's shell out of the tests."""
    monkeypatch.delenv("TOOLCAP_RULES", raising=False)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def git_push_ruleset() -> Ruleset:
    """Deny force pushes, allow other pushes."""
    return Ruleset([
        Rule(
            Matcher.command("git").with_subcommands(["push"]).with_flag("--force"),
            Outcome.DENY,
        ),
        Rule(Matcher.command("git").with_subcommand("push"), Outcome.ALLOW),
    ])


@pytest.fixture
def pipeline_ruleset() -> Ruleset:
    """Allow find, grep and head; deny sudo. Nothing else has a rule."""
    return Ruleset([
        Rule(
            Matcher.or_([
                Matcher.command("find"),
                Matcher.command("grep"),
                Matcher.command("head"),
            ]),
            Outcome.ALLOW,
            name="read-only",
        ),
        Rule(Matcher.command("sudo"), Outcome.DENY, name="no-sudo"),
    ])


@pytest.fixture
def sample_ruleset_yaml() -> str:
    """Return a ruleset YAML exercising every selector except within_directory."""
    return """
version: "1.0"
rules:
  - name: deny-force-push
    outcome: deny
    match:
      command: git
      subcommands: [push]
      flags: ["--force"]
  - name: allow-push
    outcome: allow
    match:
      command: git
      subcommands: [push]
  - name: read-only
    outcome: allow
    match:
      any_of:
        - bundle: read_only_git
        - command: ls
  - outcome: deny
    match:
      all_of:
        - any_execute: true
        - command: rm
          flags: ["-rf"]
"""
