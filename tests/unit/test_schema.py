"""
Unit tests for YAML ruleset loading.

Tests cover:
- Valid rulesets and every matcher selector
- include_defaults
- Schema violations (selectors, unknown keys, bad outcomes)
- File and YAML errors
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from toolcap.bundles import default_ruleset
from toolcap.errors import ERROR_RULESET_LOAD, RulesetLoadError
from toolcap.operation import Operation
from toolcap.outcome import Outcome
from toolcap.policy import AndMatcher, CommandMatcher, OrMatcher, WithinDirectory
from toolcap.schema import (
    MatcherConfig,
    RulesetConfig,
    load_ruleset,
    load_ruleset_config,
    load_ruleset_from_string,
)


def evaluate(ruleset, command: str) -> Outcome:
    return ruleset.evaluate(Operation.execute(command))


class TestLoadValid:
    """Tests for valid ruleset files."""

    def test_sample_ruleset(self, sample_ruleset_yaml: str) -> None:
        ruleset = load_ruleset_from_string(sample_ruleset_yaml)
        assert len(ruleset) == 4
        assert evaluate(ruleset, "git push --force") == Outcome.DENY
        assert evaluate(ruleset, "git push origin") == Outcome.ALLOW
        assert evaluate(ruleset, "git log | ls") == Outcome.ALLOW
        assert evaluate(ruleset, "rm -rf /") == Outcome.DENY
        assert evaluate(ruleset, "rm file") == Outcome.UNKNOWN

    def test_rule_names_and_order(self, sample_ruleset_yaml: str) -> None:
        ruleset = load_ruleset_from_string(sample_ruleset_yaml)
        assert [rule.name for rule in ruleset] == ["deny-force-push", "allow-push", "read-only", None]

    def test_matcher_types(self, sample_ruleset_yaml: str) -> None:
        rules = load_ruleset_from_string(sample_ruleset_yaml).rules
        assert isinstance(rules[0].matcher, CommandMatcher)
        assert rules[0].matcher.subcommands == frozenset({"push"})
        assert rules[0].matcher.required_flags == ("--force",)
        assert isinstance(rules[2].matcher, OrMatcher)
        assert isinstance(rules[3].matcher, AndMatcher)

    def test_within_directory(self, temp_dir: Path) -> None:
        (temp_dir / "src").mkdir()
        ruleset = load_ruleset_from_string(f"""
rules:
  - outcome: allow
    match:
      within_directory: "{temp_dir}"
""")
        assert isinstance(ruleset.rules[0].matcher, WithinDirectory)
        inside = Operation.execute_in("ls", temp_dir / "src")
        assert ruleset.evaluate(inside) == Outcome.ALLOW
        assert ruleset.evaluate(Operation.execute("ls")) == Outcome.UNKNOWN

    def test_explicit_unknown_outcome(self) -> None:
        ruleset = load_ruleset_from_string("""
rules:
  - outcome: unknown
    match: {command: docker}
  - outcome: allow
    match: {any_execute: true}
""")
        assert evaluate(ruleset, "docker ps") == Outcome.UNKNOWN
        assert evaluate(ruleset, "ls") == Outcome.ALLOW

    def test_include_defaults_appends(self) -> None:
        ruleset = load_ruleset_from_string("""
include_defaults: true
rules:
  - outcome: allow
    match: {command: curl}
""")
        assert len(ruleset) == 1 + len(default_ruleset())
        assert evaluate(ruleset, "curl example.com") == Outcome.ALLOW
        assert evaluate(ruleset, "wget example.com") == Outcome.DENY

    def test_empty_document(self) -> None:
        assert len(load_ruleset_from_string("")) == 0

    def test_load_from_file(self, temp_dir: Path, sample_ruleset_yaml: str) -> None:
        path = temp_dir / "rules.yaml"
        path.write_text(sample_ruleset_yaml)
        assert len(load_ruleset(path)) == 4
        assert load_ruleset_config(str(path)).version == "1.0"


class TestSchemaViolations:
    """Invalid rulesets raise RulesetLoadError."""

    @pytest.mark.parametrize(
        ("content", "fragment"),
        [
            ("rules:\n  - outcome: allow\n    match: {}\n", "exactly one"),
            ("rules:\n  - outcome: allow\n    match: {command: ls, bundle: safe_npm}\n", "exactly one"),
            ("rules:\n  - outcome: allow\n    match: {bundle: nope}\n", "Unknown bundle"),
            ("rules:\n  - outcome: allow\n    match: {any_execute: true, flags: [-f]}\n", "only valid with command"),
            ("rules:\n  - outcome: allow\n    match: {any_execute: false}\n", "must be true"),
            ("rules:\n  - outcome: maybe\n    match: {command: ls}\n", "outcome"),
            ("rules:\n  - outcome: allow\n    match: {command: ls, colour: red}\n", "colour"),
            ("rules:\n  - outcome: allow\n", "match"),
            ("version: '2.0'\n", "Unsupported ruleset version"),
            ("rulez: []\n", "rulez"),
            ("- just a list\n", "<root>"),
        ],
    )
    def test_invalid(self, content: str, fragment: str) -> None:
        with pytest.raises(RulesetLoadError) as exc_info:
            load_ruleset_from_string(content)
        assert fragment in exc_info.value.underlying_error
        assert exc_info.value.code == ERROR_RULESET_LOAD

    def test_nested_violation_reports_location(self) -> None:
        content = "rules:\n  - outcome: allow\n    match:\n      any_of:\n        - {}\n"
        with pytest.raises(RulesetLoadError) as exc_info:
            load_ruleset_from_string(content)
        assert "rules.0.match.any_of.0" in exc_info.value.underlying_error


class TestLoadErrors:
    """File and YAML errors."""

    def test_missing_file(self, temp_dir: Path) -> None:
        path = temp_dir / "missing.yaml"
        with pytest.raises(RulesetLoadError) as exc_info:
            load_ruleset(path)
        assert exc_info.value.path == str(path)

    def test_invalid_yaml(self) -> None:
        with pytest.raises(RulesetLoadError, match="invalid YAML"):
            load_ruleset_from_string("rules: [unclosed")

    def test_invalid_yaml_in_file(self, temp_dir: Path) -> None:
        path = temp_dir / "bad.yaml"
        path.write_text("rules: [unclosed")
        with pytest.raises(RulesetLoadError, match="invalid YAML"):
            load_ruleset(path)

    def test_non_utf8_file(self, temp_dir: Path) -> None:
        path = temp_dir / "latin1.yaml"
        path.write_bytes(b"rules: []\n# caf\xe9\n")
        with pytest.raises(RulesetLoadError, match="invalid YAML"):
            load_ruleset(path)


class TestConfigModels:
    def test_frozen(self) -> None:
        config = RulesetConfig()
        with pytest.raises(ValidationError):
            config.include_defaults = True

    def test_matcher_config_direct(self) -> None:
        matcher = MatcherConfig(command="git", subcommands=["status"]).to_matcher()
        assert matcher.matches(Operation.execute("git status"))
