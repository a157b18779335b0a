"""
YAML ruleset configuration.

Rulesets are declared in YAML, validated with Pydantic models and then
converted into Rule and Matcher objects:

    version: "1.0"
    include_defaults: false
    rules:
      - name: deny-force-push
        outcome: deny
        match:
          command: git
          subcommands: [push]
          flags: ["--force"]
      - outcome: allow
        match:
          any_of:
            - bundle: read_only_git
            - command: ls

Design Decisions:
    - Unknown keys are rejected (extra="forbid") so typos never widen a policy
    - Each matcher entry names exactly one selector
    - Rule order in the file is evaluation order
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from toolcap.bundles import BUNDLES, default_ruleset, get_bundle
from toolcap.errors import RulesetLoadError
from toolcap.outcome import Outcome
from toolcap.policy.matcher import Matcher
from toolcap.policy.rule import Rule
from toolcap.policy.ruleset import Ruleset

SELECTORS = ("any_execute", "command", "within_directory", "all_of", "any_of", "bundle")


class MatcherConfig(BaseModel):
    """
    One matcher in a ruleset file.

    Exactly one selector must be set. subcommands and flags refine a
    command selector and are rejected anywhere else.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    any_execute: bool | None = Field(default=None, description="Match every command")
    command: str | None = Field(default=None, description="Command name to match")
    subcommands: list[str] | None = Field(default=None, description="Allowed subcommands")
    flags: list[str] | None = Field(default=None, description="Flags that must all be present")
    within_directory: str | None = Field(default=None, description="Working directory boundary")
    all_of: list["MatcherConfig"] | None = Field(default=None, description="All must match")
    any_of: list["MatcherConfig"] | None = Field(default=None, description="Any may match")
    bundle: str | None = Field(default=None, description="Name of a pre-built matcher group")

    @field_validator("bundle")
    @classmethod
    def validate_bundle_name(cls, v: str | None) -> str | None:
        if v is not None and v not in BUNDLES:
            msg = f"Unknown bundle: {v} (available: {', '.join(sorted(BUNDLES))})"
            raise ValueError(msg)
        return v

    @field_validator("command")
    @classmethod
    def validate_command_name(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            msg = "command must not be empty"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def validate_single_selector(self) -> "MatcherConfig":
        selected = [name for name in SELECTORS if getattr(self, name) is not None]
        if len(selected) != 1:
            found = ", ".join(selected) if selected else "none"
            msg = f"matcher must set exactly one of {', '.join(SELECTORS)} (found: {found})"
            raise ValueError(msg)
        if self.command is None and (self.subcommands is not None or self.flags is not None):
            msg = "subcommands and flags are only valid with command"
            raise ValueError(msg)
        if self.any_execute is False:
            msg = "any_execute must be true when present"
            raise ValueError(msg)
        return self

    def to_matcher(self) -> Matcher:
        """Build the Matcher this entry describes."""
        if self.any_execute:
            return Matcher.any_execute()
        if self.command is not None:
            matcher = Matcher.command(self.command)
            if self.subcommands is not None:
                matcher = matcher.with_subcommands(self.subcommands)
            for flag in self.flags or ():
                matcher = matcher.with_flag(flag)
            return matcher
        if self.within_directory is not None:
            return Matcher.within_directory(self.within_directory)
        if self.all_of is not None:
            return Matcher.and_(child.to_matcher() for child in self.all_of)
        if self.any_of is not None:
            return Matcher.or_(child.to_matcher() for child in self.any_of)
        return get_bundle(self.bundle)


class RuleConfig(BaseModel):
    """One rule in a ruleset file."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str | None = Field(default=None, description="Label shown in decision traces")
    outcome: Outcome = Field(..., description="allow, deny or unknown")
    match: MatcherConfig = Field(..., description="When the rule applies")

    def to_rule(self) -> Rule:
        return Rule(matcher=self.match.to_matcher(), outcome=self.outcome, name=self.name)


class RulesetConfig(BaseModel):
    """
    Top-level ruleset file.

    Attributes:
        version: Format version (currently "1.0")
        include_defaults: Append the built-in default rules after these
        rules: Rules in evaluation order
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    version: str = Field(default="1.0", description="Ruleset format version")
    include_defaults: bool = Field(
        default=False,
        description="Append the built-in default ruleset after the listed rules",
    )
    rules: list[RuleConfig] = Field(default_factory=list, description="Rules in order")

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        if v.split(".")[0] != "1":
            msg = f"Unsupported ruleset version: {v}"
            raise ValueError(msg)
        return v

    def to_ruleset(self) -> Ruleset:
        ruleset = Ruleset(rule.to_rule() for rule in self.rules)
        if self.include_defaults:
            ruleset = ruleset.extended(default_ruleset())
        return ruleset


# =============================================================================
# YAML Loading Helpers
# =============================================================================


def load_ruleset_config(path: Path | str) -> RulesetConfig:
    """
    Load and validate a ruleset file without building matchers.

    Raises:
        RulesetLoadError: If the file is unreadable, not YAML, or invalid
    """
    path = Path(path)
    try:
        with path.open("rb") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise RulesetLoadError(path=str(path), underlying_error=str(e)) from e
    except yaml.YAMLError as e:
        raise RulesetLoadError(path=str(path), underlying_error=f"invalid YAML: {e}") from e

    return _validate(data, str(path))


def load_ruleset(path: Path | str) -> Ruleset:
    """
    Load a ruleset from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        The Ruleset, rules in file order

    Raises:
        RulesetLoadError: If the file is unreadable, not YAML, or invalid
    """
    return load_ruleset_config(path).to_ruleset()


def load_ruleset_from_string(content: str) -> Ruleset:
    """Load a ruleset from a YAML string."""
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise RulesetLoadError(underlying_error=f"invalid YAML: {e}") from e
    return _validate(data, "").to_ruleset()


def _validate(data: Any, path: str) -> RulesetConfig:
    # An empty document is an empty ruleset
    if data is None:
        data = {}
    try:
        return RulesetConfig.model_validate(data)
    except ValidationError as e:
        raise RulesetLoadError(path=path, underlying_error=_format_validation_error(e)) from e


def _format_validation_error(error: ValidationError) -> str:
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "<root>"
        messages.append(f"{location}: {item['msg']}")
    return "; ".join(messages)
