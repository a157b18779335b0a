"""
Agent Client Protocol (ACP) permission adapter.

An ACP agent asks its client for permission before running a tool by sending
a ``session/request_permission`` request. This module converts that request
into an Operation, evaluates it, and either picks one of the offered
permission options or tells the caller to escalate to the user.

How it works:
    1. parse_permission_request() validates the JSON payload
    2. operation_from_request() maps the tool call onto an Operation
    3. PermissionGate evaluates it and chooses a response

    ALLOW   -> select an allow option
    DENY    -> select a reject option
    UNKNOWN -> escalate (the request goes to the user unchanged)

Only the adapter lives here. The relay process that sits between an editor
and an agent and forwards messages is out of scope.
"""

import json
import logging
from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from toolcap.errors import PermissionRequestError
from toolcap.operation import Operation
from toolcap.outcome import Outcome
from toolcap.policy.ruleset import Ruleset

logger = logging.getLogger(__name__)

REQUEST_PERMISSION_METHOD = "session/request_permission"

COMMAND_FIELDS = ("command", "cmd", "script")
PATH_FIELDS = ("path", "file", "file_path", "filename")
CONTENT_FIELDS = ("content", "new_string", "new_text", "text")
SOURCE_FIELDS = ("from", "source", "src")
DESTINATION_FIELDS = ("to", "destination", "dest")
WORKING_DIR_FIELDS = ("cwd", "workdir", "working_dir")


# =============================================================================
# Protocol Models
# =============================================================================


class ToolKind(str, Enum):
    """Tool categories defined by ACP."""

    READ = "read"
    EDIT = "edit"
    DELETE = "delete"
    MOVE = "move"
    SEARCH = "search"
    EXECUTE = "execute"
    THINK = "think"
    FETCH = "fetch"
    SWITCH_MODE = "switch_mode"
    OTHER = "other"


class PermissionOptionKind(str, Enum):
    ALLOW_ONCE = "allow_once"
    ALLOW_ALWAYS = "allow_always"
    REJECT_ONCE = "reject_once"
    REJECT_ALWAYS = "reject_always"


class _AcpModel(BaseModel):
    # Wire names are camelCase; unknown fields (_meta, content, ...) are ignored
    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class PermissionOption(_AcpModel):
    """A choice the client may present to the user."""

    option_id: str
    name: str = ""
    kind: PermissionOptionKind


class ToolCallUpdate(_AcpModel):
    """
    The tool call a permission request is about.

    Attributes:
        tool_call_id: Identifier assigned by the agent
        title: Human-readable title
        kind: Tool category, if the agent reported one
        raw_input: Tool input as sent by the agent (usually an object)
    """

    tool_call_id: str
    title: str | None = None
    kind: ToolKind | None = None
    raw_input: Any = None

    @field_validator("kind", mode="before")
    @classmethod
    def coerce_unknown_kind(cls, v: Any) -> Any:
        # Kinds added by newer protocol versions are treated as "other"
        if isinstance(v, str) and v not in {k.value for k in ToolKind}:
            return ToolKind.OTHER
        return v


class RequestPermissionRequest(_AcpModel):
    """Params of a session/request_permission request."""

    session_id: str
    tool_call: ToolCallUpdate
    options: list[PermissionOption] = Field(default_factory=list)


class SelectedOutcome(_AcpModel):
    outcome: Literal["selected"] = "selected"
    option_id: str


class CancelledOutcome(_AcpModel):
    outcome: Literal["cancelled"] = "cancelled"


class RequestPermissionResponse(_AcpModel):
    """Result of a session/request_permission request."""

    outcome: Union[SelectedOutcome, CancelledOutcome] = Field(discriminator="outcome")

    @classmethod
    def selected(cls, option_id: str) -> "RequestPermissionResponse":
        return cls(outcome=SelectedOutcome(option_id=option_id))

    def to_wire(self) -> dict[str, Any]:
        """Serialize with protocol field names."""
        return self.model_dump(by_alias=True, mode="json")


# =============================================================================
# Request Parsing
# =============================================================================


def parse_permission_request(payload: str | bytes | dict[str, Any]) -> RequestPermissionRequest:
    """
    Validate a permission request.

    Accepts either the bare params object or a full JSON-RPC message whose
    method is session/request_permission, as a dict or as JSON text.

    Raises:
        PermissionRequestError: If the payload is not valid JSON, is a
            different method, or does not match the request schema
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise PermissionRequestError(underlying_error=f"invalid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise PermissionRequestError(
            underlying_error=f"expected an object, got {type(payload).__name__}"
        )

    if "method" in payload:
        if payload["method"] != REQUEST_PERMISSION_METHOD:
            raise PermissionRequestError(
                underlying_error=f"unexpected method {payload['method']!r}"
            )
        payload = payload.get("params")

    try:
        return RequestPermissionRequest.model_validate(payload)
    except ValidationError as e:
        raise PermissionRequestError(underlying_error=str(e)) from e


# =============================================================================
# Request -> Operation
# =============================================================================


def operation_from_request(request: RequestPermissionRequest) -> Operation:
    """
    Map a permission request onto an Operation.

    The tool-call kind decides the operation kind when the agent sent one.
    Without a kind, the shape of raw_input is used instead: a command field
    means execute, a path field means edit (with new content) or read, a
    from/to pair means move, a query means search and a url means fetch.
    Anything else becomes an "other" operation named by the title.
    """
    tool_call = request.tool_call
    raw = tool_call.raw_input
    kind = tool_call.kind if tool_call.kind is not None else _infer_kind(raw)

    if kind == ToolKind.EXECUTE:
        command = _first_field(raw, COMMAND_FIELDS)
        if command is None:
            command = raw if isinstance(raw, str) else ""
        working_dir = _first_field(raw, WORKING_DIR_FIELDS)
        if working_dir:
            return Operation.execute_in(command, working_dir)
        return Operation.execute(command)
    if kind == ToolKind.READ:
        return Operation.read(_path_from(raw))
    if kind == ToolKind.EDIT:
        return Operation.edit(_path_from(raw))
    if kind == ToolKind.DELETE:
        return Operation.delete(_path_from(raw))
    if kind == ToolKind.MOVE:
        return Operation.move(
            _first_field(raw, SOURCE_FIELDS) or "",
            _first_field(raw, DESTINATION_FIELDS) or "",
        )
    if kind == ToolKind.SEARCH:
        return Operation.search(_first_field(raw, ("query",)) or "")
    if kind == ToolKind.FETCH:
        return Operation.fetch(_first_field(raw, ("url",)) or "")
    if kind == ToolKind.THINK:
        return Operation.think()
    if kind == ToolKind.SWITCH_MODE:
        return Operation.switch_mode(_first_field(raw, ("mode",)) or "")

    return Operation.other(tool_call.title or "unknown")


def _infer_kind(raw: Any) -> ToolKind:
    if _first_field(raw, COMMAND_FIELDS) is not None:
        return ToolKind.EXECUTE
    if _first_field(raw, PATH_FIELDS) is not None:
        if _first_field(raw, CONTENT_FIELDS) is not None:
            return ToolKind.EDIT
        return ToolKind.READ
    if _first_field(raw, SOURCE_FIELDS) is not None and _first_field(raw, DESTINATION_FIELDS) is not None:
        return ToolKind.MOVE
    has_url = _first_field(raw, ("url",)) is not None
    if _first_field(raw, ("query",)) is not None and not has_url:
        return ToolKind.SEARCH
    if has_url:
        return ToolKind.FETCH
    return ToolKind.OTHER


def _first_field(raw: Any, names: tuple[str, ...]) -> str | None:
    """Return the first string-valued field among names."""
    if not isinstance(raw, dict):
        return None
    for name in names:
        value = raw.get(name)
        if isinstance(value, str):
            return value
    return None


def _path_from(raw: Any) -> str:
    path = _first_field(raw, PATH_FIELDS)
    if path is not None:
        return path
    if isinstance(raw, str):
        return raw
    return ""


# =============================================================================
# Permission Gate
# =============================================================================


class PermissionDecision(BaseModel):
    """
    What to do with a permission request.

    Attributes:
        outcome: The ruleset outcome for the request
        reason: Explanation from the ruleset, or why no option fit
        response: The response to send, or None to escalate to the user
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    outcome: Outcome
    reason: str
    response: RequestPermissionResponse | None = None

    @property
    def escalate(self) -> bool:
        """True when the request must go to the user."""
        return self.response is None


class PermissionGate:
    """
    Answers ACP permission requests from a ruleset.

    Usage:
        gate = PermissionGate(default_ruleset(), remember=True)
        decision = gate.handle_permission_request(request)
        if decision.escalate:
            # forward the request to the user
        else:
            # reply with decision.response.to_wire()

    Attributes:
        ruleset: Rules used to evaluate requests
        remember: Prefer the "always" options so the client stops asking
    """

    def __init__(self, ruleset: Ruleset, remember: bool = False) -> None:
        self.ruleset = ruleset
        self.remember = remember

    def evaluate_request(self, request: RequestPermissionRequest) -> Outcome:
        return self.ruleset.evaluate(operation_from_request(request))

    def handle_permission_request(self, request: RequestPermissionRequest) -> PermissionDecision:
        operation = operation_from_request(request)
        decision = self.ruleset.decide(operation)
        label = operation.summary()

        if decision.outcome == Outcome.UNKNOWN:
            logger.info("Escalating %s: %s", label, decision.reason)
            return PermissionDecision(outcome=decision.outcome, reason=decision.reason)

        option = self._select_option(decision.outcome, request.options)
        if option is None:
            reason = f"no suitable {decision.outcome.value} option offered"
            logger.info("Escalating %s: %s", label, reason)
            return PermissionDecision(outcome=decision.outcome, reason=reason)

        logger.info("Auto-responding to %s: %s (%s)", label, option.option_id, option.kind.value)
        return PermissionDecision(
            outcome=decision.outcome,
            reason=decision.reason,
            response=RequestPermissionResponse.selected(option.option_id),
        )

    def _select_option(
        self,
        outcome: Outcome,
        options: list[PermissionOption],
    ) -> PermissionOption | None:
        if outcome == Outcome.ALLOW:
            once, always = PermissionOptionKind.ALLOW_ONCE, PermissionOptionKind.ALLOW_ALWAYS
        else:
            once, always = PermissionOptionKind.REJECT_ONCE, PermissionOptionKind.REJECT_ALWAYS

        preferred = [always, once] if self.remember else [once]
        for kind in preferred:
            for option in options:
                if option.kind == kind:
                    return option
        return None


def default_options() -> list[PermissionOption]:
    """The four standard options, for building requests in tests and tools."""
    return [
        PermissionOption(option_id=kind.value, name=kind.value.replace("_", " "), kind=kind)
        for kind in PermissionOptionKind
    ]
