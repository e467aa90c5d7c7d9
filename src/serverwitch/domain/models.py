"""Core domain models for the serverwitch agent.

These models represent the data flowing through the system: actions
requested by the relay, their results, the request/response envelopes
exchanged on the wire, and the lifecycle notifications the session
posts to the terminal view.
"""

from __future__ import annotations

import enum
from typing import Annotated, Any, Literal, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_serializer, model_validator

from serverwitch.domain.channels import Acknowledgement


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ActionState(str, enum.Enum):
    """Lifecycle state of an action as tracked by the view."""

    PENDING = "pending"  # Waiting for operator confirmation
    RUNNING = "running"
    FINISHED = "finished"  # The runner returned, successfully or not
    CANCELED = "canceled"  # The operator refused

    @property
    def is_terminal(self) -> bool:
        return self in (ActionState.FINISHED, ActionState.CANCELED)


_TRANSITIONS: dict[ActionState, frozenset[ActionState]] = {
    ActionState.PENDING: frozenset({ActionState.RUNNING, ActionState.CANCELED}),
    ActionState.RUNNING: frozenset({ActionState.FINISHED}),
    ActionState.FINISHED: frozenset(),
    ActionState.CANCELED: frozenset(),
}


# ---------------------------------------------------------------------------
# Actions (discriminated union)
# ---------------------------------------------------------------------------


class ReadAction(BaseModel):
    """Read a whole text file."""

    model_config = ConfigDict(frozen=True)

    action: Literal["read"] = "read"
    path: str = Field(description="Path of the file to read")

    def describe(self) -> str:
        return self.path


class CommandAction(BaseModel):
    """Run a command through the shell interpreter."""

    model_config = ConfigDict(frozen=True)

    action: Literal["command"] = "command"
    command: str = Field(description="Command line passed to the shell as a single argument")

    def describe(self) -> str:
        return self.command


class WriteAction(BaseModel):
    """Create or truncate a file and write text into it."""

    model_config = ConfigDict(frozen=True)

    action: Literal["write"] = "write"
    path: str = Field(description="Path of the file to write")
    content: str = Field(description="Text written to the file")

    def describe(self) -> str:
        return f"{self.path} {self.content}"


Action = Annotated[
    Union[ReadAction, CommandAction, WriteAction],
    Field(discriminator="action"),
]


# ---------------------------------------------------------------------------
# Action results
# ---------------------------------------------------------------------------


class ReadResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    content: str


class CommandResult(BaseModel):
    """Output of a shell command.

    ``exit_code`` is None when the process was terminated by a signal.
    On the wire the field is named ``return_code``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    exit_code: int | None = Field(default=None, alias="return_code")
    stdout: str
    stderr: str


class WriteResult(BaseModel):
    """Number of UTF-8 bytes written. Serialized as ``size``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    bytes_written: int = Field(ge=0, alias="size")


class ExecutionError(BaseModel):
    """An action that could not be carried out.

    Serialized untagged as ``{"Error": message}``.
    """

    model_config = ConfigDict(frozen=True)

    message: str

    @model_validator(mode="before")
    @classmethod
    def _from_wire(cls, data: Any) -> Any:
        if isinstance(data, dict) and "Error" in data:
            return {"message": data["Error"]}
        return data

    @model_serializer
    def _to_wire(self) -> dict[str, str]:
        return {"Error": self.message}


ActionResult = Union[ReadResult, CommandResult, WriteResult, ExecutionError]

REFUSAL_MESSAGE = "The operator refused to run the action"


# ---------------------------------------------------------------------------
# Wire envelopes
# ---------------------------------------------------------------------------


class Handshake(BaseModel):
    """First frame sent by the relay after the connection opens."""

    session_id: str


class Request(BaseModel):
    data: Action
    request_id: str


class Response(BaseModel):
    """Reply to a Request. ``request_id`` is echoed verbatim."""

    data: ActionResult
    error: bool
    request_id: str

    @classmethod
    def refused(cls, request_id: str) -> Response:
        return cls(
            data=ExecutionError(message=REFUSAL_MESSAGE),
            error=True,
            request_id=request_id,
        )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


# ---------------------------------------------------------------------------
# View-side state
# ---------------------------------------------------------------------------


class StatefulAction(BaseModel):
    """An action together with its lifecycle state, the unit shown in the view."""

    action: Action
    state: ActionState

    def transition(self, new_state: ActionState) -> None:
        """Move to ``new_state``.

        Raises:
            ValueError: If the lifecycle does not allow the transition.
        """
        if new_state not in _TRANSITIONS[self.state]:
            raise ValueError(
                f"Invalid action transition {self.state.value} -> {new_state.value}"
            )
        self.state = new_state


# ---------------------------------------------------------------------------
# Lifecycle notifications (session -> view mailbox)
# ---------------------------------------------------------------------------


class ConfirmAction(BaseModel):
    """Ask the operator to approve an action.

    The view must answer ``ack`` exactly once or close it.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: Literal["confirm"] = "confirm"
    action_id: UUID
    action: Action
    ack: Acknowledgement


class AddAction(BaseModel):
    """An action admitted without confirmation; it is already running."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["add"] = "add"
    action_id: UUID
    action: Action


class StopAction(BaseModel):
    """The action identified by ``action_id`` has finished."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["stop"] = "stop"
    action_id: UUID


class NewSession(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["session"] = "session"
    session_id: str


ActionMessage = Union[ConfirmAction, AddAction, StopAction, NewSession]
