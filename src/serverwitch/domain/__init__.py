"""Domain models for serverwitch.

This package contains the actions, results, wire envelopes and
lifecycle notifications used throughout the system. All models use
Pydantic v2 for validation and serialization.
"""

from serverwitch.domain.models import (
    Action,
    ActionMessage,
    ActionResult,
    ActionState,
    AddAction,
    CommandAction,
    CommandResult,
    ConfirmAction,
    ExecutionError,
    NewSession,
    ReadAction,
    ReadResult,
    Request,
    Response,
    StatefulAction,
    StopAction,
    WriteAction,
    WriteResult,
)

__all__ = [
    "Action",
    "ActionMessage",
    "ActionResult",
    "ActionState",
    "AddAction",
    "CommandAction",
    "CommandResult",
    "ConfirmAction",
    "ExecutionError",
    "NewSession",
    "ReadAction",
    "ReadResult",
    "Request",
    "Response",
    "StatefulAction",
    "StopAction",
    "WriteAction",
    "WriteResult",
]
