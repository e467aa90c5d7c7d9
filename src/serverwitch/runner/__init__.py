"""Action execution module for serverwitch.

Public API:
    ActionRunner -- Abstract base class
    ActionExecutionError -- Raised when an action cannot be carried out
    LocalActionRunner -- Runs actions on this host
    execute -- Execute one action with a runner
"""

from serverwitch.runner.base import ActionExecutionError, ActionRunner, execute
from serverwitch.runner.local import LocalActionRunner

__all__ = ["ActionExecutionError", "ActionRunner", "LocalActionRunner", "execute"]
