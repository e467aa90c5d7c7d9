"""Live terminal view for serverwitch.

Shows the actions of the session as rows under the shell prompt,
animates running ones and collects y/n confirmations.

Public API:
    run -- Run the view until the operator quits
    App -- View state and drawing logic
    TerminalBackend -- Abstract drawing primitives
    AnsiTerminal -- Backend for a real tty
"""

from serverwitch.tui.app import App, run
from serverwitch.tui.terminal import AnsiTerminal, TerminalBackend

__all__ = ["AnsiTerminal", "App", "TerminalBackend", "run"]
