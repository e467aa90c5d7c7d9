"""serverwitch -- Remote-control agent for a relay-driven AI operator.

The agent keeps a websocket session open with a relay, receives action
requests (run a command, read a file, write a file), asks the operator
to confirm each one in a live terminal view, executes it and sends the
result back.
"""

__version__ = "0.1.1"
