"""shellgate -- Remote gateway for operator-defined shell commands.

This package exposes a fixed registry of local commands to remote clients.
A client names a command and supplies its parameters over a WebSocket; the
server validates them against the registry, runs the process with a
discrete argument vector (never through a shell) and streams its output
back as it is produced.
"""

__version__ = "0.1.0"
