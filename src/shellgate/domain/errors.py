"""Root of the shellgate exception hierarchy.

Concrete errors live next to the code that raises them. Every error's
message is the human-readable notice shown to the caller of a session.
"""


class GatewayError(Exception):
    """Base class for all shellgate errors."""
