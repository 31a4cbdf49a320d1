"""Domain errors shared by the realtime and push layers.

The API layer maps these onto HTTPException; the realtime layer logs them
and disconnects. NotFound for push sends is an outcome (SendStatus), not
an exception.
"""


class Unauthorized(Exception):
    """Credential missing, malformed, expired, unknown, or lacking a role."""

    def __init__(self, reason: str = "unauthorized"):
        super().__init__(reason)
        self.reason = reason


class InvalidEventError(Exception):
    """A domain event is malformed (e.g. an order without an id)."""


class DeliveryFailure(Exception):
    """Base for push transport failures."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TransientDeliveryFailure(DeliveryFailure):
    """Temporary push service error. The registration is kept."""


class PermanentDeliveryFailure(DeliveryFailure):
    """The push service says the endpoint is gone. The registration is dropped."""
