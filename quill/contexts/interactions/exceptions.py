"""Custom exceptions for interactions context."""

from typing import Optional


class AuthorizationDenied(Exception):
    """
    Raised when someone other than the owner triggers an action control.

    Attributes:
        actor_id: Who triggered the action
        owner_id: Owner encoded in the action id (None if it could not be decoded)
    """

    def __init__(self, actor_id: int, owner_id: Optional[int] = None, reason: str = ""):
        self.actor_id = actor_id
        self.owner_id = owner_id
        message = f"Actor {actor_id} may not use a control owned by {owner_id}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class MalformedActionId(ValueError):
    """Raised when an action id string cannot be decoded."""

    def __init__(self, raw: str, reason: str):
        self.raw = raw
        super().__init__(f"Malformed action id {raw[:64]!r}: {reason}")


class UnknownCorrelation(LookupError):
    """
    Raised when an action targets a response the cache no longer remembers
    (process restart or eviction).

    Attributes:
        response_id: The response the action was attached to
    """

    def __init__(self, response_id: int):
        self.response_id = response_id
        super().__init__(f"No widen entry for response {response_id}")
