"""
Action identifiers for interactive controls.

Every control attached to a response carries an ActionId naming what it does and
who owns it. It is serialized to an opaque string only at the gateway boundary:

    ActionId(ActionKind.WIDEN, owner_id=42).encode()  ->  "widen:42"
"""

from dataclasses import dataclass
from enum import Enum

from quill.contexts.interactions.exceptions import MalformedActionId

SEPARATOR = ":"


class ActionKind(str, Enum):
    """What an interactive control does."""

    DELETE = "delete"
    WIDEN = "widen"


@dataclass(frozen=True)
class ActionId:
    """
    Structured identifier of an interactive control.

    Attributes:
        kind: Action the control triggers
        owner_id: Identity of the user who owns the rendered response
    """

    kind: ActionKind
    owner_id: int

    def encode(self) -> str:
        return f"{self.kind.value}{SEPARATOR}{self.owner_id}"

    @classmethod
    def decode(cls, raw: str) -> "ActionId":
        """
        Parse an action id produced by encode().

        Raises:
            MalformedActionId: If the kind is unknown or the owner is not an integer
        """
        kind_token, separator, owner_token = raw.partition(SEPARATOR)
        if not separator:
            raise MalformedActionId(raw, "missing separator")

        try:
            kind = ActionKind(kind_token)
        except ValueError:
            raise MalformedActionId(raw, f"unknown action kind {kind_token!r}") from None

        if not (owner_token.isascii() and owner_token.isdigit()):
            raise MalformedActionId(raw, "owner is not a numeric id")

        return cls(kind=kind, owner_id=int(owner_token))
