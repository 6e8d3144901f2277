"""
Authorization Gate

Decides whether an action control may be used by whoever clicked it.

Ownership comes from the action id itself, so it needs no cache and survives a
restart. Only the widen payload (the original source) comes from the cache.
"""

from dataclasses import dataclass
from typing import Optional

from quill.contexts.interactions.actions import ActionId, ActionKind
from quill.contexts.interactions.cache import InteractionCache, WidenEntry
from quill.contexts.interactions.exceptions import (
    AuthorizationDenied,
    MalformedActionId,
    UnknownCorrelation,
)


@dataclass(frozen=True)
class Authorization:
    """
    A granted action.

    Attributes:
        action: The decoded action id
        widen: Cached widen payload (only for WIDEN actions)
    """

    action: ActionId
    widen: Optional[WidenEntry] = None


class AuthorizationGate:
    """Checks action ownership, then looks up the correlation data the action needs."""

    def __init__(self, cache: InteractionCache):
        self.cache = cache

    def check_owner(self, raw_action_id: str, actor_id: int) -> ActionId:
        """
        Decode the action id and make sure the actor owns it. Pure: no cache access.

        Raises:
            AuthorizationDenied: If the actor is not the owner, or the id is unreadable
        """
        try:
            action = ActionId.decode(raw_action_id)
        except MalformedActionId as e:
            raise AuthorizationDenied(actor_id, reason=str(e)) from e

        if action.owner_id != actor_id:
            raise AuthorizationDenied(actor_id, owner_id=action.owner_id)

        return action

    def authorize(self, raw_action_id: str, actor_id: int, response_id: int) -> Authorization:
        """
        Authorize an action against a rendered response.

        Args:
            raw_action_id: Action id string from the clicked control
            actor_id: Who clicked it
            response_id: The response the control is attached to

        Returns:
            Authorization with the widen payload for WIDEN actions

        Raises:
            AuthorizationDenied: Actor does not own the control (checked first,
                without touching the cache)
            UnknownCorrelation: WIDEN on a response the cache no longer remembers
        """
        action = self.check_owner(raw_action_id, actor_id)

        if action.kind == ActionKind.DELETE:
            return Authorization(action=action)

        widen = self.cache.widen_info_for(response_id)
        if widen is None:
            raise UnknownCorrelation(response_id)
        return Authorization(action=action, widen=widen)
