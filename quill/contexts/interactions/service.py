"""
Interaction Service

Glue between the chat gateway, the render job supervisor and the correlation
cache. Handles three events:

- a message to render (replacing any earlier response to the same message)
- a click on a delete control
- a click on a widen control (re-render the cached source in WIDE mode)

Per response the controls follow:

    Rendered (fits)       -> delete only
    Rendered (overflowed) -> delete + widen -> Deleted | Widened
    Widened               -> delete only, new image
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, Dict, Hashable

from quill.contexts.interactions.actions import ActionId, ActionKind
from quill.contexts.interactions.cache import InteractionCache
from quill.contexts.interactions.exceptions import AuthorizationDenied, UnknownCorrelation
from quill.contexts.interactions.gate import Authorization, AuthorizationGate
from quill.contexts.interactions.gateway import (
    ActionEvent,
    Button,
    ButtonStyle,
    ChatGateway,
    GatewayError,
    InboundMessage,
    OutboundReply,
)
from quill.contexts.interactions.logger import _log_debug, _log_error, _log_info, _log_warning
from quill.contexts.rendering import (
    RenderJobSupervisor,
    RenderMode,
    RenderOutcome,
    RenderReply,
    RenderSuccess,
    UserMessages,
    present,
)


class ActionResult(str, Enum):
    """How an action click was resolved."""

    DELETED = "deleted"
    WIDENED = "widened"
    DENIED = "denied"
    UNKNOWN = "unknown"
    FAILED = "failed"


class Notices:
    """Short ephemeral notices shown only to the actor."""

    NOT_YOURS = "Only the person who asked for this render can use that button."
    FORGOTTEN = "I no longer remember the source of this render, so it can't be widened."
    EDIT_FAILED = "Couldn't update the render. It may have been deleted."


@dataclass
class _KeySlot:
    """Lock for one message or response, with the number of tasks holding or awaiting it."""

    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


def build_reply(rendered: RenderReply, owner_id: int, offer_widen: bool = False) -> OutboundReply:
    """
    Turn a RenderReply into a gateway reply with the owner's controls attached.

    Every reply gets a delete control; overflowed renders also get a widen control.
    """
    buttons = [
        Button(
            label="Delete",
            action_id=ActionId(ActionKind.DELETE, owner_id).encode(),
            style=ButtonStyle.DANGER,
            emoji="\N{WASTEBASKET}",
        )
    ]
    if offer_widen:
        buttons.append(
            Button(
                label="Render wider",
                action_id=ActionId(ActionKind.WIDEN, owner_id).encode(),
                emoji="\N{LEFT RIGHT ARROW}",
            )
        )

    if rendered.is_image:
        return OutboundReply(image=rendered.image, buttons=tuple(buttons))
    return OutboundReply(title=rendered.title, description=rendered.body, buttons=tuple(buttons))


class InteractionService:
    """
    Handles render and action events for one bot process.

    The cache is owned by whoever builds the service (one per process) and is
    shared with the authorization gate.

    Events for the same inbound message, or the same response, run one at a
    time: a re-render waits until the previous render of that message has
    registered its response, so it always finds (and deletes) it.
    """

    def __init__(
        self,
        supervisor: RenderJobSupervisor,
        cache: InteractionCache,
        gateway: ChatGateway,
    ):
        self.supervisor = supervisor
        self.cache = cache
        self.gateway = gateway
        self.gate = AuthorizationGate(cache)
        self._slots: Dict[Hashable, _KeySlot] = {}

    @asynccontextmanager
    async def _serialized(self, key: Hashable) -> AsyncIterator[None]:
        """Hold the lock for key; the slot is dropped once nobody holds or awaits it."""
        slot = self._slots.setdefault(key, _KeySlot())
        slot.users += 1
        try:
            async with slot.lock:
                yield
        finally:
            slot.users -= 1
            if slot.users == 0:
                del self._slots[key]

    async def handle_message(self, message: InboundMessage) -> RenderOutcome:
        """
        Render a message and post the result.

        If this message was rendered before (e.g. it was edited), the earlier
        response is deleted first, before the new one is registered.

        Returns:
            The render outcome
        """
        async with self._serialized(("message", message.message_id)):
            return await self._render_message(message)

    async def _render_message(self, message: InboundMessage) -> RenderOutcome:
        prior = self.cache.prior_response_for(message.message_id)
        if prior is not None:
            _log_info(f"Replacing response {prior} for message {message.message_id}")
            await self._delete_quietly(message.channel_id, prior)
            self.cache.discard_widen(prior)

        outcome = await self.supervisor.render_for(
            message.message_id, RenderMode.NORMAL, message.content
        )
        rendered = present(outcome)
        reply = build_reply(rendered, message.author_id, offer_widen=rendered.overflow)

        try:
            response_id = await self.gateway.send(message.channel_id, reply)
        except GatewayError as e:
            _log_error(f"Could not post response for message {message.message_id}: {e}")
            return outcome

        dropped = self.cache.purge_expired()
        if dropped:
            _log_debug(f"Dropped {dropped} expired cache entries")

        self.cache.register_response(message.message_id, response_id)
        if rendered.overflow:
            self.cache.register_widen(response_id, message.author_id, message.content)

        return outcome

    async def handle_action(self, event: ActionEvent) -> ActionResult:
        """
        Resolve a click on a delete or widen control.

        Ownership is checked before anything else; a denied or forgotten action
        only produces a notice to the actor and changes nothing.
        """
        async with self._serialized(("response", event.response_id)):
            return await self._resolve_action(event)

    async def _resolve_action(self, event: ActionEvent) -> ActionResult:
        try:
            authorization = self.gate.authorize(event.action_id, event.actor_id, event.response_id)
        except AuthorizationDenied as e:
            _log_warning(f"Denied action on response {event.response_id}: {e}")
            await self._notify(event, Notices.NOT_YOURS)
            return ActionResult.DENIED
        except UnknownCorrelation:
            _log_info(f"Widen requested for forgotten response {event.response_id}")
            await self._notify(event, Notices.FORGOTTEN)
            return ActionResult.UNKNOWN

        if authorization.action.kind == ActionKind.DELETE:
            await self._delete_quietly(event.channel_id, event.response_id)
            self.cache.discard_widen(event.response_id)
            return ActionResult.DELETED

        return await self._widen(event, authorization)

    async def _widen(self, event: ActionEvent, authorization: Authorization) -> ActionResult:
        outcome = await self.supervisor.render_for(
            event.response_id, RenderMode.WIDE, authorization.widen.source
        )
        rendered = present(outcome)

        if not isinstance(outcome, RenderSuccess):
            # Original response and its widen entry stay as they were
            await self._notify(event, rendered.body)
            return ActionResult.FAILED

        reply = build_reply(rendered, authorization.action.owner_id, offer_widen=False)
        try:
            await self.gateway.edit(event.channel_id, event.response_id, reply)
        except GatewayError as e:
            _log_error(f"Could not replace response {event.response_id}: {e}")
            await self._notify(event, Notices.EDIT_FAILED)
            return ActionResult.FAILED

        self.cache.discard_widen(event.response_id)
        return ActionResult.WIDENED

    async def _delete_quietly(self, channel_id: int, message_id: int) -> None:
        # Already gone is fine
        try:
            await self.gateway.delete(channel_id, message_id)
        except GatewayError as e:
            _log_debug(f"Delete of message {message_id} failed: {e}")

    async def _notify(self, event: ActionEvent, text: str) -> None:
        try:
            await self.gateway.notify(
                event.actor_id, event.channel_id, text or UserMessages.GENERIC_FAILURE
            )
        except GatewayError as e:
            _log_debug(f"Could not notify actor {event.actor_id}: {e}")
