"""
Chat gateway boundary.

The chat framework itself lives outside this package. It delivers inbound
events as the dataclasses below and accepts outbound replies through a
ChatGateway implementation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class GatewayError(Exception):
    """Raised by gateway implementations when the chat service rejects a call."""


class ButtonStyle(str, Enum):
    DANGER = "danger"
    SECONDARY = "secondary"


@dataclass(frozen=True)
class Button:
    """
    Interactive control attached to a reply.

    Attributes:
        label: Button text
        action_id: Encoded ActionId (opaque to the chat service)
        style: Visual style
        emoji: Optional emoji shown on the button
    """

    label: str
    action_id: str
    style: ButtonStyle = ButtonStyle.SECONDARY
    emoji: Optional[str] = None


@dataclass(frozen=True)
class OutboundReply:
    """
    A message the bot posts or edits.

    Either an embed-style notice (title/description) or an image attachment.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[bytes] = None
    filename: str = "latex.png"
    buttons: Tuple[Button, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class InboundMessage:
    """A chat message whose content should be rendered."""

    message_id: int
    channel_id: int
    author_id: int
    content: str


@dataclass(frozen=True)
class ActionEvent:
    """A click on an interactive control."""

    action_id: str
    actor_id: int
    channel_id: int
    response_id: int


class ChatGateway(ABC):
    """Outbound side of the chat framework."""

    @abstractmethod
    async def send(self, channel_id: int, reply: OutboundReply) -> int:
        """Post a reply. Returns the id of the posted message once it is confirmed sent."""

    @abstractmethod
    async def edit(self, channel_id: int, message_id: int, reply: OutboundReply) -> None:
        """Replace the content and controls of a posted message."""

    @abstractmethod
    async def delete(self, channel_id: int, message_id: int) -> None:
        """Delete a posted message."""

    @abstractmethod
    async def notify(self, actor_id: int, channel_id: int, text: str) -> None:
        """Show a short notice visible only to the given user."""
