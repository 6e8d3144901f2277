"""
Interactions Context

Responsibilities:
- Remembers which response belongs to which inbound message
- Remembers the source and owner of responses that can be widened
- Encodes owner identity into every action control
- Authorizes follow-up actions and carries out delete and widen

Owns: Correlation cache, action ids, authorization, chat gateway boundary
Never: Talks to containers or the LaTeX engine directly
"""

from quill.contexts.interactions.actions import ActionId, ActionKind
from quill.contexts.interactions.cache import ExpiringMap, InteractionCache, WidenEntry
from quill.contexts.interactions.exceptions import (
    AuthorizationDenied,
    MalformedActionId,
    UnknownCorrelation,
)
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
from quill.contexts.interactions.service import (
    ActionResult,
    InteractionService,
    Notices,
    build_reply,
)

__all__ = [
    # Correlation state
    "InteractionCache",
    "ExpiringMap",
    "WidenEntry",
    # Actions and authorization
    "ActionId",
    "ActionKind",
    "Authorization",
    "AuthorizationGate",
    # Gateway boundary
    "ChatGateway",
    "GatewayError",
    "InboundMessage",
    "ActionEvent",
    "OutboundReply",
    "Button",
    "ButtonStyle",
    # Service
    "InteractionService",
    "ActionResult",
    "Notices",
    "build_reply",
    # Errors
    "AuthorizationDenied",
    "MalformedActionId",
    "UnknownCorrelation",
]
