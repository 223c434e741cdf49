"""
Telegram desk bots for Balance Desk.

ARCHITECTURE: staff review orders, balance charges and profile-edit requests
inside Telegram group chats, one bot per desk.
- Outbound: services post a message per record and remember its message_id
- Inbound: a poll loop pulls getUpdates per bot with a persisted cursor
- Replies are routed back to the record they answer and classified
  (accept / reject / literal status / structured balance credit)

Balance changes go through services.reconciler (ledger first, cache second).
"""

from .telegram_api import InboundUpdate, SendResult, TelegramTransport, get_transport
from .router import ReplyRouter, RouteOutcome
from .admin import AdminCommandHandler
from .polling import PollLoop, bot_key, build_poll_loop

__all__ = [
    "InboundUpdate",
    "SendResult",
    "TelegramTransport",
    "get_transport",
    "ReplyRouter",
    "RouteOutcome",
    "AdminCommandHandler",
    "PollLoop",
    "bot_key",
    "build_poll_loop",
]
