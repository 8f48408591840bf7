"""Routes bot commands and button presses to the status report.

Two triggers, no stored state:

* ``/start`` sends a fresh report with a refresh button.
* pressing the refresh button edits that message in place.
"""

import logging
import re
from typing import Any, Awaitable, Callable, Protocol

from ..errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

REFRESH = "refresh"
REFRESH_LABEL = "🔄 Refresh"
PARSE_MODE = "Markdown"

START_COMMAND = re.compile(r"^/start(@\w+)?(\s|$)")


def refresh_keyboard() -> dict[str, Any]:
    """Inline keyboard with the single refresh button."""
    return {"inline_keyboard": [[{"text": REFRESH_LABEL, "callback_data": REFRESH}]]}


class Transport(Protocol):
    """What the dispatcher needs from the messaging platform."""

    async def send_message(
        self, chat_id: int, text: str, parse_mode: str | None = None, reply_markup: dict | None = None
    ) -> dict: ...

    async def edit_message_text(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        parse_mode: str | None = None,
        reply_markup: dict | None = None,
    ) -> dict: ...

    async def answer_callback_query(self, callback_query_id: str) -> Any: ...


class CommandDispatcher:
    """Handles /start and refresh callbacks.

    ``build_report`` must always resolve to displayable text (it does not
    raise), so no error handling happens here.
    """

    def __init__(self, transport: Transport, build_report: Callable[[], Awaitable[str]]):
        self.transport = transport
        self.build_report = build_report

    async def handle_start(self, chat_id: int) -> None:
        logger.info("Received /start command from chat %s", chat_id)
        message = await self.build_report()
        await self.transport.send_message(
            chat_id, message, parse_mode=PARSE_MODE, reply_markup=refresh_keyboard()
        )

    async def handle_callback(self, callback_id: str, chat_id: int, message_id: int, data: str | None) -> None:
        if data != REFRESH:
            logger.debug("Ignoring callback %r from chat %s", data, chat_id)
            return

        logger.info("Received refresh request from chat %s", chat_id)
        try:
            await self.transport.answer_callback_query(callback_id)
        except UpstreamUnavailable as e:
            # Stale callbacks can no longer be acknowledged; the edit still applies
            logger.warning("Could not acknowledge callback %s: %s", callback_id, e)
        message = await self.build_report()
        await self.transport.edit_message_text(
            chat_id, message_id, message, parse_mode=PARSE_MODE, reply_markup=refresh_keyboard()
        )

    async def dispatch(self, update: dict[str, Any]) -> None:
        """Route one raw Telegram update."""
        callback = update.get("callback_query")
        if callback:
            message = callback.get("message") or {}
            chat_id = (message.get("chat") or {}).get("id")
            message_id = message.get("message_id")
            if chat_id is None or message_id is None:
                logger.debug("Callback %s has no originating message", callback.get("id"))
                return
            await self.handle_callback(callback.get("id"), chat_id, message_id, callback.get("data"))
            return

        message = update.get("message")
        if message and START_COMMAND.match(message.get("text") or ""):
            await self.handle_start(message["chat"]["id"])
