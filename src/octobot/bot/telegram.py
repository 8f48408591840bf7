"""Telegram Bot API transport and long-polling loop."""

import asyncio
import logging
from typing import Any

import httpx

from ..config import DEFAULT_TELEGRAM_BASE_URL, DEFAULT_TIMEOUT
from ..errors import UpstreamUnavailable
from .dispatcher import CommandDispatcher

logger = logging.getLogger(__name__)

POLL_TIMEOUT = 30
POLL_ERROR_DELAY = 5.0
ALLOWED_UPDATES = ["message", "callback_query"]


class TelegramTransport:
    """Minimal async Telegram Bot API client."""

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_TELEGRAM_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        http: httpx.AsyncClient | None = None,
    ):
        self.api_url = f"{base_url.rstrip('/')}/bot{token}"
        self.timeout = timeout
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> "TelegramTransport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def call(self, method: str, request_timeout: float | None = None, **params) -> Any:
        """Call a Bot API method and return its result."""
        payload = {k: v for k, v in params.items() if v is not None}
        try:
            response = await self._http.post(
                f"{self.api_url}/{method}",
                json=payload,
                timeout=request_timeout or self.timeout,
            )
            data = response.json()
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Network error calling Telegram {method}: {e}") from e
        except ValueError as e:
            raise UpstreamUnavailable(f"Invalid JSON from Telegram {method}") from e

        if not data.get("ok"):
            raise UpstreamUnavailable(
                f"Telegram {method} failed: {data.get('error_code', response.status_code)} "
                f"{data.get('description', '')}".rstrip()
            )
        return data.get("result")

    async def send_message(
        self, chat_id: int, text: str, parse_mode: str | None = None, reply_markup: dict | None = None
    ) -> dict:
        return await self.call(
            "sendMessage", chat_id=chat_id, text=text, parse_mode=parse_mode, reply_markup=reply_markup
        )

    async def edit_message_text(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        parse_mode: str | None = None,
        reply_markup: dict | None = None,
    ) -> dict:
        return await self.call(
            "editMessageText",
            chat_id=chat_id,
            message_id=message_id,
            text=text,
            parse_mode=parse_mode,
            reply_markup=reply_markup,
        )

    async def answer_callback_query(self, callback_query_id: str) -> Any:
        return await self.call("answerCallbackQuery", callback_query_id=callback_query_id)

    async def get_updates(self, offset: int | None = None, timeout: int = POLL_TIMEOUT) -> list[dict]:
        """Long-poll for new updates."""
        return await self.call(
            "getUpdates",
            # HTTP timeout must outlast the server-side long poll
            request_timeout=timeout + self.timeout,
            offset=offset,
            allowed_updates=ALLOWED_UPDATES,
            timeout=timeout,
        )


def _log_task_result(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Failed to handle update: %s", exc, exc_info=exc)


async def run_polling(
    transport: TelegramTransport,
    dispatcher: CommandDispatcher,
    poll_timeout: int = POLL_TIMEOUT,
) -> None:
    """Poll for updates and handle each one in its own task. Runs until cancelled."""
    offset = None
    pending: set[asyncio.Task] = set()
    logger.info("Bot started.")

    try:
        while True:
            try:
                updates = await transport.get_updates(offset=offset, timeout=poll_timeout)
            except UpstreamUnavailable as e:
                logger.warning("Polling failed: %s", e)
                await asyncio.sleep(POLL_ERROR_DELAY)
                continue

            for update in updates or []:
                offset = update["update_id"] + 1
                task = asyncio.create_task(dispatcher.dispatch(update))
                pending.add(task)
                task.add_done_callback(pending.discard)
                task.add_done_callback(_log_task_result)
    finally:
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
