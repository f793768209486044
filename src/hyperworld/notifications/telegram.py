"""Telegram operator notifications."""

from __future__ import annotations

import asyncio
import html
import logging
import urllib.parse
import urllib.request
from decimal import Decimal

from hyperworld.core.precision import format_decimal
from hyperworld.execution.models import OrderAck

logger = logging.getLogger(__name__)

API_URL = "https://api.telegram.org/bot{token}/sendMessage"


class TelegramNotifier:
    """Posts engine events to a Telegram chat through the Bot API.

    Disabled (every call is a no-op) unless both token and chat id are set.
    Delivery failures are logged and never reach the engine.
    """

    def __init__(self, bot_token: str = "", chat_id: str = "", account_label: str = "") -> None:
        self._bot_token = bot_token.strip()
        self._chat_id = chat_id.strip()
        self._account_label = account_label.strip()
        self._enabled = bool(self._bot_token and self._chat_id)
        self.sent: list[str] = []

    @property
    def enabled(self) -> bool:
        return self._enabled

    def _prefix(self) -> str:
        if not self._account_label:
            return ""
        return f"<b>[{html.escape(self._account_label)}]</b> "

    async def send_message(self, message: str) -> None:
        if not self._enabled:
            return
        text = self._prefix() + message
        try:
            await asyncio.to_thread(self._post_message, text)
            self.sent.append(text)
        except Exception as exc:
            logger.warning("Telegram message failed: %s", exc)

    def _post_message(self, message: str) -> None:
        payload = urllib.parse.urlencode(
            {
                "chat_id": self._chat_id,
                "text": message,
                "parse_mode": "HTML",
                "disable_web_page_preview": "true",
            }
        ).encode("utf-8")
        url = API_URL.format(token=self._bot_token)
        request = urllib.request.Request(url, data=payload, method="POST")
        with urllib.request.urlopen(request, timeout=10) as response:
            response.read()

    # Event messages

    async def notify_order(self, agent_label: str, ack: OrderAck, reason: str) -> None:
        req = ack.request
        await self.send_message(
            f"🟢 <b>{req.side.value.upper()}</b> {format_decimal(req.size)} "
            f"{html.escape(req.order_name)} @ {format_decimal(req.price)}\n"
            f"{html.escape(agent_label)}\n"
            f"Status: {ack.status} | {html.escape(reason)}"
        )

    async def notify_transfer(
        self, agent_label: str, amount: Decimal, source: str, target: str
    ) -> None:
        await self.send_message(
            f"🔁 Moved {format_decimal(amount)} USDC {source} → {target}\n"
            f"{html.escape(agent_label)}"
        )

    async def notify_legacy_close(self, agent_label: str, closed: bool) -> None:
        outcome = "closed" if closed else "close incomplete, strategy paused"
        await self.send_message(
            f"🧹 Legacy perp positions {outcome}\n{html.escape(agent_label)}"
        )

    async def notify_cycle_failure(self, error: str) -> None:
        await self.send_message(f"⚠️ Cycle abandoned: {html.escape(error)}")
