import logging
import threading
import time
from typing import Any, Callable, Dict, Iterable, Optional

from power_agent.notify.telegram import TelegramError, get_updates, send_telegram_message, telegram_notifier
from power_agent.service import BackgroundLoop, PowerService

logger = logging.getLogger(__name__)

CONNECTING = "⏳ Connecting to the server… Please wait"
REQUEST_TIMEOUT = 60


def _display_name(msg: Dict[str, Any]) -> str:
    user = msg.get("from") or {}
    if user.get("first_name"):
        return user["first_name"]
    return user.get("username") or "Hey"


def _command(text: str) -> Optional[str]:
    if not text.startswith("/"):
        return None
    # "/power_on@my_bot arg" -> "power_on"
    return text.split()[0][1:].split("@", 1)[0].lower()


class TelegramBot:
    """
    Long-polling Telegram bot with /server_status, /power_on and /power_off.
    Only chats listed in allowed_chat_ids are answered.
    """

    def __init__(self, bot_token: str, allowed_chat_ids: Iterable, service: PowerService,
                 loop: BackgroundLoop, poll_timeout: int = 30, session=None):
        self.bot_token = bot_token
        self.allowed_chat_ids = {int(c) for c in allowed_chat_ids}
        self.service = service
        self.loop = loop
        self.poll_timeout = poll_timeout
        self.session = session
        self.offset = None
        self._stop = threading.Event()

        self.handlers: Dict[str, Callable[[int, str], None]] = {
            "server_status": self.server_status,
            "power_on": self.power_on,
            "power_off": self.power_off,
        }

    def reply(self, chat_id: int, text: str):
        try:
            send_telegram_message(self.bot_token, chat_id, text, session=self.session)
        except TelegramError as e:
            logger.error(f"Failed to send message to chat {chat_id}: {e}")

    def handle_update(self, upd: Dict[str, Any]) -> bool:
        """Dispatch one update. Returns True when a command handler ran."""
        self.offset = upd.get("update_id", 0) + 1

        msg = upd.get("message") or upd.get("edited_message")
        if not msg:
            return False

        chat_id = msg.get("chat", {}).get("id")
        if chat_id is None or int(chat_id) not in self.allowed_chat_ids:
            logger.warning(f"Ignoring message from unauthorized chat {chat_id}")
            return False

        handler = self.handlers.get(_command((msg.get("text") or "").strip()) or "")
        if handler is None:
            return False

        handler(int(chat_id), _display_name(msg))
        return True

    def server_status(self, chat_id: int, name: str):
        logger.info(f"{name} checks the server status")
        self.reply(chat_id, CONNECTING)

        snapshot = self.loop.run(self.service.state(), timeout=REQUEST_TIMEOUT)
        if snapshot.errors:
            for signal, error in snapshot.errors:
                logger.error(f"Failed to retrieve {signal.upper()} state: {error}")
            self.reply(chat_id, "❌ Oops! Something went wrong while checking the server")
        elif snapshot.is_on:
            self.reply(chat_id, "🌞 Server is awake!")
        else:
            self.reply(chat_id, "💤 Server is asleep!")

    def power_on(self, chat_id: int, name: str):
        logger.info(f"{name} attempts to switch on the server")
        self.reply(chat_id, CONNECTING)

        notifier = telegram_notifier(self.bot_token, chat_id, session=self.session)
        result = self.loop.run(self.service.power_on(notifier, name=name), timeout=REQUEST_TIMEOUT)
        self.loop.keep(result.task)
        self.reply(chat_id, result.message)

    def power_off(self, chat_id: int, name: str):
        logger.info(f"{name} attempts to switch off the server")
        self.reply(chat_id, CONNECTING)

        result = self.loop.run(self.service.power_off(), timeout=REQUEST_TIMEOUT)
        self.reply(chat_id, result.message)

    def poll_once(self) -> int:
        updates = get_updates(self.bot_token, self.offset, self.poll_timeout, session=self.session)
        for upd in updates:
            try:
                self.handle_update(upd)
            except Exception:
                logger.exception(f"Handler failed for update {upd.get('update_id')}")
        return len(updates)

    def run_forever(self):
        logger.info(f"Telegram bot polling ({len(self.allowed_chat_ids)} allowed chat(s))")
        while not self._stop.is_set():
            try:
                self.poll_once()
            except TelegramError as e:
                logger.error(f"Polling failed: {e}")
                time.sleep(2)

    def stop(self):
        self._stop.set()
