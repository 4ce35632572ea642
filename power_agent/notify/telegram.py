import logging
from typing import Any, Callable, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)

API_URL = "https://api.telegram.org/bot{token}/{method}"


class TelegramError(Exception):
    pass


def _call(bot_token: str, method: str, http_timeout: float, session=None, **params) -> Any:
    http = session or requests
    url = API_URL.format(token=bot_token, method=method)
    try:
        resp = http.post(url, json=params, timeout=http_timeout)
        resp.raise_for_status()
        data = resp.json()
    except (requests.RequestException, ValueError) as e:
        raise TelegramError(f"{method} failed: {e}") from e

    if not data.get("ok"):
        raise TelegramError(f"Telegram API error: {data.get('description')}")
    return data.get("result")


def send_telegram_message(bot_token: str, chat_id: int, text: str, timeout: float = 10.0,
                          session=None) -> Dict[str, Any]:
    return _call(
        bot_token,
        "sendMessage",
        timeout,
        session=session,
        chat_id=chat_id,
        text=text,
        disable_web_page_preview=True,
    )


def get_updates(bot_token: str, offset: Optional[int] = None, poll_timeout: int = 30,
                session=None) -> List[Dict[str, Any]]:
    params = {"timeout": poll_timeout, "allowed_updates": ["message"]}
    if offset is not None:
        params["offset"] = offset
    return _call(bot_token, "getUpdates", poll_timeout + 10, session=session, **params) or []


def telegram_notifier(bot_token: str, chat_id: int, session=None) -> Callable[[str], Optional[str]]:
    """Notifier bound to one chat; returns the delivery error instead of raising."""
    def notify(message: str) -> Optional[str]:
        try:
            send_telegram_message(bot_token, chat_id, message, session=session)
        except TelegramError as e:
            return str(e)
        return None

    return notify
