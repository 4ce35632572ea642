from unittest.mock import Mock, patch

import pytest

from power_agent.bot import CONNECTING, TelegramBot
from power_agent.power.controller import SimulatedBackend
from power_agent.schedule import ScheduleConfig
from power_agent.service import BackgroundLoop, PowerService

from conftest import OFF, ScriptedBackend, err

CHAT = 4242
FAST = ScheduleConfig(timeout=0.2, min_interval=0.02, max_interval=0.05, curve_shift=1.5, factor=1.0)


def update(text, chat_id=CHAT, update_id=10, first_name="Sam"):
    return {
        "update_id": update_id,
        "message": {"chat": {"id": chat_id}, "from": {"first_name": first_name}, "text": text},
    }


@pytest.fixture
def loop():
    loop = BackgroundLoop().start()
    yield loop
    loop.stop()


@pytest.fixture
def sent():
    messages = []

    def fake_send(token, chat_id, text, session=None):
        messages.append((chat_id, text))

    with patch("power_agent.bot.send_telegram_message", side_effect=fake_send), \
            patch("power_agent.notify.telegram.send_telegram_message", side_effect=fake_send):
        yield messages


def make_bot(backend, loop):
    return TelegramBot("token", [CHAT], PowerService(backend, FAST), loop)


def test_server_status_asleep(loop, sent):
    bot = make_bot(SimulatedBackend(), loop)

    assert bot.handle_update(update("/server_status"))
    assert sent == [(CHAT, CONNECTING), (CHAT, "💤 Server is asleep!")]
    assert bot.offset == 11


def test_server_status_probe_error(loop, sent):
    bot = make_bot(ScriptedBackend([(err(), OFF)]), loop)

    bot.handle_update(update("/server_status"))

    assert sent[-1][1].startswith("❌")


def test_power_on_with_bot_suffix(loop, sent):
    bot = make_bot(SimulatedBackend(boot_seconds=10), loop)

    assert bot.handle_update(update("/power_on@power_bot"))
    assert (CHAT, "✨ The server is waking up! It'll be ready soon") in sent


def test_power_off_when_already_off(loop, sent):
    bot = make_bot(SimulatedBackend(), loop)

    bot.handle_update(update("/power_off"))

    assert sent[-1] == (CHAT, "✅ The server is already stopped!")


def test_unauthorized_chat_is_ignored(loop, sent):
    bot = make_bot(SimulatedBackend(), loop)

    assert not bot.handle_update(update("/power_on", chat_id=1))
    assert sent == []


def test_plain_text_and_unknown_commands_are_ignored(loop, sent):
    bot = make_bot(SimulatedBackend(), loop)

    assert not bot.handle_update(update("hello"))
    assert not bot.handle_update(update("/reboot"))
    assert sent == []


def test_poll_once_advances_offset(loop, sent):
    bot = make_bot(SimulatedBackend(), loop)
    updates = [update("/server_status", update_id=5), update("hi", update_id=6)]

    with patch("power_agent.bot.get_updates", return_value=updates) as get:
        assert bot.poll_once() == 2

    get.assert_called_once_with("token", None, 30, session=None)
    assert bot.offset == 7


def test_poll_once_through_bot_api(loop, sent):
    session = Mock()
    session.post.return_value.json.return_value = {
        "ok": True,
        "result": [update("/server_status", update_id=20)],
    }
    bot = TelegramBot("token", [CHAT], PowerService(SimulatedBackend(), FAST), loop,
                      poll_timeout=5, session=session)

    assert bot.poll_once() == 1

    url, kwargs = session.post.call_args[0][0], session.post.call_args[1]
    assert url == "https://api.telegram.org/bottoken/getUpdates"
    assert kwargs["json"]["timeout"] == 5
    assert kwargs["timeout"] == 15
    assert sent[-1] == (CHAT, "💤 Server is asleep!")
    assert bot.offset == 21
