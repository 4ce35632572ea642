import argparse
import asyncio
import json
import logging
import os
import sys
import threading

from power_agent.config import DEFAULT_CONFIG_PATH, ConfigValidationError, load_config
from power_agent.evaluator import read_state
from power_agent.logger import setup_logging_from_config
from power_agent.monitor import log_notifier
from power_agent.notify.messages import StartupMessages
from power_agent.power.registry import backend_from_config
from power_agent.schedule import ScheduleConfig, ScheduleError, format_schedule
from power_agent.service import BackgroundLoop, PowerService, TriggerStatus

logger = logging.getLogger("power_agent.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="power-agent", description="Remote server power control")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="YAML configuration file")
    parser.add_argument("-b", "--backend", help="backend to use (overrides backend.name)")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("state", help="Fetch the server state")
    up = sub.add_parser("up", help="Start the server")
    up.add_argument("--wait", action="store_true", help="watch the startup until it succeeds or times out")
    sub.add_parser("down", help="Turn off the server")
    sub.add_parser("schedule", help="Show the startup polling schedule")
    sub.add_parser("serve", help="Run the HTTP API and the Telegram bot")
    return parser


def build_service(cfg: dict, backend_name: str = None) -> PowerService:
    return PowerService(
        backend_from_config(cfg, backend_name),
        schedule=ScheduleConfig.from_config(cfg["monitor"]),
        messages=StartupMessages(cute=cfg["notifications"].get("cute_messages", False)),
    )


def cmd_state(service: PowerService) -> int:
    snapshot = read_state(service.backend)
    for signal, error in snapshot.errors:
        print(f"Failed to retrieve {signal.upper()} state: {error}", file=sys.stderr)
    print(json.dumps(snapshot.to_dict()))
    return 1 if snapshot.errors else 0


async def _up(service: PowerService, wait: bool) -> int:
    result = await service.power_on(log_notifier(logger), name="CLI", monitor=wait)
    print(result.message)
    if result.status == TriggerStatus.ERROR:
        return 1
    if result.task is None:
        return 0
    outcome = await result.task
    return 0 if outcome.succeeded else 1


def cmd_up(service: PowerService, wait: bool) -> int:
    return asyncio.run(_up(service, wait))


def cmd_down(service: PowerService) -> int:
    result = asyncio.run(service.power_off())
    print(result.message)
    return 0 if result.ok else 1


def cmd_schedule(service: PowerService) -> int:
    intervals = service.schedule.build()
    print(format_schedule(intervals, service.schedule.max_interval))
    return 0


def cmd_serve(service: PowerService, cfg: dict) -> int:
    from power_agent.api import create_app
    from power_agent.bot import TelegramBot

    loop = BackgroundLoop().start()
    bot = None

    tcfg = cfg["notifications"]["telegram"]
    if tcfg.get("enabled"):
        bot = TelegramBot(
            tcfg["bot_token"],
            tcfg["allowed_chat_ids"],
            service,
            loop,
            poll_timeout=int(tcfg.get("poll_timeout_seconds", 30)),
        )
        threading.Thread(target=bot.run_forever, name="telegram-bot", daemon=True).start()

    try:
        if cfg["api"].get("enabled", True):
            port = int(os.environ.get("PORT") or cfg["api"]["port"])
            create_app(service, loop).run(host=cfg["api"]["host"], port=port)
        elif bot is not None:
            bot.run_forever()
    except KeyboardInterrupt:
        pass
    finally:
        logger.info("shutting down")
        if bot is not None:
            bot.stop()
        loop.stop()
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        cfg = load_config(args.config)
        setup_logging_from_config(cfg)
        service = build_service(cfg, args.backend)
        if args.command == "state":
            return cmd_state(service)
        if args.command == "up":
            return cmd_up(service, args.wait)
        if args.command == "down":
            return cmd_down(service)
        if args.command == "schedule":
            return cmd_schedule(service)
        return cmd_serve(service, cfg)
    except (ConfigValidationError, ScheduleError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
