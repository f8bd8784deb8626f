from __future__ import annotations

import argparse
import asyncio
from datetime import datetime, timezone
import logging
from pathlib import Path
import signal

from .config import Config, load_config
from .errors import ConfigError, SendError, StoreInitError
from .feeds.base import Notification
from .feeds.github import GitHubNotificationsFeed, GitHubSettings
from .notifiers.message import format_message
from .notifiers.telegram import TelegramNotifier, TelegramSettings
from .scheduler import Scheduler
from .store import connect_store, redact_url


DEFAULT_CONFIG_PATH = "./config.yaml"


async def main() -> None:
    args = _parse_args()
    config_path = args.config or DEFAULT_CONFIG_PATH
    if args.init_config:
        _init_config(Path(config_path))
        return
    _configure_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        config = load_config(config_path, explicit=args.config is not None)
    except ConfigError as exc:
        raise SystemExit(f"Invalid configuration: {exc}")

    notifier = _build_notifier(config)
    if args.test_notify:
        try:
            await notifier.send(format_message(_build_test_notification()))
        except SendError as exc:
            raise SystemExit(f"Test notification failed: {exc}")
        logger.info("Test notification sent")
        return

    database_url = config.settings.database_url
    try:
        store = connect_store(database_url)
    except StoreInitError as exc:
        raise SystemExit(f"Could not initialize dedup store: {exc}")
    try:
        await store.initialize()
    except StoreInitError as exc:
        await store.close()
        raise SystemExit(f"Could not initialize dedup store: {exc}")

    scheduler = Scheduler(
        _build_feed(config),
        notifier,
        store,
        poll_interval_seconds=config.settings.poll_interval_seconds,
        dry_run=args.dry_run,
    )
    stop_event = asyncio.Event()
    _install_signal_handlers(stop_event)

    logger.info(
        "daemon started, poll_interval=%ss, database_url=%s",
        config.settings.poll_interval_seconds,
        redact_url(database_url),
    )
    try:
        await scheduler.run(stop_event, once=args.once)
    finally:
        await store.close()
        logger.info("daemon stopped")


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logging.getLogger(__name__).info("Interrupted")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Forward GitHub notifications to Telegram")
    parser.add_argument("--config", default=None, help=f"YAML config file (default {DEFAULT_CONFIG_PATH})")
    parser.add_argument("--once", action="store_true", help="Run a single poll cycle and exit")
    parser.add_argument("--dry-run", action="store_true", help="Log messages instead of sending them")
    parser.add_argument("--verbose", action="store_true")
    parser.add_argument("--init-config", action="store_true", help="Create a config.yaml template and exit")
    parser.add_argument("--test-notify", action="store_true", help="Send a test notification and exit")
    return parser.parse_args()


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(message)s")
    # httpx logs every request URL at INFO, and Telegram URLs carry the bot token
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            # Windows event loops; Ctrl-C surfaces as KeyboardInterrupt in run()
            logging.getLogger(__name__).debug("Signal handler for %s unavailable", sig)


def _build_feed(config: Config) -> GitHubNotificationsFeed:
    return GitHubNotificationsFeed(
        GitHubSettings(
            token=config.github.token,
            timeout_seconds=config.settings.http_timeout_seconds,
            user_agent=config.settings.user_agent,
            api_url=config.github.api_url,
        )
    )


def _build_notifier(config: Config) -> TelegramNotifier:
    return TelegramNotifier(
        TelegramSettings(
            bot_token=config.telegram.bot_token,
            chat_id=config.telegram.chat_id,
            timeout_seconds=config.settings.http_timeout_seconds,
            user_agent=config.settings.user_agent,
            api_url=config.telegram.api_url,
        )
    )


def _init_config(target: Path) -> None:
    if target.exists():
        raise SystemExit(f"Config already exists at {target}")
    root = Path(__file__).resolve().parents[1]
    template = root / "config.example.yaml"
    if not template.exists():
        raise SystemExit("config.example.yaml not found")
    target.write_text(template.read_text(encoding="utf-8"), encoding="utf-8")
    print(f"Wrote config template to {target}")


def _build_test_notification() -> Notification:
    now = datetime.now(timezone.utc)
    return Notification(
        id=f"test-{int(now.timestamp())}",
        unread=True,
        updated_at=now,
        repository="ghnotify/test",
        subject_type="Test",
        subject_title="ghnotify test notification: Telegram delivery verified",
        reason="manual",
    )


if __name__ == "__main__":
    run()
