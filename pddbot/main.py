from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from importlib.metadata import PackageNotFoundError, version

from telegram import Update
from telegram.ext import Application

from pddbot.bot.handlers import build_handlers
from pddbot.bot.router import CommandRouter
from pddbot.core.config import ConfigError, Settings, load_settings


logger = logging.getLogger("pdd-bot")


def _version() -> str:
    try:
        return version("pdd-bot")
    except PackageNotFoundError:
        return "unknown"


def _build_app(settings: Settings) -> Application:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    # Chats are handled concurrently; the router serializes messages within a chat.
    app = Application.builder().token(settings.bot_token).concurrent_updates(True).build()
    build_handlers(app, router=CommandRouter(settings))
    return app


def _start_http_server(
    *,
    port: int,
    webhook_path: str,
    loop: asyncio.AbstractEventLoop,
    app: Application,
    webhook_secret_token: str | None,
) -> HTTPServer:
    """
    Start a minimal HTTP server for health checks + the Telegram webhook.

    Incoming updates are forwarded into python-telegram-bot's Application via the
    running asyncio loop.
    """
    normalized_path = (webhook_path or "/telegram").strip() or "/telegram"
    if not normalized_path.startswith("/"):
        normalized_path = f"/{normalized_path}"

    class Handler(BaseHTTPRequestHandler):
        def _read_body(self) -> bytes:
            length_raw = self.headers.get("Content-Length", "0")
            try:
                length = int(length_raw)
            except ValueError:
                length = 0
            if length <= 0:
                return b""
            return self.rfile.read(length)

        def _reply(self, status: int, body: bytes = b"") -> None:
            self.send_response(status)
            if body:
                self.send_header("Content-Type", "text/plain; charset=utf-8")
                self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            if body:
                self.wfile.write(body)

        def do_GET(self) -> None:  # noqa: N802
            if self.path.split("?", 1)[0] in ("/", "/health", "/healthz"):
                self._reply(200, b"ok")
                return
            self._reply(404)

        def do_POST(self) -> None:  # noqa: N802
            if self.path.split("?", 1)[0] != normalized_path:
                self._reply(404)
                return
            if webhook_secret_token:
                got = self.headers.get("X-Telegram-Bot-Api-Secret-Token", "")
                if got != webhook_secret_token:
                    self._reply(403)
                    return

            raw = self._read_body()
            if not raw:
                self._reply(400)
                return
            try:
                update = Update.de_json(json.loads(raw.decode("utf-8")), app.bot)
            except (UnicodeDecodeError, ValueError):
                logger.exception("Failed to decode incoming webhook update")
                self._reply(400)
                return

            # Schedule processing on the main asyncio loop and return immediately.
            asyncio.run_coroutine_threadsafe(app.process_update(update), loop)
            self._reply(200, b"ok")

        def log_message(self, format: str, *args) -> None:
            # Silence default http.server logs; the bot has its own logger.
            return

    server = HTTPServer(("0.0.0.0", port), Handler)
    threading.Thread(target=server.serve_forever, daemon=True).start()
    logger.info("HTTP server listening on 0.0.0.0:%s (webhook path: %s)", port, normalized_path)
    return server


async def _run_webhook(settings: Settings) -> None:
    app = _build_app(settings)
    await app.initialize()
    await app.start()

    loop = asyncio.get_running_loop()
    server = _start_http_server(
        port=settings.port,
        webhook_path=settings.webhook_path,
        loop=loop,
        app=app,
        webhook_secret_token=settings.webhook_secret_token,
    )

    webhook_base = (settings.webhook_url or "").rstrip("/")
    webhook_path = settings.webhook_path if settings.webhook_path.startswith("/") else f"/{settings.webhook_path}"
    webhook_full_url = f"{webhook_base}{webhook_path}"

    logger.info("Setting Telegram webhook to %s", webhook_full_url)
    await app.bot.set_webhook(
        url=webhook_full_url,
        drop_pending_updates=True,
        secret_token=settings.webhook_secret_token,
    )

    stop_event = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Some platforms (e.g., Windows) don't support signal handlers in asyncio.
            pass

    await stop_event.wait()

    server.shutdown()
    server.server_close()
    await app.stop()
    await app.shutdown()


def run(settings: Settings) -> None:
    logger.info("pdd-bot, version: %s", _version())
    logger.info("Data dir: %s, allowed chats: %d", settings.data_dir, len(settings.allowed_chat_ids))

    if settings.webhook_url:
        logger.info("Starting bot (webhook mode)...")
        asyncio.run(_run_webhook(settings))
        return

    app = _build_app(settings)
    logger.info("Starting bot (polling; set WEBHOOK_URL to enable webhooks)...")
    app.run_polling(allowed_updates=["message"])


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="pdd-bot", description="Glucose, weight and medication diary bot.")
    parser.add_argument("--env-file", default=None, help="Path to a .env file (default: ./.env if present)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {_version()}")
    sub = parser.add_subparsers(dest="action")
    check = sub.add_parser("check-config", help="Validate configuration and exit.")
    check.add_argument("--env-file", dest="check_env_file", default=None, help="Path to a .env file")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    if args.action == "check-config":
        try:
            load_settings(args.check_env_file or args.env_file)
        except ConfigError as e:
            print(f"bad config: {e}", file=sys.stderr)
            return 3
        print("config is ok")
        return 0

    try:
        settings = load_settings(args.env_file)
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        level=getattr(logging, settings.log_level, logging.INFO),
    )
    # httpx logs every polling request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    run(settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())
