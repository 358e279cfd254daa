"""Utility script that tails the live notification stream from the terminal."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator

from notification_client.config import Settings, get_settings
from notification_client.domain.entities import ConnectionStatus, NotificationEntity
from notification_client.domain.exceptions import ApiError
from notification_client.main import NotificationClient, create_client

logger = logging.getLogger("listen_notifications")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments for the listener."""

    parser = argparse.ArgumentParser(
        description="Connect to the notifications websocket and print every notification.",
    )
    parser.add_argument(
        "--token",
        default=os.getenv("NOTIFICATIONS_ACCESS_TOKEN"),
        help="Access token (por defecto: variable NOTIFICATIONS_ACCESS_TOKEN)",
    )
    parser.add_argument(
        "--refresh-token",
        default=os.getenv("NOTIFICATIONS_REFRESH_TOKEN"),
        help="Refresh token used once when the session expires (opcional)",
    )
    parser.add_argument(
        "--ws-base",
        default=None,
        help="Websocket base URL that overrides API_WS_BASE_URL",
    )
    parser.add_argument(
        "--snapshot",
        type=int,
        default=0,
        metavar="LIMIT",
        help="Fetch the latest LIMIT notifications over REST before streaming",
    )
    return parser.parse_args(argv)


def _configure_logging() -> None:
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def _describe(notification: NotificationEntity) -> str:
    marker = " " if notification.is_read else "*"
    href = notification.meta.href if notification.meta and notification.meta.href else "-"
    return (
        f"{marker} [{notification.created_at.isoformat()}] {notification.type}: "
        f"{notification.title} - {notification.message} ({href})"
    )


@asynccontextmanager
async def lifespan(settings: Settings) -> AsyncIterator[NotificationClient]:
    """Create the client on start and release its resources on exit."""

    client = create_client(settings)
    try:
        yield client
    finally:
        await client.aclose()


async def listen(args: argparse.Namespace) -> None:
    settings = get_settings()
    if args.ws_base:
        settings = settings.model_copy(update={"api_ws_base_url": args.ws_base})

    async with lifespan(settings) as client:
        seen: set[str] = set()

        def print_new(store) -> None:
            for notification in reversed(store.ordered()):
                if notification.id in seen:
                    continue
                seen.add(notification.id)
                print(_describe(notification), flush=True)

        def report_status(status: ConnectionStatus) -> None:
            logger.info("Estado de la conexion: %s", status)

        client.store.subscribe(print_new)
        client.status.subscribe(report_status)

        if not client.connect(args.token, args.refresh_token):
            raise SystemExit("No se pudo abrir la conexion de notificaciones.")

        if args.snapshot > 0:
            try:
                page = await client.list_view(limit=args.snapshot).load()
            except ApiError as exc:
                logger.warning("No se pudo cargar el historial: %s", exc)
            else:
                logger.info("Historial cargado: %d de %d", len(page.items), page.total)

        stopped = asyncio.Event()
        client.manager.on_session_expired(stopped.set)
        await stopped.wait()


def main(argv: list[str] | None = None) -> None:
    """Run the listener until interrupted or the session expires."""

    args = parse_args(argv)
    if not args.token:
        raise SystemExit("Se requiere un token de acceso (--token).")

    _configure_logging()
    try:
        asyncio.run(listen(args))
    except KeyboardInterrupt:
        logger.info("Listener detenido por el usuario")


if __name__ == "__main__":
    main()
