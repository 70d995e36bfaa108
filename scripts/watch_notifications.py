"""Follow a recipient's notifications from the command line."""

from __future__ import annotations

import argparse
import asyncio
import logging

from app.client import NotificationClient
from app.config import get_client_settings
from app.domain.entities import Identity

logger = logging.getLogger("watch_notifications")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Connect to the realtime channel and log unread-count changes.",
    )
    parser.add_argument("recipient_id", help="Recipient the token was issued for")
    parser.add_argument("role", help="Role the token was issued for")
    parser.add_argument(
        "--base-url",
        default=None,
        help="Service origin; overrides CLIENT_BASE_URL",
    )
    parser.add_argument(
        "--token",
        default=None,
        help="Identity token; overrides CLIENT_TOKEN",
    )
    parser.add_argument("--verbose", action="store_true", help="Log every frame")
    return parser.parse_args()


async def watch(args: argparse.Namespace) -> None:
    settings = get_client_settings()
    overrides = {
        key: value
        for key, value in (("base_url", args.base_url), ("token", args.token))
        if value
    }
    if overrides:
        settings = settings.model_copy(update=overrides)
    if not settings.token:
        raise SystemExit("A token is required (use --token or CLIENT_TOKEN)")

    identity = Identity(recipient_id=args.recipient_id, role=args.role)
    client = NotificationClient.from_settings(settings, identity)
    client.connection.on_status_change = lambda status: logger.info("Status: %s", status.value)
    client.reconciler.on_change = lambda cache: logger.info(
        "Unread: %s (live updates %s)",
        cache.unread_count,
        "on" if client.live_updates_available else "off",
    )

    await client.start()
    try:
        await asyncio.Event().wait()
    finally:
        await client.stop()


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(watch(args))
    except KeyboardInterrupt:
        logger.info("Stopped")


if __name__ == "__main__":
    main()
