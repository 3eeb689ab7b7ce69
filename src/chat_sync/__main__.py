"""Entrypoint: python -m chat_sync [--conversation ID]

Connects with AUTH_TOKEN and logs every live event until interrupted.
"""
from __future__ import annotations

import argparse
import asyncio
import logging

from chat_sync.app import create_client
from chat_sync.config import settings
from chat_sync.domain.events.connection import ConnectionStateChanged
from chat_sync.domain.value_objects.enums import ConnectionState
from chat_sync.infrastructure.auth.session_store import InMemorySessionStore

logger = logging.getLogger("chat_sync")


async def run(conversation_id: int | None) -> None:
    credentials = InMemorySessionStore(settings.AUTH_TOKEN)
    async with create_client(credentials) as client:
        events = client.events()
        await client.connect()
        if client.state == ConnectionState.DISCONNECTED:
            logger.error("No usable AUTH_TOKEN, not connecting")
            events.close()
            return
        if conversation_id is not None:
            page = await client.load_page(conversation_id)
            logger.info("Conversation %d: %d messages loaded", conversation_id, len(page))

        async with events:
            async for event in events:
                logger.info("%s", event)
                if isinstance(event, ConnectionStateChanged) and event.state in (
                    ConnectionState.FAILED,
                    ConnectionState.DISCONNECTED,
                ):
                    break


def main() -> None:
    parser = argparse.ArgumentParser(prog="chat_sync")
    parser.add_argument("--conversation", type=int, default=None)
    args = parser.parse_args()

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(run(args.conversation))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
