"""Entrypoint: python -m chat_session ROOM_ID

Joins a room, prints what arrives and sends every line typed on stdin.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Callable

from chat_session.app import create_session
from chat_session.application.state import SessionState
from chat_session.config import settings


def _printer() -> Callable[[SessionState], None]:
    seen: set[object] = set()

    def _on_change(state: SessionState) -> None:
        for message in state.messages:
            if message.ref in seen:
                continue
            seen.add(message.ref)
            marker = "…" if message.is_pending else " "
            print(f"{marker} [{message.created_at:%H:%M:%S}] {message.sender_name}: {message.content}")
        if state.error is not None and ("error", state.error) not in seen:
            seen.add(("error", state.error))
            print(f"! {state.error.code}: {state.error.detail}", file=sys.stderr)

    return _on_change


async def run_client(room_id: int) -> int:
    session, api = create_session()
    session.subscribe(_printer())
    try:
        if not await session.select_room(room_id):
            return 1
        while True:
            line = await asyncio.to_thread(sys.stdin.readline)
            if not line:
                break
            text = line.rstrip("\n")
            if text:
                await session.send_message(text)
    finally:
        await session.aclose()
        await api.aclose()
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(prog="chat_session")
    parser.add_argument("room_id", type=int)
    args = parser.parse_args()

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    sys.exit(asyncio.run(run_client(args.room_id)))


if __name__ == "__main__":
    main()
