"""Echo bot for the Rocket.Chat realtime API.

Logs in, subscribes to every room the bot belongs to and echoes each
message back into its room.

    pip install rocketchat-realtime

    export ROCKETCHAT_URL=https://chat.example.com
    export ROCKETCHAT_USER=echo-bot
    export ROCKETCHAT_PASSWORD=...
    python examples/echo_bot.py
"""

import argparse
import asyncio
import logging
import signal

from rocketchat_realtime import (
    ClientSettings,
    LoginError,
    MessageEvent,
    Method,
    RealtimeSession,
    SessionReady,
)


async def main(prefix: str) -> int:
    stop = asyncio.Event()
    loop = asyncio.get_event_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    session: RealtimeSession | None = None

    async def on_event(event):
        if isinstance(event, SessionReady):
            await session.subscribe_my_messages()
            print(f"Logged in as {event.username}, listening... (Ctrl+C to stop)")
        elif isinstance(event, MessageEvent) and event.text:
            reply = Method("sendMessage", [{"rid": event.room_id, "msg": f"{prefix}{event.text}"}])
            await session.send(reply)

    session = RealtimeSession(
        ClientSettings.from_env(),
        sink=on_event,
        on_fatal=lambda error: stop.set(),
    )
    await session.start()
    try:
        await session.wait_ready(timeout=30)
    except LoginError as exc:
        print(exc)
        await session.stop()
        return 1

    await stop.wait()
    await session.stop()
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Rocket.Chat echo bot")
    parser.add_argument("--prefix", default="echo: ", help="Text prepended to echoes")
    parser.add_argument("--debug", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.INFO)
    raise SystemExit(asyncio.run(main(args.prefix)))
