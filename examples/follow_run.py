#!/usr/bin/env python3
"""
Follow a run's events and output until interrupted.

Usage:
    LOOPSTREAM_TOKEN=... python examples/follow_run.py <run_id>
"""

import asyncio
import sys

from loopstream import (
    ChunkReceived,
    EventReceived,
    LoopStreamClient,
    ParseFailed,
    Reconnecting,
    get_config,
)


async def print_events(client: LoopStreamClient, run_id: str):
    stream = client.events(run_id)
    outcomes = stream.outcomes()
    stream.connect()

    async for outcome in outcomes:
        if isinstance(outcome, EventReceived):
            event = outcome.event
            step = f" [{event.step_id}]" if event.step_id else ""
            print(f"{event.timestamp} {event.event_type}{step}")
        elif isinstance(outcome, ParseFailed):
            print(f"! {outcome.error}", file=sys.stderr)
        elif isinstance(outcome, Reconnecting):
            print(f"~ reconnecting (attempt {outcome.attempt})", file=sys.stderr)


async def print_output(client: LoopStreamClient, run_id: str):
    async for text in client.tail(run_id):
        print(text, end="", flush=True)


async def main(run_id: str):
    async with LoopStreamClient(get_config()) as client:
        await asyncio.gather(
            print_events(client, run_id),
            print_output(client, run_id),
        )


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(1)
    try:
        asyncio.run(main(sys.argv[1]))
    except KeyboardInterrupt:
        pass
