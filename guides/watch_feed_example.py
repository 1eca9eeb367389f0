"""Example subscribing to a running server's event feed.

Start the server first:
    stepsos serve
"""

import asyncio
import sys

from stepsos import StreamClient
from stepsos.config import load_config


async def main():
    config = load_config()
    if len(sys.argv) > 1:
        config.stream.url = sys.argv[1]

    client = StreamClient.from_config(config)
    client.subscribe_state(lambda state: print(f"[{state}]"))
    client.subscribe(lambda event: print(event.event, event.data))

    try:
        await asyncio.Event().wait()
    finally:
        await client.disconnect()


if __name__ == "__main__":
    asyncio.run(main())
