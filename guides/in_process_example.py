"""Example running one upload through the pipeline without a server."""

import asyncio

from stepsos import EventBus, ExecutionGateway, InMemoryExecutionStore, StepRunner


async def main():
    bus = EventBus()
    store = InMemoryExecutionStore()
    runner = StepRunner(store, bus)
    gateway = ExecutionGateway(store, runner)

    # Print every lifecycle event as it happens
    bus.subscribe(lambda event: print(event.event, event.data.get("stepId", "")))

    execution_id = await gateway.submit(
        {
            "requestId": "req-1",
            "payload": {
                "fileName": "holiday.png",
                "fileSizeMB": 3.2,
                "fileType": "image/png",
                "checksum": "9f86d08",
            },
            "user": {"id": "user-42"},
        }
    )
    await gateway.drain()

    record = await store.get(execution_id)
    print(f"{execution_id}: {record.status}")


if __name__ == "__main__":
    asyncio.run(main())
