from typing import Protocol, runtime_checkable

@runtime_checkable
class EventBusPort(Protocol):
    """Destination for committed outbox events; ``value`` is the JSON-ready event envelope."""

    async def publish(self, topic: str, key: str, value: dict, headers: dict | None = None) -> None: ...

    async def close(self) -> None: ...
