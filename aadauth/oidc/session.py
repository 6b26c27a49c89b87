"""The session capability the login flow needs."""

from typing import Protocol


class SessionStore(Protocol):
    """String-keyed storage scoped to one browser session.

    ``delete`` removes the key and returns the value it held, as a single
    atomic step.
    """

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> str | None: ...


class MemorySessionStore:
    """In-process session store, one instance per session."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> str | None:
        return self._data.pop(key, None)
