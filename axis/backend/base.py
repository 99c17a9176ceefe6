from collections.abc import Awaitable, Callable, Sequence
from typing import Protocol, TypeAlias, runtime_checkable

from axis.models import InteractionLog, SystemStats

ConfirmGate: TypeAlias = Callable[[str], bool]
IdFactory: TypeAlias = Callable[[], str]
Responder: TypeAlias = Callable[[str, Sequence[InteractionLog]], Awaitable[tuple[str, str]]]


@runtime_checkable
class Backend(Protocol):
    async def ask(self, input: str, session_id: str) -> None: ...

    async def fetch_history(self) -> list[InteractionLog]: ...

    async def delete_session(self, session_id: str) -> None: ...

    async def get_vitals(self) -> SystemStats: ...


class CuePlayer(Protocol):
    def play(self, cue: str) -> None: ...


class HostWindow(Protocol):
    async def minimize(self) -> None: ...

    async def maximize(self) -> None: ...

    async def unmaximize(self) -> None: ...

    async def close(self) -> None: ...

    async def is_maximized(self) -> bool: ...


class SilentCuePlayer:
    def play(self, cue: str) -> None:
        pass


def always_confirm(_prompt: str) -> bool:
    return True
